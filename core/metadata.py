"""
Metadata store for files and short URLs.

Each call is a single statement in its own session. Nothing here spans a
transaction across calls or across the blob store.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Generic, TypeVar
from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select, func

from api.files.models import FileRecord
from api.urls.models import UrlRecord
from core.errors import DuplicateKeyError, NotFoundError, StorageError

RecordT = TypeVar("RecordT", FileRecord, UrlRecord)


class RecordTable(Generic[RecordT]):
    """Point and bulk operations on one table keyed by identifier"""

    def __init__(self, engine, model: type[RecordT]):
        self._engine = engine
        self.model = model

    def _session(self) -> Session:
        # Records are handed back after the session closes
        return Session(self._engine, expire_on_commit=False)

    def insert(self, record: RecordT) -> RecordT:
        """
        Insert a new record.

        Raises:
            DuplicateKeyError: the identifier is already taken
            StorageError: any other database failure
        """
        with self._session() as session:
            try:
                session.add(record)
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise DuplicateKeyError(
                    f"{self.model.__tablename__} identifier '{record.identifier}' already exists"
                ) from e
            except SQLAlchemyError as e:
                session.rollback()
                raise StorageError(str(e)) from e
        return record

    def get(self, identifier: str) -> RecordT:
        """Fetch a record by identifier, raising NotFoundError if absent"""
        try:
            with self._session() as session:
                record = session.get(self.model, identifier)
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e
        if record is None:
            raise NotFoundError(identifier)
        return record

    def list_expired_before(self, cutoff: datetime) -> Sequence[str]:
        """Identifiers of records with expires_at <= cutoff"""
        try:
            with self._session() as session:
                return session.exec(
                    select(self.model.identifier).where(self.model.expires_at <= cutoff)
                ).all()
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

    def delete_expired_before(self, cutoff: datetime) -> int:
        """Delete every record with expires_at <= cutoff in one statement"""
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    delete(self.model).where(self.model.expires_at <= cutoff)
                )
                return result.rowcount
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e

    def count(self) -> int:
        """Number of rows, expired or not"""
        try:
            with self._session() as session:
                return session.exec(
                    select(func.count()).select_from(self.model)
                ).one()
        except SQLAlchemyError as e:
            raise StorageError(str(e)) from e


class MetadataStore:
    """The files and urls tables, sharing one engine"""

    def __init__(self, engine):
        self.engine = engine
        self.files: RecordTable[FileRecord] = RecordTable(engine, FileRecord)
        self.urls: RecordTable[UrlRecord] = RecordTable(engine, UrlRecord)
