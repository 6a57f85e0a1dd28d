"""
Services for uploading, shortening and resolving ephemeral content.

ContentService composes the identifier generator, the metadata store and
the blob store. It holds no locks: identifier collisions are detected by
the stores (primary key, exclusive blob creation) and resolved here by
drawing a new identifier.
"""

import mimetypes
import posixpath
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import BinaryIO

from api.files.models import FileRecord
from api.urls.models import UrlRecord
from core.blobs import BlobStore
from core.config import Settings
from core.errors import (
    DuplicateKeyError,
    ExhaustedRetriesError,
    ExpiredError,
    InvalidInputError,
    NotFoundError,
    StorageError,
)
from core.identifiers import IdentifierGenerator
from core.logger import logger
from core.metadata import MetadataStore
from core.utils import utcnow

DEFAULT_CONTENT_TYPE = "application/octet-stream"
INLINE_CONTENT_TYPES = ("text/", "image/", "audio/", "video/", "application/pdf")
EXTENSION_PATTERN = re.compile(r"^\.[A-Za-z0-9]{1,16}$")
MAX_IDENTIFIER_LENGTH = 255


@dataclass(frozen=True)
class IssuedContent:
    identifier: str
    path: str
    expires_at: datetime


@dataclass
class ResolvedFile:
    display_name: str
    content_type: str
    inline: bool
    stream: BinaryIO


@dataclass(frozen=True)
class ContentStats:
    files: int
    urls: int


def display_name_for(filename: str | None) -> str:
    """Base name of a client-supplied filename, without directories"""
    if filename is None:
        return ""
    return posixpath.basename(filename.replace("\\", "/")).strip()


def extension_for(display_name: str) -> str:
    """Extension kept on the identifier, or '' when it looks unsafe"""
    extension = posixpath.splitext(display_name)[1]
    if EXTENSION_PATTERN.match(extension):
        return extension
    return ""


def content_type_for(display_name: str) -> str:
    content_type, _ = mimetypes.guess_type(display_name, strict=False)
    return content_type or DEFAULT_CONTENT_TYPE


def is_valid_identifier(identifier: str | None) -> bool:
    """True when identifier is a single path segment safe to look up"""
    if not identifier or len(identifier) > MAX_IDENTIFIER_LENGTH:
        return False
    if identifier in (".", ".."):
        return False
    return not any(char in identifier for char in ("/", "\\", "\x00"))


class ContentService:
    """
    Upload, shorten, resolve and count ephemeral content.

    Records are only ever created here; expired records are reported as
    missing but are left for the Sweeper to delete.
    """

    def __init__(
        self,
        metadata: MetadataStore,
        blobs: BlobStore,
        generator: IdentifierGenerator,
        settings: Settings,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.metadata = metadata
        self.blobs = blobs
        self.generator = generator
        self.settings = settings
        self.clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, engine) -> "ContentService":
        """Build a service and its stores from configuration"""
        return cls(
            metadata=MetadataStore(engine),
            blobs=BlobStore(settings.STORAGE_ROOT),
            generator=IdentifierGenerator(settings.IDENTIFIER_LENGTH),
            settings=settings,
        )

    def _ttl(self, default: timedelta, wants_long_expiry: bool) -> timedelta:
        return self.settings.long_ttl if wants_long_expiry else default

    def upload(
        self,
        filename: str | None,
        content: BinaryIO | None,
        wants_long_expiry: bool = False,
    ) -> IssuedContent:
        """
        Store an uploaded file and issue an identifier for it.

        The blob is written before the metadata row is inserted, so a crash
        in between leaves an orphan blob rather than a row without bytes.
        The stream is read exactly once; if the insert collides the written
        blob is renamed to the next candidate identifier.

        Raises:
            InvalidInputError: no filename or no content
            StorageError: the blob or the row could not be written
            ExhaustedRetriesError: every candidate identifier was taken
        """
        display_name = display_name_for(filename)
        if not display_name or content is None:
            raise InvalidInputError("A file with a filename is required")

        extension = extension_for(display_name)
        ttl = self._ttl(self.settings.file_ttl, wants_long_expiry)
        written: str | None = None

        for attempt in range(1, self.settings.IDENTIFIER_MAX_ATTEMPTS + 1):
            identifier = self.generator.generate() + extension
            try:
                if written is None:
                    size = self.blobs.write(identifier, content)
                    logger.debug("Wrote %d bytes to blob %s", size, identifier)
                else:
                    try:
                        self.blobs.move(written, identifier)
                    except NotFoundError as e:
                        # Reclaimed by the sweeper under the colliding row's name
                        raise StorageError(f"Blob {written} was removed before it was recorded") from e
                written = identifier

                record = FileRecord(
                    identifier=identifier,
                    display_name=display_name,
                    expires_at=self.clock() + ttl,
                )
                self.metadata.files.insert(record)
            except DuplicateKeyError:
                logger.warning(
                    "File identifier collision on %s (attempt %d)", identifier, attempt
                )
                continue
            except StorageError:
                if written is not None:
                    self.blobs.remove(written)
                raise

            logger.info("Stored file %s as %s", display_name, identifier)
            return IssuedContent(
                identifier=identifier,
                path=f"/{identifier}",
                expires_at=record.expires_at,
            )

        if written is not None:
            self.blobs.remove(written)
        raise ExhaustedRetriesError(
            f"No free file identifier after {self.settings.IDENTIFIER_MAX_ATTEMPTS} attempts"
        )

    def shorten(self, target_url: str | None, wants_long_expiry: bool = False) -> IssuedContent:
        """
        Issue a short identifier for target_url.

        Raises:
            InvalidInputError: target_url is empty or whitespace
            StorageError: the row could not be written
            ExhaustedRetriesError: every candidate identifier was taken
        """
        if target_url is None or not target_url.strip():
            raise InvalidInputError("A URL is required")

        ttl = self._ttl(self.settings.url_ttl, wants_long_expiry)

        for attempt in range(1, self.settings.IDENTIFIER_MAX_ATTEMPTS + 1):
            record = UrlRecord(
                identifier=self.generator.generate(),
                target_url=target_url.strip(),
                expires_at=self.clock() + ttl,
            )
            try:
                self.metadata.urls.insert(record)
            except DuplicateKeyError:
                logger.warning(
                    "URL identifier collision on %s (attempt %d)", record.identifier, attempt
                )
                continue

            logger.info("Shortened URL as %s", record.identifier)
            return IssuedContent(
                identifier=record.identifier,
                path=f"/s/{record.identifier}",
                expires_at=record.expires_at,
            )

        raise ExhaustedRetriesError(
            f"No free URL identifier after {self.settings.IDENTIFIER_MAX_ATTEMPTS} attempts"
        )

    def _live(self, record: FileRecord | UrlRecord) -> None:
        if self.clock() >= record.expires_at:
            raise ExpiredError(record.identifier)

    def resolve_file(self, identifier: str) -> ResolvedFile:
        """
        Open a live file for reading.

        Malformed identifiers, unknown identifiers, expired records and
        records whose blob has already been reclaimed all raise
        NotFoundError (ExpiredError for the expired case).
        """
        if not is_valid_identifier(identifier):
            raise NotFoundError(identifier)

        record = self.metadata.files.get(identifier)
        self._live(record)

        try:
            stream = self.blobs.open(identifier)
        except NotFoundError:
            logger.warning("Blob missing for live file record %s", identifier)
            raise

        content_type = content_type_for(record.display_name)
        return ResolvedFile(
            display_name=record.display_name,
            content_type=content_type,
            inline=content_type.startswith(INLINE_CONTENT_TYPES),
            stream=stream,
        )

    def resolve_url(self, identifier: str) -> str:
        """Target of a live short URL; NotFoundError otherwise"""
        if not is_valid_identifier(identifier):
            raise NotFoundError(identifier)

        record = self.metadata.urls.get(identifier)
        self._live(record)
        return record.target_url

    def stats(self) -> ContentStats:
        """Row counts per table; the two counts are read independently"""
        return ContentStats(
            files=self.metadata.files.count(),
            urls=self.metadata.urls.count(),
        )
