import threading
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, create_engine
from sqlmodel.pool import StaticPool

from api.content.services import ContentService
from core.blobs import BlobStore
from core.config import InMemoryDbSettings
from core.db import create_db_and_tables
from core.deps import get_content_service
from core.identifiers import IdentifierGenerator
from core.metadata import MetadataStore
from main import app


class FakeClock:
    """Controllable replacement for core.utils.utcnow"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class ScriptedGenerator(IdentifierGenerator):
    """
    Hands out the given tokens in order, then falls back to random ones.
    Safe to share between threads.
    """

    def __init__(self, tokens: list[str], length: int = 8):
        super().__init__(length)
        self._tokens = list(tokens)
        self._lock = threading.Lock()
        self.calls = 0

    def generate(self, length: int | None = None) -> str:
        with self._lock:
            self.calls += 1
            if self._tokens:
                return self._tokens.pop(0)
        return super().generate(length)


@pytest.fixture(name="test_settings")
def test_settings_fixture(tmp_path):
    return InMemoryDbSettings(
        STORAGE_ROOT=str(tmp_path / "uploads"),
        SWEEP_INTERVAL_SECONDS=0.01,
    )


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    create_db_and_tables(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(name="clock")
def clock_fixture():
    return FakeClock(datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture(name="metadata")
def metadata_fixture(engine):
    return MetadataStore(engine)


@pytest.fixture(name="blobs")
def blobs_fixture(test_settings):
    return BlobStore(test_settings.STORAGE_ROOT)


@pytest.fixture(name="scripted_generator")
def scripted_generator_fixture():
    """Factory for generators that return predetermined tokens"""
    return ScriptedGenerator


@pytest.fixture(name="service")
def service_fixture(metadata, blobs, test_settings, clock):
    return ContentService(
        metadata=metadata,
        blobs=blobs,
        generator=IdentifierGenerator(test_settings.IDENTIFIER_LENGTH),
        settings=test_settings,
        clock=clock,
    )


@pytest.fixture(name="client")
def client_fixture(service: ContentService):
    def get_content_service_override():
        return service

    app.dependency_overrides[get_content_service] = get_content_service_override

    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()
