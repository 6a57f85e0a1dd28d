"""
Test file upload and download
"""
import io
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlmodel import SQLModel, create_engine

from api.content.services import (
    ContentService,
    content_type_for,
    display_name_for,
    extension_for,
    is_valid_identifier,
)
from api.files.models import FileRecord
from core.db import create_db_and_tables
from core.errors import (
    ExhaustedRetriesError,
    ExpiredError,
    InvalidInputError,
    NotFoundError,
    StorageError,
)
from core.metadata import MetadataStore


def _read(resolved):
    with resolved.stream as stream:
        return stream.read()


class TestFilenameHandling:
    """Test helpers that turn client filenames into safe identifiers"""

    def test_display_name_drops_directories(self):
        assert display_name_for("notes.txt") == "notes.txt"
        assert display_name_for("../../etc/passwd") == "passwd"
        assert display_name_for("C:\\Users\\me\\photo.png") == "photo.png"
        assert display_name_for(None) == ""
        assert display_name_for("  ") == ""

    def test_extension(self):
        assert extension_for("notes.txt") == ".txt"
        assert extension_for("archive.tar.gz") == ".gz"
        assert extension_for("README") == ""
        assert extension_for(".bashrc") == ""
        assert extension_for("weird.t%xt") == ""
        assert extension_for("long." + "x" * 17) == ""

    def test_content_type(self):
        assert content_type_for("notes.txt") == "text/plain"
        assert content_type_for("photo.png") == "image/png"
        assert content_type_for("blob.unknownext") == "application/octet-stream"
        assert content_type_for("README") == "application/octet-stream"

    def test_identifier_validation(self):
        assert is_valid_identifier("abcd1234.txt")
        for bad in ["", ".", "..", "a/b", "..\\secret", "a\x00b", "x" * 256, None]:
            assert not is_valid_identifier(bad)


class TestUploadService:
    """Test ContentService.upload and resolve_file"""

    def test_upload_then_resolve(self, service, test_settings, clock):
        """10-byte notes.txt is readable until the default lifetime elapses"""
        issued = service.upload("notes.txt", io.BytesIO(b"0123456789"))

        assert issued.identifier.endswith(".txt")
        assert len(issued.identifier) == test_settings.IDENTIFIER_LENGTH + len(".txt")
        assert issued.path == f"/{issued.identifier}"
        assert issued.expires_at == clock() + test_settings.file_ttl

        resolved = service.resolve_file(issued.identifier)
        assert resolved.display_name == "notes.txt"
        assert resolved.content_type == "text/plain"
        assert resolved.inline is True
        assert _read(resolved) == b"0123456789"

        clock.advance(seconds=test_settings.FILE_TTL_SECONDS - 1)
        _read(service.resolve_file(issued.identifier))

        clock.advance(seconds=1)
        with pytest.raises(NotFoundError):
            service.resolve_file(issued.identifier)

    def test_long_expiry(self, service, test_settings, clock):
        issued = service.upload("movie.mp4", io.BytesIO(b"frames"), wants_long_expiry=True)
        assert issued.expires_at == clock() + test_settings.long_ttl

        clock.advance(days=29)
        assert _read(service.resolve_file(issued.identifier)) == b"frames"
        clock.advance(days=2)
        with pytest.raises(NotFoundError):
            service.resolve_file(issued.identifier)

    def test_expired_is_indistinguishable_from_absent(self, service, clock):
        issued = service.upload("a.bin", io.BytesIO(b"x"))
        clock.advance(days=1)

        with pytest.raises(NotFoundError) as expired:
            service.resolve_file(issued.identifier)
        with pytest.raises(NotFoundError) as absent:
            service.resolve_file("neverissued")
        assert isinstance(expired.value, ExpiredError)
        assert not isinstance(absent.value, ExpiredError)

    def test_expired_record_is_not_deleted_on_read(self, service, metadata, blobs, clock):
        issued = service.upload("a.bin", io.BytesIO(b"x"))
        clock.advance(days=1)
        with pytest.raises(NotFoundError):
            service.resolve_file(issued.identifier)
        assert metadata.files.count() == 1
        assert blobs.exists(issued.identifier)

    def test_attachment_for_binary(self, service):
        issued = service.upload("setup.unknownext", io.BytesIO(b"MZ"))
        resolved = service.resolve_file(issued.identifier)
        assert resolved.content_type == "application/octet-stream"
        assert resolved.inline is False
        _read(resolved)

    def test_client_path_never_reaches_filesystem(self, service, blobs):
        issued = service.upload("../../../tmp/evil.sh", io.BytesIO(b"#!/bin/sh"))
        assert "/" not in issued.identifier
        assert service.metadata.files.get(issued.identifier).display_name == "evil.sh"
        assert [name for name, _ in blobs.scan()] == [issued.identifier]

    @pytest.mark.parametrize("identifier", ["../secret", "..", "a\\b", ""])
    def test_traversal_attempts_are_not_found(self, service, identifier):
        with pytest.raises(NotFoundError):
            service.resolve_file(identifier)

    def test_missing_blob_is_not_found(self, service, blobs):
        issued = service.upload("notes.txt", io.BytesIO(b"data"))
        blobs.remove(issued.identifier)
        with pytest.raises(NotFoundError):
            service.resolve_file(issued.identifier)

    @pytest.mark.parametrize("filename", [None, "", "   ", "dir/"])
    def test_missing_filename(self, service, metadata, filename):
        with pytest.raises(InvalidInputError):
            service.upload(filename, io.BytesIO(b"data"))
        assert metadata.files.count() == 0

    def test_missing_content(self, service):
        with pytest.raises(InvalidInputError):
            service.upload("notes.txt", None)

    def test_blob_write_failure_inserts_nothing(self, service, metadata, monkeypatch):
        def failing_write(identifier, content):
            raise StorageError("disk full")

        monkeypatch.setattr(service.blobs, "write", failing_write)
        with pytest.raises(StorageError):
            service.upload("notes.txt", io.BytesIO(b"data"))
        assert metadata.files.count() == 0

    def test_metadata_failure_removes_blob(self, service, blobs, monkeypatch):
        def failing_insert(record):
            raise StorageError("database is locked")

        monkeypatch.setattr(service.metadata.files, "insert", failing_insert)
        with pytest.raises(StorageError):
            service.upload("notes.txt", io.BytesIO(b"data"))
        assert list(blobs.scan()) == []


class TestUploadCollisions:
    """Identifier collisions are retried with a fresh identifier"""

    def _service(self, metadata, blobs, test_settings, clock, generator):
        return ContentService(
            metadata=metadata,
            blobs=blobs,
            generator=generator,
            settings=test_settings,
            clock=clock,
        )

    def test_blob_collision_retries(
        self, metadata, blobs, test_settings, clock, scripted_generator
    ):
        generator = scripted_generator(["AAAAAAAA", "AAAAAAAA", "BBBBBBBB"])
        service = self._service(metadata, blobs, test_settings, clock, generator)

        first = service.upload("a.txt", io.BytesIO(b"first"))
        second = service.upload("b.txt", io.BytesIO(b"second"))

        assert first.identifier == "AAAAAAAA.txt"
        assert second.identifier == "BBBBBBBB.txt"
        assert _read(service.resolve_file(first.identifier)) == b"first"
        assert _read(service.resolve_file(second.identifier)) == b"second"
        assert generator.calls == 3

    def test_metadata_collision_moves_blob(
        self, metadata, blobs, test_settings, clock, scripted_generator
    ):
        """A row whose blob was already reclaimed still blocks its identifier"""
        metadata.files.insert(
            FileRecord(identifier="CCCCCCCC.txt", display_name="old.txt", expires_at=clock())
        )
        generator = scripted_generator(["CCCCCCCC", "DDDDDDDD"])
        service = self._service(metadata, blobs, test_settings, clock, generator)

        issued = service.upload("new.txt", io.BytesIO(b"new bytes"))

        assert issued.identifier == "DDDDDDDD.txt"
        assert not blobs.exists("CCCCCCCC.txt")
        assert _read(service.resolve_file("DDDDDDDD.txt")) == b"new bytes"
        assert metadata.files.get("CCCCCCCC.txt").display_name == "old.txt"

    def test_blob_reclaimed_during_collision_is_storage_error(
        self, metadata, blobs, test_settings, clock, scripted_generator, monkeypatch
    ):
        """The sweeper removes the expired row's blob path right after the write"""
        metadata.files.insert(
            FileRecord(identifier="CCCCCCCC.txt", display_name="old.txt", expires_at=clock())
        )
        generator = scripted_generator(["CCCCCCCC", "DDDDDDDD"])
        service = self._service(metadata, blobs, test_settings, clock, generator)

        real_write = blobs.write

        def write_then_reclaim(identifier, content):
            size = real_write(identifier, content)
            blobs.remove(identifier)
            return size

        monkeypatch.setattr(blobs, "write", write_then_reclaim)

        with pytest.raises(StorageError):
            service.upload("new.txt", io.BytesIO(b"new bytes"))
        assert list(blobs.scan()) == []
        assert metadata.files.count() == 1
        with pytest.raises(NotFoundError):
            metadata.files.get("DDDDDDDD.txt")

    def test_exhausted_retries(
        self, metadata, blobs, test_settings, clock, scripted_generator
    ):
        metadata.files.insert(
            FileRecord(identifier="EEEEEEEE.txt", display_name="x.txt", expires_at=clock())
        )
        attempts = test_settings.IDENTIFIER_MAX_ATTEMPTS
        generator = scripted_generator(["EEEEEEEE"] * attempts)
        service = self._service(metadata, blobs, test_settings, clock, generator)

        with pytest.raises(ExhaustedRetriesError):
            service.upload("y.txt", io.BytesIO(b"y"))
        assert generator.calls == attempts
        assert metadata.files.count() == 1
        assert list(blobs.scan()) == []

    def test_concurrent_uploads_with_same_identifier(
        self, tmp_path, blobs, test_settings, clock, scripted_generator
    ):
        """Both writers succeed with distinct identifiers and keep their bytes"""
        engine = create_engine(
            f"sqlite:///{tmp_path / 'concurrent.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        create_db_and_tables(engine)
        generator = scripted_generator(["SAMESAME", "SAMESAME"])
        service = self._service(MetadataStore(engine), blobs, test_settings, clock, generator)
        start = threading.Barrier(2)

        def upload(payload):
            start.wait()
            return service.upload("same.txt", io.BytesIO(payload))

        try:
            with ThreadPoolExecutor(max_workers=2) as pool:
                results = list(pool.map(upload, [b"one", b"two"]))

            identifiers = {issued.identifier for issued in results}
            assert len(identifiers) == 2
            assert "SAMESAME.txt" in identifiers
            contents = {_read(service.resolve_file(issued.identifier)) for issued in results}
            assert contents == {b"one", b"two"}
            assert service.stats().files == 2
        finally:
            SQLModel.metadata.drop_all(engine)
            engine.dispose()


class TestFileRoutes:
    """Test /upload and /{identifier}"""

    def test_upload_and_download(self, client):
        response = client.post(
            "/upload",
            files={"file": ("notes.txt", b"0123456789", "text/plain")},
        )
        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "File uploaded successfully"
        assert data["url"] == f"http://testserver/{data['identifier']}"

        response = client.get(f"/{data['identifier']}")
        assert response.status_code == 200
        assert response.content == b"0123456789"
        assert response.headers["content-type"].startswith("text/plain")
        assert response.headers["content-disposition"] == "inline; filename*=UTF-8''notes.txt"

    def test_upload_long_expiry(self, client, service, test_settings, clock):
        response = client.post(
            "/upload",
            files={"file": ("data.bin", b"\x00\x01", "application/octet-stream")},
            data={"long": "true"},
        )
        assert response.status_code == 201
        identifier = response.json()["identifier"]
        record = service.metadata.files.get(identifier)
        assert record.expires_at == clock() + test_settings.long_ttl

        response = client.get(f"/{identifier}")
        assert response.headers["content-disposition"].startswith("attachment;")

    def test_public_base_url(self, client, service):
        service.settings.PUBLIC_BASE_URL = "https://drop.example.com/"
        response = client.post("/upload", files={"file": ("a.txt", b"a", "text/plain")})
        data = response.json()
        assert data["url"] == f"https://drop.example.com/{data['identifier']}"

    def test_upload_without_file(self, client):
        response = client.post("/upload", data={"long": "true"})
        assert response.status_code == 422

    def test_unknown_and_expired_look_the_same(self, client, clock):
        response = client.post("/upload", files={"file": ("a.txt", b"a", "text/plain")})
        identifier = response.json()["identifier"]
        clock.advance(hours=2)

        expired = client.get(f"/{identifier}")
        unknown = client.get("/doesnotexist.txt")
        assert expired.status_code == unknown.status_code == 404
        assert expired.json() == unknown.json() == {"detail": "Not found"}

    def test_backslash_traversal_is_not_found(self, client):
        response = client.get("/..%5C..%5Cetc%5Cpasswd")
        assert response.status_code == 404

    def test_storage_error_is_server_error(self, client, service, monkeypatch):
        def failing_write(identifier, content):
            raise StorageError("disk full")

        monkeypatch.setattr(service.blobs, "write", failing_write)
        response = client.post("/upload", files={"file": ("a.txt", b"a", "text/plain")})
        assert response.status_code == 500
