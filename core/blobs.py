"""
Local filesystem blob store.

Blobs live directly under the storage root, one file per identifier, with
no subdirectories. Callers validate identifiers before they reach this
module, so every identifier here is a single path segment.
"""

import os
from collections.abc import Iterator
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO

from core.errors import DuplicateKeyError, NotFoundError, StorageError

CHUNK_SIZE = 64 * 1024


class BlobStore:
    """
    Stores uploaded bytes under a root directory.

    Blobs are created exclusively: writing to an identifier that already
    has a blob raises DuplicateKeyError and leaves the existing blob alone.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)
        self._ensure_root()

    def _ensure_root(self) -> None:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create storage directory: {self.root}") from e

    def path_for(self, identifier: str) -> Path:
        return self.root / identifier

    def write(self, identifier: str, content: BinaryIO) -> int:
        """
        Copy content into a new blob and return the number of bytes written.

        Raises:
            DuplicateKeyError: a blob with this identifier already exists
            StorageError: the blob could not be created or written; no
                partial file is left behind
        """
        path = self.path_for(identifier)
        try:
            handle = open(path, "xb")
        except FileExistsError as e:
            raise DuplicateKeyError(f"Blob '{identifier}' already exists") from e
        except OSError as e:
            raise StorageError(f"Failed to create blob '{identifier}': {e}") from e

        written = 0
        try:
            with handle:
                while True:
                    chunk = content.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    handle.write(chunk)
                    written += len(chunk)
        except OSError as e:
            path.unlink(missing_ok=True)
            raise StorageError(f"Failed to write blob '{identifier}': {e}") from e
        return written

    def open(self, identifier: str) -> BinaryIO:
        """Open a blob for reading. The caller closes the handle."""
        try:
            return open(self.path_for(identifier), "rb")
        except (FileNotFoundError, IsADirectoryError) as e:
            raise NotFoundError(identifier) from e
        except OSError as e:
            raise StorageError(f"Failed to open blob '{identifier}': {e}") from e

    def remove(self, identifier: str) -> None:
        """Delete a blob. Removing a missing blob is not an error."""
        try:
            self.path_for(identifier).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove blob '{identifier}': {e}") from e

    def move(self, source: str, target: str) -> None:
        """
        Rename a blob without replacing an existing one.

        Raises:
            DuplicateKeyError: target already exists
            NotFoundError: source does not exist
        """
        source_path = self.path_for(source)
        # os.rename would silently replace target on POSIX
        try:
            os.link(source_path, self.path_for(target))
        except FileExistsError as e:
            raise DuplicateKeyError(f"Blob '{target}' already exists") from e
        except FileNotFoundError as e:
            raise NotFoundError(source) from e
        except OSError as e:
            raise StorageError(f"Failed to move blob '{source}' to '{target}': {e}") from e
        self.remove(source)

    def exists(self, identifier: str) -> bool:
        return self.path_for(identifier).is_file()

    def scan(self) -> Iterator[tuple[str, datetime]]:
        """Yield (identifier, modified-at in UTC) for every blob"""
        try:
            entries = list(os.scandir(self.root))
        except OSError as e:
            raise StorageError(f"Failed to list storage directory: {self.root}") from e
        for entry in entries:
            try:
                if not entry.is_file():
                    continue
                modified = datetime.fromtimestamp(entry.stat().st_mtime, timezone.utc)
            except FileNotFoundError:
                # Removed since the scan started
                continue
            yield entry.name, modified
