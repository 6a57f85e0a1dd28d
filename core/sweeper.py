"""
Background reclamation of expired files and short URLs
"""

import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta

from core.blobs import BlobStore
from core.config import Settings
from core.errors import ContentError, NotFoundError
from core.logger import logger
from core.metadata import MetadataStore
from core.utils import utcnow


@dataclass
class SweepResult:
    blobs_removed: int = 0
    blob_failures: int = 0
    files_deleted: int = 0
    urls_deleted: int = 0
    errors: int = 0


class Sweeper:
    """
    Deletes expired rows and their blobs once per interval.

    Every step is best-effort: a failure is logged and the sweep carries on,
    and anything missed is picked up by the next iteration.
    """

    def __init__(
        self,
        metadata: MetadataStore,
        blobs: BlobStore,
        interval_seconds: float = 60,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.metadata = metadata
        self.blobs = blobs
        self.interval_seconds = interval_seconds
        self.clock = clock
        self._stop = asyncio.Event()

    @classmethod
    def from_settings(cls, settings: Settings, metadata: MetadataStore, blobs: BlobStore) -> "Sweeper":
        return cls(metadata, blobs, interval_seconds=settings.SWEEP_INTERVAL_SECONDS)

    def sweep_once(self) -> SweepResult:
        """Run one reclamation pass against a single cutoff"""
        cutoff = self.clock()
        result = SweepResult()

        try:
            expired_files = self.metadata.files.list_expired_before(cutoff)
        except ContentError:
            logger.error("Could not list expired files", exc_info=True)
            result.errors += 1
            expired_files = None

        # Rows are only deleted once their blobs have been visited
        if expired_files is not None:
            for identifier in expired_files:
                try:
                    self.blobs.remove(identifier)
                    result.blobs_removed += 1
                except ContentError:
                    logger.error("Could not remove blob %s", identifier, exc_info=True)
                    result.blob_failures += 1

            try:
                result.files_deleted = self.metadata.files.delete_expired_before(cutoff)
            except ContentError:
                logger.error("Could not delete expired file rows", exc_info=True)
                result.errors += 1

        try:
            result.urls_deleted = self.metadata.urls.delete_expired_before(cutoff)
        except ContentError:
            logger.error("Could not delete expired URL rows", exc_info=True)
            result.errors += 1

        return result

    def reclaim_orphans(self, grace: timedelta) -> int:
        """
        Remove blobs that have no file row.

        Only blobs older than grace are considered, since an upload in
        progress writes its blob before inserting its row.
        """
        cutoff = self.clock() - grace
        removed = 0
        try:
            scanned = list(self.blobs.scan())
        except ContentError:
            logger.error("Could not scan blob storage for orphans", exc_info=True)
            return removed
        for identifier, modified_at in scanned:
            if modified_at > cutoff:
                continue
            try:
                self.metadata.files.get(identifier)
                continue
            except NotFoundError:
                pass
            except ContentError:
                logger.error("Could not look up blob %s, skipping", identifier, exc_info=True)
                continue
            try:
                self.blobs.remove(identifier)
                removed += 1
                logger.info("Removed orphan blob %s", identifier)
            except ContentError:
                logger.error("Could not remove orphan blob %s", identifier, exc_info=True)
        return removed

    async def _wait(self) -> None:
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=self.interval_seconds)
        except asyncio.TimeoutError:
            pass

    async def run(self) -> None:
        """Sweep every interval until stop() is called or the task is cancelled"""
        logger.info("Sweeper started (interval %ss)", self.interval_seconds)
        while not self._stop.is_set():
            await self._wait()
            if self._stop.is_set():
                break
            try:
                result = await asyncio.to_thread(self.sweep_once)
            except Exception:  # pylint: disable=broad-exception-caught
                logger.error("Sweep failed", exc_info=True)
                continue
            logger.info(
                "Sweep completed - Blobs: %d, Blob failures: %d, Files: %d, URLs: %d",
                result.blobs_removed,
                result.blob_failures,
                result.files_deleted,
                result.urls_deleted,
            )
        logger.info("Sweeper stopped")

    def stop(self) -> None:
        self._stop.set()
