#!/usr/bin/env python
'''
This script runs a single reclamation pass, for use from cron
when the API server is not running its own sweeper
'''
from api.content.services import ContentService
from core.config import get_settings
from core.db import create_db_and_tables, get_engine
from core.logger import logger
from core.sweeper import Sweeper


def main():
    settings = get_settings()
    engine = get_engine()
    create_db_and_tables(engine)

    service = ContentService.from_settings(settings, engine)
    sweeper = Sweeper.from_settings(settings, service.metadata, service.blobs)
    result = sweeper.sweep_once()

    logger.info(
        f"Sweep completed. Blobs removed: {result.blobs_removed}, "
        f"blob failures: {result.blob_failures}, "
        f"file rows deleted: {result.files_deleted}, "
        f"URL rows deleted: {result.urls_deleted}"
    )
    return 1 if result.errors or result.blob_failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
