#!/usr/bin/env python
'''
This script removes blobs left without a file record,
e.g. by a crash between writing the blob and inserting its row
'''
import sys
from datetime import timedelta

from api.content.services import ContentService
from core.config import get_settings
from core.db import create_db_and_tables, get_engine
from core.logger import logger
from core.sweeper import Sweeper


def main(argv):
    settings = get_settings()
    grace_seconds = int(argv[1]) if len(argv) > 1 else settings.ORPHAN_GRACE_SECONDS

    engine = get_engine()
    create_db_and_tables(engine)

    service = ContentService.from_settings(settings, engine)
    sweeper = Sweeper.from_settings(settings, service.metadata, service.blobs)
    removed = sweeper.reclaim_orphans(timedelta(seconds=grace_seconds))

    logger.info(f"Orphan scan completed. Blobs removed: {removed}")


if __name__ == "__main__":
    main(sys.argv)
