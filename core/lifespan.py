"""
Define application startup and shutdown procedures
"""

import asyncio
import re
from contextlib import asynccontextmanager
from fastapi import FastAPI

from api.content.services import ContentService
from core.config import get_settings
from core.db import create_db_and_tables, ensure_sqlite_directory, get_engine
from core.logger import logger
from core.sweeper import Sweeper


def _log_setting(key: str, value):
    """Log a setting, masking the password in the database URI"""
    if key == "SQLALCHEMY_DATABASE_URI" and value is not None:
        value = re.sub(r"://(.*?):(.*?)@", r"://\1:*****@", value)
    logger.info("  %s: %s", key, value)


# Handle startup/shutdown tasks
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("In lifespan...starting up")

    settings = get_settings()
    logger.info("Configuration Settings:")
    for key, value in settings.model_dump().items():
        _log_setting(key, value)

    logger.info("Initializing database...")
    ensure_sqlite_directory(settings.SQLALCHEMY_DATABASE_URI)
    engine = get_engine()
    create_db_and_tables(engine)

    service = ContentService.from_settings(settings, engine)
    app.state.content_service = service

    sweeper = Sweeper.from_settings(settings, service.metadata, service.blobs)
    sweeper_task = asyncio.create_task(sweeper.run())

    logger.info("In lifespan...yield")
    try:
        yield
    finally:
        # Shutdown
        logger.info("In lifespan...shutting down")
        sweeper.stop()
        await sweeper_task
        engine.dispose()
