"""
Initialize the database and the storage root
"""
from pathlib import Path
from core.config import get_settings
from core.db import create_db_and_tables, ensure_sqlite_directory
from core.logger import logger


def main():
  settings = get_settings()
  ensure_sqlite_directory(settings.SQLALCHEMY_DATABASE_URI)
  logger.info("Create tables...")
  create_db_and_tables()
  logger.info("Create storage root %s", settings.STORAGE_ROOT)
  Path(settings.STORAGE_ROOT).mkdir(parents=True, exist_ok=True)


if __name__ == "__main__":
  main()
