"""
Database configuration
"""
from pathlib import Path
from sqlalchemy.engine import make_url
from sqlmodel import SQLModel, create_engine
from core.config import get_settings

# Create engine lazily to allow test configuration to be applied
_engine = None


def _connect_args(uri: str) -> dict:
    """SQLite connections are shared by request threads and the sweeper"""
    if make_url(uri).get_backend_name() == "sqlite":
        return {"check_same_thread": False}
    return {}


def ensure_sqlite_directory(uri: str) -> None:
    """Create the parent directory of a file-backed SQLite database"""
    url = make_url(uri)
    if url.get_backend_name() != "sqlite":
        return
    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)


def get_engine():
    """
    Get or create the database engine.
    This lazy initialization allows test settings to be applied properly.
    """
    global _engine
    if _engine is None:
        uri = str(get_settings().SQLALCHEMY_DATABASE_URI)
        _engine = create_engine(uri, echo=False, connect_args=_connect_args(uri))
    return _engine


def reset_engine():
    """
    Reset the engine to None.
    This is useful for tests that need to switch between different settings.
    """
    global _engine
    _engine = None


def create_db_and_tables(engine=None):
    """Create the files and urls tables if they do not exist"""
    # Register the table models on SQLModel.metadata
    import api.files.models  # noqa: F401
    import api.urls.models  # noqa: F401

    SQLModel.metadata.create_all(engine or get_engine())
