"""
Application Configuration
Add constants, secrets, env variables here
"""

from datetime import timedelta
from functools import lru_cache
import os
from pathlib import Path
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load .env file into os.environ so os.getenv() works correctly
# This must happen before Settings class is instantiated
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


# Define settings class for univeral access
class Settings(BaseSettings):
    APP_NAME: str = "Dropbin"
    LOG_LEVEL: str = "INFO"
    TESTING: bool = False

    # CORS origin of the web client, if any
    client_origin: str | None = None

    # SQLAlchemy - db connection string
    SQLALCHEMY_DATABASE_URI: str = "sqlite:///./data/database.db"

    # Directory holding uploaded file bytes, one entry per identifier
    STORAGE_ROOT: str = "./data/uploads"

    # Prefix for links handed back to clients, e.g. https://drop.example.com
    # When unset the request's own base URL is used
    PUBLIC_BASE_URL: str | None = None

    # Lifetimes
    FILE_TTL_SECONDS: int = Field(default=3600, gt=0)
    URL_TTL_SECONDS: int = Field(default=3600, gt=0)
    LONG_TTL_SECONDS: int = Field(default=30 * 24 * 3600, gt=0)

    # Reclamation
    SWEEP_INTERVAL_SECONDS: float = Field(default=60, gt=0)
    ORPHAN_GRACE_SECONDS: int = Field(default=3600, gt=0)

    # Identifiers
    IDENTIFIER_LENGTH: int = Field(default=8, gt=0)
    IDENTIFIER_MAX_ATTEMPTS: int = Field(default=5, gt=0)

    @computed_field
    @property
    def file_ttl(self) -> timedelta:
        """Default lifetime of an uploaded file"""
        return timedelta(seconds=self.FILE_TTL_SECONDS)

    @computed_field
    @property
    def url_ttl(self) -> timedelta:
        """Default lifetime of a short URL"""
        return timedelta(seconds=self.URL_TTL_SECONDS)

    @computed_field
    @property
    def long_ttl(self) -> timedelta:
        """Lifetime used when the client asks for long expiry"""
        return timedelta(seconds=self.LONG_TTL_SECONDS)

    # Read environment variables from .env file, if it exists
    # extra='ignore' prevents validation errors from extra env vars
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class InMemoryDbSettings(Settings):
    """Settings used by the test suite"""
    TESTING: bool = True
    SQLALCHEMY_DATABASE_URI: str = "sqlite:///:memory:"


# Export settings
@lru_cache
def get_settings() -> Settings:
    """
    Get settings instance, cached for performance
    """
    if os.getenv("SETTINGS_MODE") == "test":
        return InMemoryDbSettings()
    return Settings()


if __name__ == "__main__":
    # To use in other modules
    # from core.config import get_settings
    print(get_settings().SQLALCHEMY_DATABASE_URI)
