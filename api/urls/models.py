"""
Models for the short URL API
"""

from datetime import datetime
from sqlmodel import SQLModel, Field
from pydantic import ConfigDict
from core.types import UTCDateTime


class UrlRecord(SQLModel, table=True):
    """
    One shortened URL
    """
    __tablename__ = "urls"

    identifier: str = Field(primary_key=True, max_length=255)
    target_url: str
    expires_at: datetime = Field(sa_type=UTCDateTime, index=True)

    model_config = ConfigDict(from_attributes=True)


class ShortUrlCreate(SQLModel):
    """
    Represents the data needed to shorten a URL
    """
    url: str
    long: bool = False


class ShortUrlPublic(SQLModel):
    """
    Represents an issued short URL
    """
    identifier: str
    short_url: str
    expires_at: datetime
