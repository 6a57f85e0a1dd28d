"""
Models for the Files API
"""

from datetime import datetime
from sqlmodel import SQLModel, Field
from pydantic import ConfigDict
from core.types import UTCDateTime


class FileRecord(SQLModel, table=True):
    """
    One uploaded file.

    The identifier is also the blob's name under the storage root and the
    public path segment. display_name is the client's filename and is only
    used for the content type and download headers, never as a path.
    """
    __tablename__ = "files"

    identifier: str = Field(primary_key=True, max_length=255)
    display_name: str = Field(max_length=255)
    expires_at: datetime = Field(sa_type=UTCDateTime, index=True)

    model_config = ConfigDict(from_attributes=True)


class FileUploadPublic(SQLModel):
    """Response model for file upload"""

    identifier: str
    url: str
    expires_at: datetime
    message: str = "File uploaded successfully"
