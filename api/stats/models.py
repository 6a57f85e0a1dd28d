"""
Models for the Stats API
"""

from sqlmodel import SQLModel


class StatsPublic(SQLModel):
    """Number of stored rows per collection, expired-but-unswept included"""

    files: int
    urls: int
