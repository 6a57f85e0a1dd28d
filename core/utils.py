"""
Small helpers shared across modules
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def public_url(base_url: str, path: str) -> str:
    """Join the public base URL and a content path"""
    return base_url.rstrip("/") + path
