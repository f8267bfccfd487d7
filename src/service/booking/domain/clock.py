from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import UUID

from uuid_utils.compat import uuid7


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything is stored in UTC"""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def new_id() -> UUID:
    """Time-ordered UUID7 as a stdlib UUID (what SQLAlchemy's Uuid type binds)"""
    return uuid7()
