from datetime import datetime, timezone

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime:
    """Horodatage UTC naïf, comme stocké en base."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
