"""Timestamp helpers shared by the repositories.

SQLite hands back naive datetimes even for ``DateTime(timezone=True)``
columns; every value leaving a repository is normalized to UTC.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to a naive datetime; leave aware values and None alone."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
