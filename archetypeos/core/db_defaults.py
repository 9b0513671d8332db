"""Database-aware helpers for SQL column defaults."""

from datetime import datetime, timezone

from sqlalchemy.sql import text


def timestamp_default():
    """Return a server-side timestamp default portable across dialects."""
    return text("CURRENT_TIMESTAMP")


def utcnow() -> datetime:
    """Timezone-aware UTC now used for Python-side timestamps."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from SQLite."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


__all__ = ["timestamp_default", "utcnow", "as_utc"]
