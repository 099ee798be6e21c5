from datetime import datetime, timezone


def as_utc(value: datetime) -> datetime:
    """SQLite hands timestamps back naive; everything is stored in UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
