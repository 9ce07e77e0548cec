from datetime import datetime, timezone


def now() -> datetime:
    """Current UTC time. Tests pass explicit ``now=`` values to the services instead."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands DateTime(timezone=True) columns back as naive values
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
