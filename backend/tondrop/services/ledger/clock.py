from datetime import datetime, timezone

from flask import current_app


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def now() -> datetime:
    """Current instant from the configured clock (``CLOCK``), as aware UTC."""
    clock = current_app.config.get('CLOCK') or utcnow
    return as_utc(clock())


def as_utc(value):
    """Attach UTC to naive values (as stored) and convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_storage(value):
    """Naive UTC, the form DateTime columns hold."""
    if value is None:
        return None
    return as_utc(value).replace(tzinfo=None)


def parse_instant(value) -> datetime:
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Invalid instant: {value!r}")
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return as_utc(datetime.fromisoformat(text))
