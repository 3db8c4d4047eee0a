"""시간 유틸리티 — UTC 기준 현재 시각 및 정규화.

Time helpers. Storage backends without timezone support (SQLite) hand back
naive datetimes; every value stored by this service is UTC.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """naive 값은 UTC로 간주 — Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
