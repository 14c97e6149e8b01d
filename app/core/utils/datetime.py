"""날짜/시간 유틸리티"""

from datetime import datetime, timezone

UTC = timezone.utc


def now_utc() -> datetime:
    """현재 UTC 시간 반환"""
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """naive datetime은 UTC로 간주하여 timezone을 붙인다"""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def seconds_between(start: datetime, end: datetime) -> float:
    """두 시각 사이의 경과 시간 (초)"""
    return (ensure_utc(end) - ensure_utc(start)).total_seconds()
