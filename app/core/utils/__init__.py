"""유틸리티 모듈"""

from app.core.utils.datetime import (
    UTC,
    ensure_utc,
    now_utc,
    seconds_between,
)
from app.core.utils.time import measure_time

__all__ = [
    # datetime
    "UTC",
    "now_utc",
    "ensure_utc",
    "seconds_between",
    # time measurement
    "measure_time",
]
