import time
from datetime import date, datetime

__all__ = ["now", "now_ts", "today"]


def today() -> date:
    """Local calendar date. No timezone conversion."""
    return date.today()


def now() -> datetime:
    return datetime.now()


def now_ts() -> float:
    """Wall-clock instant in seconds, used for timer start/elapsed arithmetic."""
    return time.time()
