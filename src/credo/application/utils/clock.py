"""Wall-clock helpers. All timestamps are epoch milliseconds."""

import time
from datetime import date, datetime


def now_ms() -> int:
    return int(time.time() * 1000)


def local_day(timestamp_ms: int) -> date:
    """Calendar day of a timestamp in the host's local timezone."""
    return datetime.fromtimestamp(timestamp_ms / 1000).date()


def format_timestamp(timestamp_ms: int | None) -> str:
    if timestamp_ms is None:
        return "never"
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M")
