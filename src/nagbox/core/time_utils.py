# src/nagbox/core/time_utils.py

from __future__ import annotations

import time
from datetime import datetime


def now_ms() -> int:
    return int(time.time() * 1000)


def ts_local(ts_ms: int | None = None) -> str:
    if ts_ms is None:
        dt = datetime.now().astimezone()
    else:
        dt = datetime.fromtimestamp(ts_ms / 1000).astimezone()
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def format_started(ts_ms: int, *, now: datetime | None = None) -> str:
    """
    Human-friendly start time.

    Today -> "Started at 14:05"; this year -> "Started on Mar 3 at 14:05";
    otherwise the year is included as well.
    """
    then = datetime.fromtimestamp(ts_ms / 1000).astimezone()
    now = (now or datetime.now()).astimezone()
    time_str = then.strftime("%H:%M")

    if then.year == now.year:
        if then.timetuple().tm_yday == now.timetuple().tm_yday:
            return f"Started at {time_str}"
        date_str = f"{then.strftime('%b')} {then.day}"
    else:
        date_str = f"{then.strftime('%b')} {then.day}, {then.year}"
    return f"Started on {date_str} at {time_str}"


def format_interval(minutes: int) -> str:
    return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"
