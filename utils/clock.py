from __future__ import annotations

import time
from datetime import date, datetime, timedelta
from typing import Tuple

DAY_MS = 86_400_000


def now_ms() -> int:
    return int(time.time() * 1000)


def local_date(ts_ms: int) -> date:
    """Calendar day of an epoch-ms timestamp in the device timezone."""
    return datetime.fromtimestamp(ts_ms / 1000).date()


def day_bounds(day: date) -> Tuple[int, int]:
    """Local-midnight start of ``day`` and of the following day, in epoch ms."""
    start = datetime(day.year, day.month, day.day)
    end = start + timedelta(days=1)
    return int(start.timestamp() * 1000), int(end.timestamp() * 1000)
