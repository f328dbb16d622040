"""Clock helpers."""
from __future__ import annotations

import time
from datetime import datetime, timezone

HOUR = 3600
DAY = 24 * HOUR


def now_ts() -> int:
    """Current unix time in whole seconds."""
    return int(time.time())


def now_utc() -> str:
    """Current UTC time as ISO 8601 string."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
