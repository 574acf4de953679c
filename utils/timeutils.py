"""
Time helpers shared by the token core and the API.

All timestamps are naive UTC datetimes, matching how the DateTime columns
round-trip through SQLite.
"""
from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone

_UNITS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}

_DURATION_RE = re.compile(r"^(\d+)([smhdw])$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_expiration(value: str) -> timedelta:
    """Parse durations such as "15m", "7d" or "3600s" into a timedelta."""
    match = _DURATION_RE.match((value or "").strip())
    if not match:
        raise ValueError(f"Invalid expiration format: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _UNITS[unit])
