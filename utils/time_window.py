from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from utils.errors import TimezoneResolutionError


@dataclass(frozen=True)
class LocalClock:
    date_key: str  # YYYY-MM-DD in the user's zone
    hhmm: str


def parse_hhmm(hhmm: Optional[str]) -> Optional[Tuple[int, int]]:
    # Schedules fetched from prayer-time APIs can look like "05:00 (PKT)".
    s = str(hhmm or "").strip().split(" ", 1)[0]
    if ":" not in s:
        return None
    a, b = s.split(":", 1)
    try:
        h = int(a)
        m = int(b[:2])
    except ValueError:
        return None
    if not (0 <= h <= 23 and 0 <= m <= 59):
        return None
    return h, m


def to_minutes(hhmm: Optional[str]) -> Optional[int]:
    parsed = parse_hhmm(hhmm)
    if not parsed:
        return None
    h, m = parsed
    return h * 60 + m


def is_due(current_hhmm: str, target_hhmm: str, window_minutes: int, offset_minutes: int = 0) -> bool:
    """True when ``current`` lies in ``[target + offset, target + offset + window)``.

    Minutes are counted from midnight, so a window running past 23:59 does not
    wrap into the next day.
    """
    current = to_minutes(current_hhmm)
    target = to_minutes(target_hhmm)
    if current is None or target is None or window_minutes <= 0:
        return False
    start = target + offset_minutes
    return start <= current < start + window_minutes


def resolve_zone(tz_name: Optional[str]) -> ZoneInfo:
    name = (tz_name or "").strip()
    if not name:
        raise TimezoneResolutionError(tz_name, "empty")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        raise TimezoneResolutionError(tz_name, str(e)) from e


def local_clock(now: datetime, tz_name: Optional[str]) -> LocalClock:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(resolve_zone(tz_name))
    return LocalClock(date_key=local.date().isoformat(), hhmm=local.strftime("%H:%M"))
