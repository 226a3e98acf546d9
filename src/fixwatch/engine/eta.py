"""Crossing-time estimates for boundary fixes."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from fixwatch.reference.airways import AirwayIndex

from .geodesy import distance_nm, is_valid_position

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"
MINUTES_PER_DAY = 1440
# An HH:MM label is ambiguous once the crossing is a day or more away.
MAX_ESTIMATE_HOURS = 24.0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def crossing_minutes(
    lat: Optional[float],
    lon: Optional[float],
    target_fix: Optional[str],
    groundspeed_kt: Optional[float],
    airways: AirwayIndex,
) -> Optional[float]:
    """Minutes of flight from the position to ``target_fix``, or ``None``.

    ``None`` covers an unknown fix, a missing position, and a groundspeed that
    is missing, zero, negative or not finite.
    """
    if not target_fix or not is_valid_position(lat, lon):
        return None
    waypoint = airways.get_waypoint(target_fix)
    if waypoint is None:
        return None
    try:
        speed = float(groundspeed_kt)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(speed) or speed <= 0:
        return None
    minutes = distance_nm(float(lat), float(lon), waypoint.latitude, waypoint.longitude) / speed * 60.0
    return minutes if math.isfinite(minutes) else None


def estimate_crossing(
    lat: Optional[float],
    lon: Optional[float],
    target_fix: Optional[str],
    groundspeed_kt: Optional[float],
    airways: AirwayIndex,
    now: Optional[datetime] = None,
) -> str:
    """Return the UTC ``HH:MMZ`` at which the aircraft reaches ``target_fix``.

    Seconds are truncated. ``"N/A"`` is returned whenever the estimate cannot
    be made: unknown fix, missing position, or a groundspeed that is missing,
    zero, negative or not finite, or a crossing a day or more away.
    """
    minutes = crossing_minutes(lat, lon, target_fix, groundspeed_kt, airways)
    if minutes is None:
        return NOT_AVAILABLE
    if minutes >= MAX_ESTIMATE_HOURS * 60.0:
        logger.debug("Crossing estimate for %s is %.1f h out; not reported", target_fix, minutes / 60.0)
        return NOT_AVAILABLE
    start = as_utc(now) if now is not None else utc_now()
    crossing = start + timedelta(minutes=minutes)
    return crossing.strftime("%H:%MZ")


def _parse_hhmmz(token: object) -> Optional[int]:
    """Parse an ``HH:MMZ`` estimate into minutes since midnight, or ``None``."""
    if not isinstance(token, str):
        return None
    text = token.strip().upper()
    if not text.endswith("Z"):
        return None
    parts = text[:-1].split(":")
    if len(parts) != 2:
        return None
    hour_str, minute_str = parts
    if len(hour_str) != 2 or len(minute_str) != 2:
        return None
    if not hour_str.isdigit() or not minute_str.isdigit():
        return None
    hour = int(hour_str)
    minute = int(minute_str)
    if hour > 23 or minute > 59:
        return None
    return hour * 60 + minute


def minutes_until(estimate: object, now: Optional[datetime] = None) -> Optional[int]:
    """Minutes from ``now`` until the time of day named by ``estimate``.

    Estimates earlier in the day than ``now`` are taken to be tomorrow.
    """
    target = _parse_hhmmz(estimate)
    if target is None:
        return None
    current = as_utc(now) if now is not None else utc_now()
    current_minutes = current.hour * 60 + current.minute
    return (target - current_minutes) % MINUTES_PER_DAY
