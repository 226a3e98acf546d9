"""Upstream live-traffic feed: HTTP fetch and payload parsing."""

from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Any, List, Mapping, Optional

import pandas as pd
import requests

from fixwatch.engine.tracks import AircraftSample

logger = logging.getLogger(__name__)


class FeedError(RuntimeError):
    """The feed could not be fetched or did not look like a traffic snapshot."""


def _optional_float(value: object) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _optional_text(value: object) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_timestamp(value: object) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        stamp = pd.to_datetime(value, utc=True)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(stamp):
        return None
    return stamp.floor("us").to_pydatetime()


def parse_pilot(entry: Mapping[str, Any]) -> AircraftSample:
    """Convert one ``pilots[]`` entry into an :class:`AircraftSample`."""
    if not isinstance(entry, Mapping):
        raise ValueError(f"pilot entry must be an object, got {type(entry).__name__}")
    raw_id = entry.get("cid")
    if raw_id is None or str(raw_id).strip() == "":
        raise ValueError("pilot entry has no cid")
    flight_plan = entry.get("flight_plan") or {}
    if not isinstance(flight_plan, Mapping):
        flight_plan = {}
    return AircraftSample(
        id=str(raw_id).strip(),
        callsign=_optional_text(entry.get("callsign")),
        route=_optional_text(flight_plan.get("route")),
        destination=_optional_text(flight_plan.get("arrival")),
        latitude=_optional_float(entry.get("latitude")),
        longitude=_optional_float(entry.get("longitude")),
        heading=_optional_float(entry.get("heading")),
        groundspeed=_optional_float(entry.get("groundspeed")),
        altitude=_optional_float(entry.get("altitude")),
        observed_at=_parse_timestamp(entry.get("last_updated")),
    )


def parse_feed_payload(payload: object) -> List[AircraftSample]:
    """Return every usable pilot in a feed payload, skipping malformed ones."""
    if not isinstance(payload, Mapping):
        raise FeedError("Feed payload is not a JSON object")
    pilots = payload.get("pilots")
    if not isinstance(pilots, list):
        raise FeedError("Feed payload has no 'pilots' list")
    samples: List[AircraftSample] = []
    skipped = 0
    for entry in pilots:
        try:
            samples.append(parse_pilot(entry))
        except ValueError as exc:
            skipped += 1
            logger.debug("Skipping malformed pilot entry: %s", exc)
    if skipped:
        logger.info("Skipped %d malformed pilot entries out of %d", skipped, len(pilots))
    return samples


class FeedClient:
    """Fetches one traffic snapshot per call."""

    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.session.headers.setdefault("Accept", "application/json")

    def fetch(self) -> List[AircraftSample]:
        try:
            response = self.session.get(self.url, timeout=self.timeout_seconds)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise FeedError(f"Failed to fetch {self.url}: {exc}") from exc
        except ValueError as exc:
            raise FeedError(f"Feed at {self.url} returned invalid JSON") from exc
        return parse_feed_payload(payload)
