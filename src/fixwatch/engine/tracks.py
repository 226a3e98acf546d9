"""Per-cycle sample records and the batch classification pipeline."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import AbstractSet, Dict, Iterable, List, Optional, Tuple

from fixwatch.reference.airways import AirwayIndex
from fixwatch.reference.geofence import RegionTable

from .boundary_resolver import BoundaryResolver
from .classifier import Classifier, Direction
from .eta import as_utc, crossing_minutes, estimate_crossing, minutes_until, utc_now
from .geodesy import is_valid_position
from .route_expander import RouteExpander

logger = logging.getLogger(__name__)

DEFAULT_MAX_LIST_LENGTH = 15
DEFAULT_HORIZON_MINUTES = 45
# Groundspeed (kt) to the rough Mach figure shown on the board.
MACH_DIVISOR = 666.0


@dataclass(frozen=True)
class AircraftSample:
    """One aircraft report from a single feed snapshot."""

    id: str
    callsign: Optional[str] = None
    route: Optional[str] = None
    destination: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    heading: Optional[float] = None
    groundspeed: Optional[float] = None
    altitude: Optional[float] = None
    observed_at: Optional[datetime] = None


@dataclass(frozen=True)
class ClassifiedTrack:
    id: str
    callsign: str
    boundary_fix: str
    raw_route: str
    center_estimate: str
    heading: Optional[float]
    latitude: float
    longitude: float
    direction: Direction
    observed_at: datetime
    altitude: Optional[float] = None
    groundspeed: Optional[float] = None

    def to_payload(self) -> Dict[str, object]:
        """Row as pushed to viewers."""
        mach = ""
        if self.groundspeed:
            mach = f"{self.groundspeed / MACH_DIVISOR:.2f}"
        return {
            "id": self.id,
            "Callsign": self.callsign,
            "Waypoint": self.boundary_fix,
            "Center Estimate": self.center_estimate,
            "Altitude": "" if self.altitude is None else str(int(self.altitude)),
            "Mach": mach,
            "Status": "red",
            "Heading": self.heading,
            "Route": self.raw_route,
            "Direction": self.direction.value,
            "lat": self.latitude,
            "lon": self.longitude,
            "utc": int(self.observed_at.timestamp() * 1000),
        }


def _observed(sample: AircraftSample, now: datetime) -> datetime:
    return as_utc(sample.observed_at) if sample.observed_at else now


@dataclass
class BatchResult:
    inbound: List[ClassifiedTrack]
    outbound: List[ClassifiedTrack]
    stats: Dict[str, int] = field(default_factory=dict)


class RouteClassificationEngine:
    """Runs every sample of a feed snapshot through expansion, resolution,
    classification and the crossing-time horizon, and ranks the survivors."""

    def __init__(
        self,
        regions: RegionTable,
        airways: AirwayIndex,
        boundary_fixes: AbstractSet[str],
        classifier: Classifier,
        *,
        max_list_length: int = DEFAULT_MAX_LIST_LENGTH,
        horizon_minutes: int = DEFAULT_HORIZON_MINUTES,
    ) -> None:
        if max_list_length <= 0:
            raise ValueError("max_list_length must be positive.")
        if horizon_minutes <= 0:
            raise ValueError("horizon_minutes must be positive.")
        self.regions = regions
        self.airways = airways
        self.classifier = classifier
        self.expander = RouteExpander(airways)
        self.resolver = BoundaryResolver(airways, boundary_fixes)
        self.max_list_length = int(max_list_length)
        self.horizon_minutes = int(horizon_minutes)

    # ------------------------------------------------------------------ public API
    def process_batch(
        self, samples: Iterable[AircraftSample], now: Optional[datetime] = None
    ) -> BatchResult:
        """Classify a whole snapshot. A failing sample never affects the others."""
        cycle_time = as_utc(now) if now is not None else utc_now()
        stats = {
            "samples": 0,
            "duplicates": 0,
            "no_position": 0,
            "no_region": 0,
            "no_boundary_fix": 0,
            "unclassified": 0,
            "beyond_horizon": 0,
            "errors": 0,
        }
        unique = self._latest_per_id(samples, cycle_time, stats)

        inbound: List[ClassifiedTrack] = []
        outbound: List[ClassifiedTrack] = []
        for sample in unique:
            try:
                track, reason = self.classify_sample(sample, cycle_time)
            except Exception:
                stats["errors"] += 1
                logger.exception("Failed to classify sample %s; dropping it", sample.id)
                continue
            if track is None:
                stats[reason] += 1
                continue
            if track.direction is Direction.INBOUND:
                inbound.append(track)
            else:
                outbound.append(track)

        inbound = self._rank(inbound)
        outbound = self._rank(outbound)
        stats["inbound"] = len(inbound)
        stats["outbound"] = len(outbound)
        return BatchResult(inbound=inbound, outbound=outbound, stats=stats)

    def classify_sample(
        self, sample: AircraftSample, now: datetime
    ) -> Tuple[Optional[ClassifiedTrack], str]:
        """Return ``(track, "")`` or ``(None, reason)`` for one sample."""
        now = as_utc(now)
        if not is_valid_position(sample.latitude, sample.longitude):
            return None, "no_position"
        lat, lon = float(sample.latitude), float(sample.longitude)

        region = self.regions.region_of(lat, lon)
        if region is None:
            return None, "no_region"

        expanded = self.expander.expand(sample.route)
        fix = self.resolver.resolve(expanded, lat, lon, raw_route=sample.route)
        if fix is None:
            return None, "no_boundary_fix"

        direction = self.classifier.classify(region, fix, sample.heading, sample.destination)
        if direction is None:
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "No classification for %s in %s (heading=%s, dest=%s)",
                    sample.callsign,
                    region.id,
                    sample.heading,
                    sample.destination,
                )
            return None, "unclassified"

        # HH:MMZ wraps at midnight; bound the flight time itself first.
        flight_minutes = crossing_minutes(lat, lon, fix, sample.groundspeed, self.airways)
        if flight_minutes is None or flight_minutes > self.horizon_minutes:
            return None, "beyond_horizon"

        estimate = estimate_crossing(lat, lon, fix, sample.groundspeed, self.airways, now=now)
        ahead = minutes_until(estimate, now)
        if ahead is None or ahead > self.horizon_minutes:
            return None, "beyond_horizon"

        return (
            ClassifiedTrack(
                id=sample.id,
                callsign=sample.callsign or "",
                boundary_fix=fix,
                raw_route=sample.route or "",
                center_estimate=estimate,
                heading=sample.heading,
                latitude=lat,
                longitude=lon,
                direction=direction,
                observed_at=_observed(sample, now),
                altitude=sample.altitude,
                groundspeed=sample.groundspeed,
            ),
            "",
        )

    # ---------------------------------------------------------------- internals
    @staticmethod
    def _latest_per_id(
        samples: Iterable[AircraftSample], now: datetime, stats: Dict[str, int]
    ) -> List[AircraftSample]:
        latest: Dict[str, AircraftSample] = {}
        for sample in samples:
            stats["samples"] += 1
            known = latest.get(sample.id)
            if known is None:
                latest[sample.id] = sample
                continue
            stats["duplicates"] += 1
            if _observed(sample, now) >= _observed(known, now):
                latest[sample.id] = sample
        return list(latest.values())

    def _rank(self, tracks: List[ClassifiedTrack]) -> List[ClassifiedTrack]:
        ordered = sorted(tracks, key=lambda track: track.observed_at)
        return ordered[: self.max_list_length]
