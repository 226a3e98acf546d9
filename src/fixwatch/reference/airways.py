"""Airway catalogue loaders shared across the route expander and resolvers."""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .domain_types import Airway, Waypoint

logger = logging.getLogger(__name__)

AIRWAY_COLUMNS: Sequence[str] = ["airway", "sequence", "waypoint", "latitude", "longitude"]

# Same fix published twice with coordinates further apart than this is flagged.
COORDINATE_TOLERANCE_DEG = 0.01


def normalize_name(value: object) -> str:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return ""
    return str(value).strip().upper()


def _coerce_coordinate(value: object, label: str, limit: float, context: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{context}: {label} must be numeric, got {value!r}") from exc
    if not math.isfinite(number) or abs(number) > limit:
        raise ValueError(f"{context}: {label} out of range: {value!r}")
    return number


def make_waypoint(name: object, latitude: object, longitude: object, *, context: str = "waypoint") -> Waypoint:
    """Validate raw reference values and build a :class:`Waypoint`."""
    normalized = normalize_name(name)
    if not normalized:
        raise ValueError(f"{context}: waypoint name cannot be empty")
    lat = _coerce_coordinate(latitude, "latitude", 90.0, context)
    lon = _coerce_coordinate(longitude, "longitude", 180.0, context)
    return Waypoint(name=normalized, longitude=lon, latitude=lat)


class AirwayIndex:
    """Read-only lookup of airway chains and waypoint coordinates.

    ``extra_waypoints`` (boundary fixes, typically) are merged into the
    coordinate table so that fixes which sit on no airway stay resolvable.
    """

    def __init__(self, airways: Iterable[Airway], extra_waypoints: Iterable[Waypoint] = ()):
        self._airways: Dict[str, Airway] = {}
        self._waypoints: Dict[str, Waypoint] = {}
        for airway in airways:
            if airway.identifier in self._airways:
                raise ValueError(f"Airway {airway.identifier} defined twice")
            self._airways[airway.identifier] = airway
            for waypoint in airway.waypoints:
                self._register(waypoint, source=airway.identifier)
        for waypoint in extra_waypoints:
            self._register(waypoint, source="boundary fixes")

    def _register(self, waypoint: Waypoint, *, source: str) -> None:
        known = self._waypoints.get(waypoint.name)
        if known is None:
            self._waypoints[waypoint.name] = waypoint
            return
        drift = max(
            abs(known.latitude - waypoint.latitude),
            abs(known.longitude - waypoint.longitude),
        )
        if drift > COORDINATE_TOLERANCE_DEG:
            logger.warning(
                "Waypoint %s from %s disagrees with an earlier definition by %.3f deg; keeping the first.",
                waypoint.name,
                source,
                drift,
            )

    # ------------------------------------------------------------------ loaders
    @classmethod
    def from_csv(cls, path: str | Path, extra_waypoints: Iterable[Waypoint] = ()) -> "AirwayIndex":
        """Load airways from a CSV with one row per (airway, sequence) entry."""
        csv_path = Path(path)
        if not csv_path.exists():
            raise FileNotFoundError(f"Airway table not found at {csv_path}")
        header = pd.read_csv(csv_path, nrows=0)
        missing = [column for column in AIRWAY_COLUMNS if column not in header.columns]
        if missing:
            raise ValueError(f"{csv_path} is missing required columns: {', '.join(missing)}")
        df = pd.read_csv(csv_path, usecols=list(AIRWAY_COLUMNS))
        df["airway"] = df["airway"].map(normalize_name)
        df["sequence"] = pd.to_numeric(df["sequence"], errors="coerce")
        if df["sequence"].isna().any():
            raise ValueError(f"{csv_path} has rows with a missing or non-numeric sequence")

        airways: List[Airway] = []
        for airway_id, group in df.groupby("airway", sort=True):
            if not airway_id:
                raise ValueError(f"{csv_path} has rows without an airway identifier")
            ordered = group.sort_values("sequence", kind="mergesort")
            if ordered["sequence"].duplicated().any():
                raise ValueError(f"Airway {airway_id} repeats a sequence number in {csv_path}")
            waypoints: List[Waypoint] = []
            for row in ordered.itertuples(index=False):
                waypoints.append(
                    make_waypoint(
                        row.waypoint,
                        row.latitude,
                        row.longitude,
                        context=f"airway {airway_id} seq {row.sequence}",
                    )
                )
            if len(waypoints) < 2:
                logger.warning("Airway %s has fewer than two fixes in %s", airway_id, csv_path)
            airways.append(Airway(identifier=airway_id, waypoints=tuple(waypoints)))
        index = cls(airways, extra_waypoints)
        logger.info(
            "Loaded %d airways (%d distinct waypoints) from %s",
            len(index._airways),
            len(index._waypoints),
            csv_path,
        )
        return index

    # ---------------------------------------------------------------- queries
    def is_airway(self, identifier: str) -> bool:
        return identifier in self._airways

    def get_airway(self, identifier: str) -> Optional[Airway]:
        return self._airways.get(identifier)

    def get_waypoint(self, name: str) -> Optional[Waypoint]:
        return self._waypoints.get(name)

    def coordinate_of(self, name: str) -> Optional[Tuple[float, float]]:
        waypoint = self._waypoints.get(name)
        return waypoint.coordinate if waypoint is not None else None

    @property
    def airway_ids(self) -> List[str]:
        return sorted(self._airways)

    def __len__(self) -> int:
        return len(self._airways)
