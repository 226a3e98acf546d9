"""Core reference dataclasses shared across the engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class Waypoint:
    """Named navigation fix. Coordinates are WGS84 degrees."""

    name: str
    longitude: float
    latitude: float

    @property
    def coordinate(self) -> Tuple[float, float]:
        return (self.longitude, self.latitude)


@dataclass(frozen=True)
class Airway:
    """Ordered chain of waypoints; either direction may be flown."""

    identifier: str
    waypoints: Tuple[Waypoint, ...]

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(wp.name for wp in self.waypoints)

    def index_of(self, name: str) -> Optional[int]:
        for idx, waypoint in enumerate(self.waypoints):
            if waypoint.name == name:
                return idx
        return None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.identifier}({'-'.join(self.names)})"


@dataclass(frozen=True)
class Region:
    """Facility geofence. ``geometry`` is a shapely polygon or ``None``."""

    id: str
    name: Optional[str] = None
    geometry: Optional[object] = None

    @property
    def is_usable(self) -> bool:
        geom = self.geometry
        if geom is None or geom.is_empty:
            return False
        return bool(geom.is_valid) and geom.geom_type in {"Polygon", "MultiPolygon"}
