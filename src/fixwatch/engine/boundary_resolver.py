"""Pick the boundary fix an aircraft is heading for along its expanded route."""

from __future__ import annotations

import logging
from typing import AbstractSet, Optional, Sequence

from fixwatch.reference.airways import AirwayIndex

from .geodesy import distance_nm, is_valid_position
from .route_expander import tokenize_route

logger = logging.getLogger(__name__)


class BoundaryResolver:
    """Nearest-waypoint anchored search for the relevant boundary fix.

    Resolution order:

    1. find the route waypoint closest to the aircraft;
    2. scan forward from just after it for a boundary fix;
    3. otherwise scan backward from it (inclusive);
    4. otherwise take the first literal boundary fix named in the raw route.
    """

    def __init__(self, airways: AirwayIndex, boundary_fixes: AbstractSet[str]):
        self.airways = airways
        self.boundary_fixes = frozenset(boundary_fixes)

    def resolve(
        self,
        expanded_route: Sequence[str],
        lat: Optional[float],
        lon: Optional[float],
        raw_route: Optional[str] = None,
    ) -> Optional[str]:
        nearest = self.nearest_index(expanded_route, lat, lon)
        if nearest is not None:
            fix = self._scan_forward(expanded_route, nearest)
            if fix is None:
                fix = self._scan_backward(expanded_route, nearest)
            if fix is not None:
                return fix
        return self.first_literal_fix(raw_route)

    def nearest_index(
        self, expanded_route: Sequence[str], lat: Optional[float], lon: Optional[float]
    ) -> Optional[int]:
        """Index of the closest resolvable waypoint; earliest wins on ties."""
        if not is_valid_position(lat, lon):
            return None
        best_idx: Optional[int] = None
        best_dist = float("inf")
        for idx, name in enumerate(expanded_route):
            waypoint = self.airways.get_waypoint(name)
            if waypoint is None:
                continue
            dist = distance_nm(float(lat), float(lon), waypoint.latitude, waypoint.longitude)
            if dist < best_dist:
                best_dist = dist
                best_idx = idx
        return best_idx

    def _scan_forward(self, route: Sequence[str], nearest: int) -> Optional[str]:
        for name in route[nearest + 1 :]:
            if name in self.boundary_fixes:
                return name
        return None

    def _scan_backward(self, route: Sequence[str], nearest: int) -> Optional[str]:
        for idx in range(nearest, -1, -1):
            if route[idx] in self.boundary_fixes:
                return route[idx]
        return None

    def first_literal_fix(self, raw_route: Optional[str]) -> Optional[str]:
        for token in tokenize_route(raw_route):
            if token in self.boundary_fixes:
                return token
        return None
