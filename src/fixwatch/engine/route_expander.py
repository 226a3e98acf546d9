"""Expand compact flight-plan route strings into ordered waypoint lists."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from fixwatch.reference.airways import AirwayIndex

logger = logging.getLogger(__name__)


def tokenize_route(raw_route: Optional[str]) -> List[str]:
    """Split a route on whitespace, dropping ``/speed-level`` suffixes.

    ``"KEEKA/N0450F360 L455 KINCH"`` -> ``["KEEKA", "L455", "KINCH"]``.
    """
    if not raw_route:
        return []
    tokens: List[str] = []
    for chunk in str(raw_route).split():
        token = chunk.split("/", 1)[0].strip().upper()
        if token:
            tokens.append(token)
    return tokens


class RouteExpander:
    """Turns a raw route into the de-duplicated sequence of fixes it overflies."""

    def __init__(self, airways: AirwayIndex):
        self.airways = airways

    def expand(self, raw_route: Optional[str]) -> Tuple[str, ...]:
        tokens = tokenize_route(raw_route)
        expanded: List[str] = []
        seen = set()

        def _append(name: str) -> None:
            if name not in seen:
                seen.add(name)
                expanded.append(name)

        for idx, token in enumerate(tokens):
            if not self.airways.is_airway(token):
                _append(token)
                continue
            entry = tokens[idx - 1] if idx > 0 else None
            exit_ = tokens[idx + 1] if idx + 1 < len(tokens) else None
            for name in self._airway_slice(token, entry, exit_):
                _append(name)
        return tuple(expanded)

    def _airway_slice(self, airway_id: str, entry: Optional[str], exit_: Optional[str]) -> Sequence[str]:
        """Fixes flown on ``airway_id`` from ``entry`` to ``exit_``, both inclusive."""
        if entry is None or exit_ is None:
            logger.debug("Airway %s has no neighbour fix on one side; skipped", airway_id)
            return ()
        airway = self.airways.get_airway(airway_id)
        if airway is None:
            return ()
        start = airway.index_of(entry)
        end = airway.index_of(exit_)
        if start is None or end is None:
            logger.debug(
                "Airway %s does not contain %s",
                airway_id,
                entry if start is None else exit_,
            )
            return ()
        names = airway.names
        if start <= end:
            return names[start : end + 1]
        return names[end : start + 1][::-1]
