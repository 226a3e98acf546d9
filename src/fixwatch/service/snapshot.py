"""Immutable published board state and its single-writer holder."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from fixwatch.engine.tracks import ClassifiedTrack


@dataclass(frozen=True)
class Snapshot:
    """Lists produced by one completed cycle."""

    inbound: Tuple[ClassifiedTrack, ...] = ()
    outbound: Tuple[ClassifiedTrack, ...] = ()
    produced_at: Optional[datetime] = None
    cycle: int = 0
    stats: Dict[str, int] = field(default_factory=dict)

    def inbound_payload(self) -> List[Dict[str, object]]:
        return [track.to_payload() for track in self.inbound]

    def outbound_payload(self) -> List[Dict[str, object]]:
        return [track.to_payload() for track in self.outbound]

    def to_payload(self) -> Dict[str, object]:
        return {
            "cycle": self.cycle,
            "produced_at": self.produced_at.isoformat() if self.produced_at else None,
            "inbound": self.inbound_payload(),
            "outbound": self.outbound_payload(),
        }


EMPTY_SNAPSHOT = Snapshot()


class SnapshotHolder:
    """Holds the latest complete snapshot; swaps are atomic."""

    def __init__(self, initial: Snapshot = EMPTY_SNAPSHOT):
        self._lock = threading.Lock()
        self._current = initial

    @property
    def current(self) -> Snapshot:
        with self._lock:
            return self._current

    def replace(self, snapshot: Snapshot) -> Snapshot:
        """Install ``snapshot`` and return the one it replaced."""
        with self._lock:
            previous, self._current = self._current, snapshot
        return previous
