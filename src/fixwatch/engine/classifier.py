"""Inbound/outbound state machine keyed by facility and heading arc."""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Mapping, Optional

from fixwatch.reference.domain_types import Region

OUTBOUND_ARC = "outbound"
INBOUND_ARC = "inbound"


class Direction(str, enum.Enum):
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"


class FacilityRole(str, enum.Enum):
    APPROACH_SIDE = "approach_side"
    FAR_SIDE = "far_side"


@dataclass(frozen=True)
class HeadingArc:
    """Inclusive compass arc from ``start`` clockwise to ``end``.

    ``HeadingArc(270, 110)`` covers 270..359 and 0..110.
    """

    start: int
    end: int

    def __post_init__(self) -> None:
        for label, value in (("start", self.start), ("end", self.end)):
            if not isinstance(value, int) or isinstance(value, bool):
                raise TypeError(f"Heading arc {label} must be an integer, got {value!r}")
            if value < 0 or value > 359:
                raise ValueError(f"Heading arc {label} must be within 0..359, got {value}")

    def contains(self, heading: float) -> bool:
        h = heading % 360.0
        if self.start <= self.end:
            return self.start <= h <= self.end
        return h >= self.start or h <= self.end

    def overlaps(self, other: "HeadingArc") -> bool:
        return any(self.contains(deg) and other.contains(deg) for deg in range(360))

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"{self.start:03d}-{self.end:03d}"


@dataclass(frozen=True)
class ArcRule:
    arc: HeadingArc
    exclude_destinations: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class FacilityPolicy:
    """Classification rules for one facility."""

    region_id: str
    role: FacilityRole
    outbound: Optional[ArcRule] = None
    inbound: Optional[ArcRule] = None
    boundary_fixes: Optional[FrozenSet[str]] = None

    def __post_init__(self) -> None:
        if self.outbound and self.inbound and self.outbound.arc.overlaps(self.inbound.arc):
            raise ValueError(
                f"Facility {self.region_id}: outbound arc {self.outbound.arc} "
                f"overlaps inbound arc {self.inbound.arc}"
            )


@dataclass(frozen=True)
class ClassifierState:
    """Where a sample sits in the (facility, heading arc) state space."""

    region_id: Optional[str]
    arc: Optional[str]

    @property
    def is_terminal(self) -> bool:
        """True when no label can come out of this state."""
        return self.region_id is None or self.arc is None


NO_REGION = ClassifierState(region_id=None, arc=None)


@dataclass
class Classifier:
    policies: Dict[str, FacilityPolicy] = field(default_factory=dict)

    @classmethod
    def from_policies(cls, policies: Iterable[FacilityPolicy]) -> "Classifier":
        mapping: Dict[str, FacilityPolicy] = {}
        for policy in policies:
            if policy.region_id in mapping:
                raise ValueError(f"Duplicate facility policy for {policy.region_id}")
            mapping[policy.region_id] = policy
        return cls(policies=mapping)

    def policy_for(self, region_id: str) -> Optional[FacilityPolicy]:
        return self.policies.get(region_id)

    def resolve_state(self, region: Optional[Region], heading: Optional[float]) -> ClassifierState:
        if region is None:
            return NO_REGION
        policy = self.policies.get(region.id)
        if policy is None or heading is None:
            return ClassifierState(region_id=region.id, arc=None)
        try:
            heading_f = float(heading)
        except (TypeError, ValueError):
            return ClassifierState(region_id=region.id, arc=None)
        if not math.isfinite(heading_f):
            return ClassifierState(region_id=region.id, arc=None)
        if policy.outbound is not None and policy.outbound.arc.contains(heading_f):
            return ClassifierState(region_id=region.id, arc=OUTBOUND_ARC)
        if policy.inbound is not None and policy.inbound.arc.contains(heading_f):
            return ClassifierState(region_id=region.id, arc=INBOUND_ARC)
        return ClassifierState(region_id=region.id, arc=None)

    def classify(
        self,
        region: Optional[Region],
        boundary_fix: Optional[str],
        heading: Optional[float],
        destination: Optional[str],
    ) -> Optional[Direction]:
        state = self.resolve_state(region, heading)
        if state.is_terminal or not boundary_fix:
            return None
        policy = self.policies[state.region_id]
        if policy.boundary_fixes is not None and boundary_fix not in policy.boundary_fixes:
            return None
        dest = (destination or "").strip().upper()
        transitions: Mapping[str, tuple] = {
            OUTBOUND_ARC: (policy.outbound, Direction.OUTBOUND),
            INBOUND_ARC: (policy.inbound, Direction.INBOUND),
        }
        rule, label = transitions[state.arc]
        if dest and dest in rule.exclude_destinations:
            return None
        return label
