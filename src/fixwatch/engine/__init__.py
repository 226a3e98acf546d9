"""Route-classification engine exports."""

from .boundary_resolver import BoundaryResolver
from .classifier import (
    ArcRule,
    Classifier,
    ClassifierState,
    Direction,
    FacilityPolicy,
    FacilityRole,
    HeadingArc,
)
from .eta import NOT_AVAILABLE, crossing_minutes, estimate_crossing, minutes_until
from .route_expander import RouteExpander, tokenize_route
from .tracks import AircraftSample, BatchResult, ClassifiedTrack, RouteClassificationEngine

__all__ = [
    "AircraftSample",
    "ArcRule",
    "BatchResult",
    "BoundaryResolver",
    "ClassifiedTrack",
    "Classifier",
    "ClassifierState",
    "Direction",
    "FacilityPolicy",
    "FacilityRole",
    "HeadingArc",
    "NOT_AVAILABLE",
    "RouteClassificationEngine",
    "RouteExpander",
    "crossing_minutes",
    "estimate_crossing",
    "minutes_until",
    "tokenize_route",
]
