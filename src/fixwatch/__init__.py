"""Live inbound/outbound boundary-fix board."""

from .engine import (
    AircraftSample,
    ClassifiedTrack,
    Classifier,
    Direction,
    RouteClassificationEngine,
    RouteExpander,
)
from .reference import AirwayIndex, RegionTable

__all__ = [
    "AircraftSample",
    "AirwayIndex",
    "ClassifiedTrack",
    "Classifier",
    "Direction",
    "RegionTable",
    "RouteClassificationEngine",
    "RouteExpander",
]
