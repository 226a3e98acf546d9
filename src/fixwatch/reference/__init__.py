"""Reference data exports: waypoints, airways and facility geofences."""

from .airways import AirwayIndex, make_waypoint
from .domain_types import Airway, Region, Waypoint
from .geofence import RegionTable

__all__ = [
    "Airway",
    "AirwayIndex",
    "Region",
    "RegionTable",
    "Waypoint",
    "make_waypoint",
]
