from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from fixwatch.engine.classifier import (
    ArcRule,
    Classifier,
    FacilityPolicy,
    FacilityRole,
    HeadingArc,
)
from fixwatch.engine.tracks import (
    DEFAULT_HORIZON_MINUTES,
    DEFAULT_MAX_LIST_LENGTH,
    RouteClassificationEngine,
)
from fixwatch.reference.airways import AirwayIndex, make_waypoint, normalize_name
from fixwatch.reference.domain_types import Waypoint
from fixwatch.reference.geofence import RegionTable

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "data" / "fixwatch.yaml"
DEFAULT_FEED_URL = "https://data.vatsim.net/v3/vatsim-data.json"


def _parse_arc(raw: object, label: str) -> HeadingArc:
    """
    Parse a ``[from, to]`` heading pair into a :class:`HeadingArc`.

    Args:
        raw: Raw value from the configuration.
        label: Human-readable label for error messages.
    Returns:
        Inclusive arc, possibly wrapping through north.
    """
    if not isinstance(raw, (list, tuple)) or len(raw) != 2:
        raise ValueError(f"{label} arc must be a [from, to] pair of headings: {raw!r}")
    start, end = raw
    for value in (start, end):
        if isinstance(value, bool) or not isinstance(value, (int, float)) or value != int(value):
            raise ValueError(f"{label} arc bounds must be whole degrees: {raw!r}")
    return HeadingArc(int(start), int(end))


def _parse_codes(raw: object, label: str) -> frozenset:
    if raw is None:
        return frozenset()
    if not isinstance(raw, (list, tuple)):
        raise TypeError(f"{label} must be a list of codes")
    codes = {normalize_name(code) for code in raw}
    codes.discard("")
    return frozenset(codes)


def _parse_arc_rule(raw: object, label: str) -> Optional[ArcRule]:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise TypeError(f"{label} must be a mapping with an 'arc' entry")
    unknown = set(raw) - {"arc", "exclude_destinations"}
    if unknown:
        raise ValueError(f"{label} has unknown keys: {', '.join(sorted(map(str, unknown)))}")
    return ArcRule(
        arc=_parse_arc(raw.get("arc"), label),
        exclude_destinations=_parse_codes(raw.get("exclude_destinations"), f"{label} exclude_destinations"),
    )


@dataclass
class FixwatchConfig:
    feed_url: str = DEFAULT_FEED_URL
    feed_timeout_seconds: float = 10.0
    interval_seconds: float = 15.0
    boundaries_path: Path = Path("boundaries.geojson")
    airways_path: Path = Path("airways.csv")
    region_priority: List[str] = field(default_factory=list)
    max_list_length: int = DEFAULT_MAX_LIST_LENGTH
    horizon_minutes: int = DEFAULT_HORIZON_MINUTES
    boundary_fixes: Dict[str, Waypoint] = field(default_factory=dict)
    display_regions: List[str] = field(default_factory=list)
    facilities: Dict[str, FacilityPolicy] = field(default_factory=dict)
    server_host: str = "0.0.0.0"
    server_port: int = 3001
    cors_allowed_origins: str | List[str] = "*"

    @classmethod
    def from_yaml(cls, path: str | Path | None = None) -> "FixwatchConfig":
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        if not config_path.exists():
            raise FileNotFoundError(f"Fixwatch YAML not found at {config_path}")
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        if not isinstance(data, Mapping):
            raise TypeError("Fixwatch YAML must contain a mapping at the top level")
        return cls.from_mapping(data, base_dir=config_path.parent)

    @classmethod
    def from_mapping(cls, data: Mapping[str, object], *, base_dir: Path | None = None) -> "FixwatchConfig":
        base = Path(base_dir) if base_dir else Path.cwd()
        unknown = set(data) - {
            "feed",
            "reference",
            "classification",
            "boundary_fixes",
            "display_regions",
            "facilities",
            "server",
        }
        if unknown:
            raise ValueError(f"Unknown top-level config keys: {', '.join(sorted(map(str, unknown)))}")

        feed = cls._section(data, "feed")
        reference = cls._section(data, "reference")
        classification = cls._section(data, "classification")
        server = cls._section(data, "server")

        for key in ("boundaries_path", "airways_path"):
            if not reference.get(key):
                raise ValueError(f"reference.{key} is required")

        priority = [normalize_name(code) for code in classification.get("region_priority") or []]
        if not priority or "" in priority:
            raise ValueError("classification.region_priority must list at least one region id")

        boundary_fixes = cls._parse_boundary_fixes(data.get("boundary_fixes"))
        facilities = cls._parse_facilities(data.get("facilities"), boundary_fixes)
        for region_id in facilities:
            if region_id not in priority:
                raise ValueError(f"Facility {region_id} is not listed in classification.region_priority")

        config = cls(
            feed_url=str(feed.get("url") or DEFAULT_FEED_URL),
            feed_timeout_seconds=float(feed.get("timeout_seconds", 10.0)),
            interval_seconds=float(feed.get("interval_seconds", 15.0)),
            boundaries_path=cls._resolve_path(base, reference["boundaries_path"]),
            airways_path=cls._resolve_path(base, reference["airways_path"]),
            region_priority=priority,
            max_list_length=int(classification.get("max_list_length", DEFAULT_MAX_LIST_LENGTH)),
            horizon_minutes=int(classification.get("horizon_minutes", DEFAULT_HORIZON_MINUTES)),
            boundary_fixes=boundary_fixes,
            display_regions=[normalize_name(code) for code in data.get("display_regions") or []],
            facilities=facilities,
            server_host=str(server.get("host", "0.0.0.0")),
            server_port=int(server.get("port", 3001)),
            cors_allowed_origins=server.get("cors_allowed_origins", "*"),
        )
        config._validate()
        return config

    def _validate(self) -> None:
        if self.feed_timeout_seconds <= 0:
            raise ValueError("feed.timeout_seconds must be positive")
        if self.interval_seconds <= 0:
            raise ValueError("feed.interval_seconds must be positive")
        if self.max_list_length <= 0:
            raise ValueError("classification.max_list_length must be positive")
        if self.horizon_minutes <= 0:
            raise ValueError("classification.horizon_minutes must be positive")
        if not self.boundary_fixes:
            raise ValueError("At least one boundary fix must be configured")
        if not 0 < self.server_port < 65536:
            raise ValueError(f"server.port out of range: {self.server_port}")

    # ---------------------------------------------------------------- builders
    def load_reference_tables(self) -> Tuple[RegionTable, AirwayIndex]:
        """Load boundary polygons and airways. Any failure here is fatal."""
        regions = RegionTable.from_geojson(self.boundaries_path, self.region_priority)
        airways = AirwayIndex.from_csv(self.airways_path, extra_waypoints=self.boundary_fixes.values())
        return regions, airways

    def build_engine(self) -> RouteClassificationEngine:
        regions, airways = self.load_reference_tables()
        return RouteClassificationEngine(
            regions,
            airways,
            frozenset(self.boundary_fixes),
            Classifier.from_policies(self.facilities.values()),
            max_list_length=self.max_list_length,
            horizon_minutes=self.horizon_minutes,
        )

    # ---------------------------------------------------------------- parsing
    @staticmethod
    def _section(data: Mapping[str, object], name: str) -> Mapping[str, object]:
        section = data.get(name) or {}
        if not isinstance(section, Mapping):
            raise TypeError(f"'{name}' must be a mapping")
        return section

    @staticmethod
    def _resolve_path(base: Path, raw: object) -> Path:
        candidate = Path(str(raw)).expanduser()
        return candidate if candidate.is_absolute() else base / candidate

    @staticmethod
    def _parse_boundary_fixes(raw: object) -> Dict[str, Waypoint]:
        if not isinstance(raw, Mapping):
            raise TypeError("'boundary_fixes' must map fix names to [latitude, longitude]")
        fixes: Dict[str, Waypoint] = {}
        for name, coords in raw.items():
            if not isinstance(coords, (list, tuple)) or len(coords) != 2:
                raise ValueError(f"Boundary fix {name} must be given as [latitude, longitude]")
            waypoint = make_waypoint(name, coords[0], coords[1], context=f"boundary fix {name}")
            if waypoint.name in fixes:
                raise ValueError(f"Boundary fix {waypoint.name} listed twice")
            fixes[waypoint.name] = waypoint
        return fixes

    @staticmethod
    def _parse_facilities(
        raw: object, boundary_fixes: Mapping[str, Waypoint]
    ) -> Dict[str, FacilityPolicy]:
        if not isinstance(raw, Mapping) or not raw:
            raise TypeError("'facilities' must be a non-empty mapping of region ids to policies")
        facilities: Dict[str, FacilityPolicy] = {}
        for region_code, policy_def in raw.items():
            region_id = normalize_name(region_code)
            if not region_id:
                raise ValueError("Facility ids cannot be empty")
            if region_id in facilities:
                raise ValueError(f"Facility {region_id} is defined twice")
            if not isinstance(policy_def, Mapping):
                raise TypeError(f"Facility {region_id} must be a mapping")
            unknown = set(policy_def) - {"role", "boundary_fixes", "outbound", "inbound"}
            if unknown:
                raise ValueError(
                    f"Facility {region_id} has unknown keys: {', '.join(sorted(map(str, unknown)))}"
                )
            try:
                role = FacilityRole(str(policy_def.get("role", "")).strip().lower())
            except ValueError as exc:
                choices = ", ".join(r.value for r in FacilityRole)
                raise ValueError(f"Facility {region_id} role must be one of: {choices}") from exc

            subset = None
            if policy_def.get("boundary_fixes") is not None:
                subset = _parse_codes(policy_def["boundary_fixes"], f"{region_id} boundary_fixes")
                stray = sorted(subset - set(boundary_fixes))
                if stray:
                    raise ValueError(f"Facility {region_id} names unknown boundary fixes: {', '.join(stray)}")

            outbound = _parse_arc_rule(policy_def.get("outbound"), f"{region_id} outbound")
            inbound = _parse_arc_rule(policy_def.get("inbound"), f"{region_id} inbound")
            if outbound is None and inbound is None:
                logger.warning("Facility %s defines no heading arcs; it will never classify", region_id)
            facilities[region_id] = FacilityPolicy(
                region_id=region_id,
                role=role,
                outbound=outbound,
                inbound=inbound,
                boundary_fixes=subset,
            )
        return facilities


__all__ = ["DEFAULT_CONFIG_PATH", "FixwatchConfig"]
