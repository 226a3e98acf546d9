"""Helpers for loading facility boundaries and querying point membership."""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd
from shapely.errors import ShapelyError
from shapely.geometry import Point, mapping, shape
from shapely.strtree import STRtree

from .domain_types import Region

logger = logging.getLogger(__name__)


class RegionTable:
    """Position resolver over a fixed, prioritised set of facility geofences.

    Regions are tested in ``priority`` order and the first one whose polygon
    covers the point wins. Points on a shared border are covered by both
    neighbours, so the order decides which facility owns them.
    """

    def __init__(self, regions: Sequence[Region], priority: Sequence[str]):
        by_id: Dict[str, Region] = {}
        for region in regions:
            if region.id in by_id:
                raise ValueError(f"Duplicate region id in boundary data: {region.id}")
            by_id[region.id] = region
        self._regions = by_id
        self._priority: List[str] = []
        for region_id in priority:
            key = str(region_id).strip().upper()
            if key in self._priority:
                raise ValueError(f"Region {key} appears twice in the priority order")
            self._priority.append(key)

        self._geoms = []
        self._geom_ranks: List[int] = []
        for rank, region_id in enumerate(self._priority):
            region = self._regions.get(region_id)
            if region is None:
                logger.warning("Region %s has no boundary data; it will never match.", region_id)
                continue
            if not region.is_usable:
                logger.warning(
                    "Region %s has a missing or degenerate polygon; it will never match.",
                    region_id,
                )
                continue
            self._geoms.append(region.geometry)
            self._geom_ranks.append(rank)
        self._sindex = STRtree(self._geoms) if self._geoms else None

    # ------------------------------------------------------------------ loaders
    @classmethod
    def from_geojson(cls, path: str | Path, priority: Sequence[str]) -> "RegionTable":
        """Load facility polygons from a GeoJSON file keyed by the ``id`` property."""
        geo_df = _load_geojson_dataframe(path)
        if geo_df.empty:
            raise ValueError(f"Boundary file {path} contains no features.")
        if "id" not in geo_df.columns:
            raise ValueError("Boundary GeoJSON features must carry an 'id' property.")

        regions: List[Region] = []
        for row in geo_df.itertuples(index=False):
            raw_id = getattr(row, "id")
            if raw_id is None or (isinstance(raw_id, float) and pd.isna(raw_id)):
                logger.debug("Skipping boundary feature without an id in %s", path)
                continue
            name = getattr(row, "name", None)
            regions.append(
                Region(
                    id=str(raw_id).strip().upper(),
                    name=name if isinstance(name, str) else None,
                    geometry=getattr(row, "geometry"),
                )
            )
        logger.info("Loaded %d facility boundaries from %s", len(regions), path)
        return cls(regions, priority)

    # ---------------------------------------------------------------- queries
    @property
    def priority(self) -> List[str]:
        return list(self._priority)

    def get_region(self, region_id: str) -> Optional[Region]:
        return self._regions.get(str(region_id).upper())

    def region_of(self, lat: Optional[float], lon: Optional[float]) -> Optional[Region]:
        """Return the highest-priority region covering the point, if any."""
        if lat is None or lon is None or self._sindex is None:
            return None
        try:
            lat_f, lon_f = float(lat), float(lon)
        except (TypeError, ValueError):
            return None
        if not (math.isfinite(lat_f) and math.isfinite(lon_f)):
            return None

        point = Point(lon_f, lat_f)
        best_rank: Optional[int] = None
        for tree_idx in self._sindex.query(point, predicate="intersects"):
            rank = self._geom_ranks[int(tree_idx)]
            if best_rank is not None and rank >= best_rank:
                continue
            if self._geoms[int(tree_idx)].covers(point):
                best_rank = rank
        if best_rank is None:
            return None
        return self._regions[self._priority[best_rank]]

    def feature_collection(self, region_ids: Sequence[str]) -> Dict[str, object]:
        """Return the named regions as a GeoJSON FeatureCollection for viewers."""
        features = []
        for region_id in region_ids:
            region = self.get_region(region_id)
            if region is None or not region.is_usable:
                continue
            features.append(
                {
                    "type": "Feature",
                    "properties": {"id": region.id, "name": region.name},
                    "geometry": mapping(region.geometry),
                }
            )
        return {"type": "FeatureCollection", "features": features}


def _load_geojson_dataframe(path: str | Path) -> pd.DataFrame:
    """Read a GeoJSON file into a pandas DataFrame with shapely geometries."""
    geojson_path = Path(path)
    if not geojson_path.exists():
        raise FileNotFoundError(f"Boundary GeoJSON not found at {geojson_path}")
    with geojson_path.open("r", encoding="utf-8") as f:
        try:
            payload = json.load(f)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Boundary GeoJSON at {geojson_path} is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"Boundary GeoJSON at {geojson_path} must be a FeatureCollection")

    features = payload.get("features") or []
    if not isinstance(features, list):
        raise ValueError(f"Boundary GeoJSON at {geojson_path} has a non-list 'features' entry")
    rows = []
    for position, feature in enumerate(features):
        if not isinstance(feature, dict):
            raise ValueError(f"Boundary GeoJSON at {geojson_path}: feature {position} is not an object")
        properties = feature.get("properties") or {}
        if not isinstance(properties, dict):
            raise ValueError(f"Boundary GeoJSON at {geojson_path}: feature {position} properties are not an object")
        geometry = feature.get("geometry")
        geom = None
        if geometry:
            try:
                geom = shape(geometry)
            except (ShapelyError, ValueError, TypeError, AttributeError, KeyError) as exc:
                logger.warning(
                    "Unreadable geometry for boundary %s: %s", properties.get("id"), exc
                )
        rows.append({**properties, "geometry": geom})
    return pd.DataFrame(rows)
