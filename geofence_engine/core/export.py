"""
Structure export for the geofence engine.

Two payloads are produced: the versioned custom envelope, which round
trips through :mod:`geofence_engine.core.normalize` without loss, and a
GeoJSON ``FeatureCollection`` with one Feature per non-empty boundary.
GeoJSON coordinates are ``[lng, lat]`` and polygon rings are closed.
"""

import json
from typing import Any, Dict, Iterable, List, Optional, Sequence

from geofence_engine.common.clock import utc_now_iso
from geofence_engine.core.models import BOUNDARY_TYPES, BoundaryType, Point, Structure


def to_custom_format(
    structures: Iterable[Structure],
    version: str = "1.0",
    app_version: str = "1.0.0",
) -> Dict[str, Any]:
    """
    구조물을 버전이 붙은 사용자 정의 형식으로 내보냅니다.

    Returns:
        {version, structures, metadata: {exportedAt, appVersion}} (camelCase)
    """
    return {
        "version": version,
        "structures": [s.model_dump(mode="json", by_alias=True) for s in structures],
        "metadata": {"exportedAt": utc_now_iso(), "appVersion": app_version},
    }


def _coords(points: Sequence[Point]) -> List[List[float]]:
    return [[p.lng, p.lat] for p in points]


def _closed_ring(points: Sequence[Point]) -> List[List[float]]:
    ring = _coords(points)
    if ring[0] != ring[-1]:
        ring.append(ring[0])
    return ring


def _feature(structure: Structure, boundary: BoundaryType, geometry: Dict[str, Any]) -> Dict[str, Any]:
    properties = {
        "code": structure.code,
        "name": structure.name,
        "description": structure.description,
        "type": structure.type,
        "parentId": structure.parent_id,
        "boundaryType": boundary,
        "lastModified": structure.last_modified,
    }
    if boundary == "triggerBand":
        properties["thickness"] = structure.trigger_band.thickness
    return {"type": "Feature", "geometry": geometry, "properties": properties}


def structure_features(
    structure: Structure,
    force_polygon: bool = False,
    boundary_types: Optional[Iterable[BoundaryType]] = None,
) -> List[Dict[str, Any]]:
    """
    구조물 하나의 GeoJSON Feature 목록.

    - mapPoints, triggerBand: 3점 이상이면 닫힌 Polygon
    - walkPoints: 2점 이상이면 LineString, force_polygon이고 3점 이상이면 Polygon
    """
    wanted = set(boundary_types) if boundary_types is not None else set(BOUNDARY_TYPES)
    features = []

    if "mapPoints" in wanted and len(structure.map_points) >= 3:
        geometry = {"type": "Polygon", "coordinates": [_closed_ring(structure.map_points)]}
        features.append(_feature(structure, "mapPoints", geometry))

    walk = structure.walk_points
    if "walkPoints" in wanted:
        if force_polygon and len(walk) >= 3:
            geometry = {"type": "Polygon", "coordinates": [_closed_ring(walk)]}
            features.append(_feature(structure, "walkPoints", geometry))
        elif len(walk) >= 2:
            geometry = {"type": "LineString", "coordinates": _coords(walk)}
            features.append(_feature(structure, "walkPoints", geometry))

    band = structure.trigger_band.points
    if "triggerBand" in wanted and len(band) >= 3:
        geometry = {"type": "Polygon", "coordinates": [_closed_ring(band)]}
        features.append(_feature(structure, "triggerBand", geometry))

    return features


def to_geojson(
    structures: Iterable[Structure],
    force_polygon: bool = False,
    boundary_types: Optional[Iterable[BoundaryType]] = None,
) -> Dict[str, Any]:
    """구조물을 GeoJSON FeatureCollection으로 내보냅니다."""
    boundary_types = list(boundary_types) if boundary_types is not None else None
    features = []
    for structure in structures:
        features.extend(structure_features(structure, force_polygon, boundary_types))
    return {"type": "FeatureCollection", "features": features}


def dumps(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)
