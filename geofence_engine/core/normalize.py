"""
Structure import normalization for the geofence engine.

This module recognises the accepted import payload shapes with JSON
Schema (``core/schemas/*.json``) and maps each of them onto validated
:class:`Structure` models. Shapes are tried in priority order:

1. the versioned custom envelope ``{version, structures, metadata}``
2. the metadata wrapper ``{metadata, customFormat: {structures}}``
3. a GeoJSON ``FeatureCollection``
4. a bare array of structure-like objects
5. a single structure object

Missing optional fields are backfilled with defaults. Missing, invalid or
duplicate codes are replaced with freshly generated unique codes.
"""

import json
import math
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Union

from jsonschema import Draft7Validator

from geofence_engine.common.clock import utc_now_iso
from geofence_engine.common.geo import to_point
from geofence_engine.core import hierarchy
from geofence_engine.core.models import (
    BOUNDARY_TYPES,
    DEFAULT_THICKNESS_M,
    STRUCTURE_TYPES,
    Point,
    Structure,
    normalize_code,
)
from geofence_engine.observability.logging_setup import get_logger

log = get_logger("geofence.normalize")

SCHEMA_DIR = Path(__file__).parent / "schemas"
DEFAULT_NAME = "Imported Structure"


class UnsupportedFormatError(ValueError):
    """가져오기 페이로드 형식을 인식할 수 없는 경우"""


def load_schema(name: str) -> dict:
    return json.loads((SCHEMA_DIR / f"{name}.json").read_text(encoding="utf-8"))


# 우선순위 순서
FORMAT_VALIDATORS = [
    ("custom", Draft7Validator(load_schema("custom_envelope"))),
    ("metadata_wrapper", Draft7Validator(load_schema("metadata_wrapper"))),
    ("geojson", Draft7Validator(load_schema("feature_collection"))),
    ("array", Draft7Validator(load_schema("structure_array"))),
    ("single", Draft7Validator(load_schema("single_structure"))),
]


def loads(raw: Union[bytes, str]) -> Any:
    """
    JSON 텍스트를 해석합니다.

    Raises:
        UnsupportedFormatError: JSON이 아닌 경우
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise UnsupportedFormatError(f"Invalid JSON: {e.msg} (line {e.lineno})")


def detect_format(obj: Any) -> str:
    """
    페이로드 형식을 판별합니다.

    Returns:
        "custom", "metadata_wrapper", "geojson", "array", "single" 중 하나

    Raises:
        UnsupportedFormatError: 어느 형식에도 맞지 않는 경우
    """
    for name, validator in FORMAT_VALIDATORS:
        if validator.is_valid(obj):
            log.info(f"Detected {name} format")
            return name
    raise UnsupportedFormatError("Unsupported format")


def fresh_code(taken: Set[str]) -> str:
    """taken에 없는 IMPORT-XXXXXXXX 코드"""
    while True:
        code = f"IMPORT-{uuid.uuid4().hex[:8].upper()}"
        if code not in taken:
            return code


def _raw_code(item: Dict[str, Any]) -> Optional[str]:
    for key in ("code", "id", "structureId"):
        value = item.get(key)
        if isinstance(value, str) and normalize_code(value):
            return normalize_code(value)
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
    return None


def _points(values: Any) -> List[Point]:
    """유효한 점만 남깁니다."""
    if not isinstance(values, list):
        return []
    points = (to_point(v) for v in values)
    return [p for p in points if p is not None]


def _thickness(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if not math.isfinite(value) or value <= 0:
        return default
    return float(value)


def _structure_type(value: Any) -> str:
    if isinstance(value, str) and value.strip().lower() in STRUCTURE_TYPES:
        return value.strip().lower()
    return "other"


def _text(value: Any, default: str = "") -> str:
    return value if isinstance(value, str) else default


def _parent(value: Any) -> Optional[str]:
    if isinstance(value, str) and normalize_code(value):
        return normalize_code(value)
    return None


def _structure_from_item(item: Dict[str, Any], code: str, default_thickness: float) -> Structure:
    band = item.get("triggerBand") if isinstance(item.get("triggerBand"), dict) else {}
    return Structure(
        code=code,
        name=_text(item.get("name"), DEFAULT_NAME),
        description=_text(item.get("description")),
        type=_structure_type(item.get("type")),
        parent_id=_parent(item.get("parentId")),
        map_points=_points(item.get("mapPoints")),
        walk_points=_points(item.get("walkPoints")),
        trigger_band={
            "points": _points(band.get("points")),
            "thickness": _thickness(band.get("thickness"), default_thickness),
            "calculated_points": _points(band.get("calculatedPoints")),
        },
        last_modified=_text(item.get("lastModified")) or utc_now_iso(),
    )


def _from_items(items: Iterable[Any], taken: Set[str], default_thickness: float) -> List[Structure]:
    structures: List[Structure] = []
    kept: Set[str] = set()
    renamed: Dict[str, str] = {}
    for item in items:
        if not isinstance(item, dict):
            log.warning(f"Skipping non-object structure entry: {type(item).__name__}")
            continue
        code = _raw_code(item)
        if code is None or code in taken:
            new_code = fresh_code(taken)
            log.warning(f"Replacing missing or duplicate code {code!r} with {new_code}")
            if code is not None and code not in kept:
                renamed.setdefault(code, new_code)
            code = new_code
        else:
            kept.add(code)
        taken.add(code)
        structures.append(_structure_from_item(item, code, default_thickness))
    return hierarchy.remap_parents(structures, renamed)


def _ring(coordinates: Any) -> List[Point]:
    """GeoJSON 좌표 목록을 점으로 바꾸고 닫힘 점을 제거합니다."""
    points = _points(coordinates)
    if len(points) > 1 and points[0] == points[-1]:
        points = points[:-1]
    return points


def _geometry_points(geometry: Any) -> List[Point]:
    if not isinstance(geometry, dict):
        return []
    coordinates = geometry.get("coordinates")
    if geometry.get("type") == "Polygon" and isinstance(coordinates, list) and coordinates:
        return _ring(coordinates[0])
    if geometry.get("type") == "LineString":
        return _points(coordinates)
    return []


def _from_feature_collection(obj: Dict[str, Any], taken: Set[str], default_thickness: float) -> List[Structure]:
    """
    Feature를 code(또는 structureId)로 묶어 경계 유형별로 합칩니다.

    경계 유형은 properties.boundaryType, 없으면 properties.type이 경계 유형 값일 때 그것을 씁니다.
    """
    grouped: Dict[str, Dict[str, Any]] = {}
    for feature in obj["features"]:
        props = feature.get("properties") or {}
        code = _raw_code(props)
        if code is None:
            # 코드 없는 Feature는 각각 별도 구조물
            item = {"triggerBand": {}}
            grouped[f"#{len(grouped)}"] = item
        else:
            item = grouped.setdefault(code, {"code": code, "triggerBand": {}})
        for field in ("name", "description", "parentId", "lastModified"):
            if field in props:
                item.setdefault(field, props[field])

        boundary = props.get("boundaryType")
        if boundary in BOUNDARY_TYPES:
            if "type" in props:
                item.setdefault("type", props["type"])
        elif props.get("type") in BOUNDARY_TYPES:
            boundary = props["type"]
        else:
            boundary = None

        points = _geometry_points(feature.get("geometry"))
        if boundary == "mapPoints":
            item["mapPoints"] = points
        elif boundary == "walkPoints":
            item["walkPoints"] = points
        elif boundary == "triggerBand":
            item["triggerBand"]["points"] = points
            if "thickness" in props:
                item["triggerBand"]["thickness"] = props["thickness"]
        else:
            log.warning(f"Skipping feature without a boundary type on {code}")

    return _from_items(grouped.values(), taken, default_thickness)


def to_structures(
    obj: Any,
    existing_codes: Iterable[str] = (),
    default_thickness: float = DEFAULT_THICKNESS_M,
) -> List[Structure]:
    """
    해석된 페이로드를 구조물 목록으로 정규화합니다.

    Args:
        obj: json.loads 결과
        existing_codes: 이미 사용 중인 코드 (충돌 시 새 코드 발급)
        default_thickness: 밴드 두께가 없거나 잘못된 경우의 기본값

    Returns:
        정규화된 구조물 (입력 순서)

    Raises:
        UnsupportedFormatError: 인식할 수 없는 형식
    """
    taken = {normalize_code(c) for c in existing_codes}
    fmt = detect_format(obj)

    if fmt == "custom":
        structures = _from_items(obj["structures"], taken, default_thickness)
    elif fmt == "metadata_wrapper":
        structures = _from_items(obj["customFormat"]["structures"], taken, default_thickness)
    elif fmt == "geojson":
        structures = _from_feature_collection(obj, taken, default_thickness)
    elif fmt == "array":
        items = [
            item for item in obj
            if isinstance(item, dict) and ("mapPoints" in item or "walkPoints" in item)
        ]
        structures = _from_items(items, taken, default_thickness)
    else:
        structures = _from_items([obj], taken, default_thickness)

    log.info(f"Normalized {len(structures)} structures from {fmt} payload")
    return structures


def parse_structures(
    raw: Union[bytes, str],
    existing_codes: Iterable[str] = (),
    default_thickness: float = DEFAULT_THICKNESS_M,
) -> List[Structure]:
    """JSON 텍스트에서 구조물을 읽습니다."""
    return to_structures(loads(raw), existing_codes, default_thickness)
