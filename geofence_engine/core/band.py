"""
Trigger band generation for the geofence engine.

Two independent algorithms build the notification corridor of a
structure:

- midpoint correspondence between the outer (map) polygon and the inner
  (walk) polygon, vertex by vertex after angular alignment;
- a fixed-thickness offset corridor around a single open path.

The vertex correspondence is pluggable: ``band_between_polygons`` takes a
``matcher`` returning a :class:`Correspondence`, so a stricter matching
strategy can replace the angle-sort heuristic without changing callers.
"""

from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple

from geofence_engine.common.clock import utc_now_iso
from geofence_engine.common.geo import (
    METERS_PER_DEGREE,
    centroid,
    longitude_scale,
    meters_to_degrees,
    midpoint,
    perpendicular_offset,
    sort_by_angle_from_centroid,
)
from geofence_engine.core.models import Point, Structure


@dataclass(frozen=True)
class Correspondence:
    """
    두 폴리곤의 꼭짓점 대응 결과.

    Attributes:
        outer: 정렬된 바깥 경계 꼭짓점
        inner: 정렬된 안쪽 경계 꼭짓점
        pairs: (outer 인덱스, inner 인덱스) 쌍 목록
    """
    outer: Tuple[Point, ...]
    inner: Tuple[Point, ...]
    pairs: Tuple[Tuple[int, int], ...]


Matcher = Callable[[Sequence[Point], Sequence[Point]], Correspondence]


def align_by_angle(outer: Sequence[Point], inner: Sequence[Point]) -> Correspondence:
    """
    두 폴리곤을 각각의 무게중심 기준 각도로 정렬하고 같은 인덱스끼리 짝짓습니다.

    짝의 개수는 min(len(outer), len(inner))입니다.
    """
    sorted_outer = tuple(sort_by_angle_from_centroid(outer))
    sorted_inner = tuple(sort_by_angle_from_centroid(inner))
    n = min(len(sorted_outer), len(sorted_inner))
    pairs = tuple((i % len(sorted_outer), i % len(sorted_inner)) for i in range(n))
    return Correspondence(outer=sorted_outer, inner=sorted_inner, pairs=pairs)


def band_between_polygons(
    outer: Sequence[Point],
    inner: Sequence[Point],
    matcher: Matcher = align_by_angle,
) -> List[Point]:
    """
    대응하는 꼭짓점의 중점으로 트리거 밴드 폴리곤을 만듭니다.

    Args:
        outer: 바깥 경계 (mapPoints)
        inner: 안쪽 경계 (walkPoints)
        matcher: 꼭짓점 대응 전략

    Returns:
        중점 목록. 첫 점과 마지막 점이 다르면 첫 점을 한 번 더 붙여 링을 닫습니다.
        어느 한쪽이라도 꼭짓점이 3개 미만이면 빈 목록.
    """
    if len(outer) < 3 or len(inner) < 3:
        return []

    correspondence = matcher(outer, inner)
    band = [
        midpoint(correspondence.outer[i], correspondence.inner[j])
        for i, j in correspondence.pairs
    ]

    if band and band[0] != band[-1]:
        band.append(band[0])
    return band


def band_around_path(
    path: Sequence[Point],
    thickness_m: float,
    *,
    meters_per_degree: float = METERS_PER_DEGREE,
    latitude_correction: bool = False,
) -> List[Point]:
    """
    경로를 따라 고정 두께의 오프셋 회랑 폴리곤을 만듭니다.

    두께는 thickness_m / meters_per_degree / 2 도로 환산합니다 (위도 무관 근사).
    경로를 정방향으로 걸으며 왼쪽 오프셋을, 역방향으로 걸으며 오른쪽 오프셋을
    내보내고 시작점의 오른쪽 오프셋에서 링을 닫습니다.

    Args:
        path: 2개 이상의 점으로 된 경로
        thickness_m: 회랑 전체 폭 (미터)
        meters_per_degree: 미터-도 환산 상수
        latitude_correction: True이면 경도 성분을 cos(평균 위도)로 보정

    Returns:
        2 * len(path)개의 점, 경로 점이 2개 미만이면 빈 목록
    """
    if len(path) < 2:
        return []

    offset = meters_to_degrees(thickness_m, meters_per_degree) / 2
    lng_scale = longitude_scale(centroid(path).lat) if latitude_correction else 1.0

    def shifted(p: Point, perp: Point, sign: int) -> Point:
        return Point(lat=p.lat + sign * perp.lat, lng=p.lng + sign * perp.lng * lng_scale)

    left: List[Point] = []
    for i in range(len(path) - 1):
        perp = perpendicular_offset(path[i], path[i + 1], offset)
        if i == 0:
            left.append(shifted(path[0], perp, 1))
        left.append(shifted(path[i + 1], perp, 1))

    right: List[Point] = []
    for i in range(len(path) - 1, 0, -1):
        perp = perpendicular_offset(path[i - 1], path[i], offset)
        right.append(shifted(path[i], perp, -1))
    right.append(shifted(path[0], perpendicular_offset(path[0], path[1], offset), -1))

    return left + right


def derive_band(
    structure: Structure,
    *,
    meters_per_degree: float = METERS_PER_DEGREE,
    latitude_correction: bool = False,
) -> List[Point]:
    """
    구조물의 경계로부터 트리거 밴드를 계산합니다 (저장하지 않음).

    - mapPoints와 walkPoints가 모두 폴리곤(3점 이상)이면 중점 대응 밴드
    - walkPoints가 열린 경로(2점 이상)이면 그 경로 둘레의 회랑
    - 그 외에는 빈 목록
    """
    if len(structure.map_points) >= 3 and len(structure.walk_points) >= 3:
        return band_between_polygons(structure.map_points, structure.walk_points)
    if len(structure.walk_points) >= 2:
        return band_around_path(
            structure.walk_points,
            structure.trigger_band.thickness,
            meters_per_degree=meters_per_degree,
            latitude_correction=latitude_correction,
        )
    return []


def regenerate(structure: Structure, **kwargs) -> Structure:
    """경계에서 밴드를 다시 계산해 저장한 새 구조물을 반환합니다."""
    band = structure.trigger_band.model_copy(
        update={"points": derive_band(structure, **kwargs), "calculated_points": []}
    )
    return structure.model_copy(update={"trigger_band": band, "last_modified": utc_now_iso()})


def with_band_points(structure: Structure, points: Sequence[Point]) -> Structure:
    """호출자가 직접 편집한 밴드 점으로 덮어씁니다."""
    band = structure.trigger_band.model_copy(
        update={"points": list(points), "calculated_points": []}
    )
    return structure.model_copy(update={"trigger_band": band, "last_modified": utc_now_iso()})


def update_thickness(
    structure: Structure,
    thickness_m: float,
    *,
    meters_per_degree: float = METERS_PER_DEGREE,
    latitude_correction: bool = False,
) -> Structure:
    """
    밴드 두께를 바꾸고, 밴드 점이 2개 이상이면 기존 밴드 선을 경로 삼아
    회랑을 다시 입힙니다. 결과는 calculated_points에 저장되므로 두께를
    여러 번 바꿔도 누적되지 않습니다.

    Raises:
        ValueError: thickness_m <= 0
    """
    if thickness_m <= 0:
        raise ValueError(f"thickness must be > 0, got {thickness_m}")

    update = {"thickness": float(thickness_m)}
    if len(structure.trigger_band.points) >= 2:
        corridor = band_around_path(
            structure.trigger_band.points,
            thickness_m,
            meters_per_degree=meters_per_degree,
            latitude_correction=latitude_correction,
        )
        if len(corridor) >= 3:
            update["calculated_points"] = corridor

    band = structure.trigger_band.model_copy(update=update)
    return structure.model_copy(update={"trigger_band": band, "last_modified": utc_now_iso()})
