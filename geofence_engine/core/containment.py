"""
Point classification against structure boundaries.

The engine never samples positions itself; callers pass an already
obtained point and get back which structures contain it.
"""

from typing import Iterable, List

from geofence_engine.common.geo import area_square_meters, point_in_polygon
from geofence_engine.core.models import Boundary, Point, Structure


def boundary_points(structure: Structure, boundary: Boundary) -> List[Point]:
    """
    요청한 경계의 점 목록.

    trigger 경계는 두께 변경으로 계산된 회랑(calculated_points)이 있으면 그것을,
    없으면 밴드 점을 사용합니다.
    """
    if boundary == "map":
        return list(structure.map_points)
    if boundary == "walk":
        return list(structure.walk_points)
    band = structure.trigger_band
    if len(band.calculated_points) >= 3:
        return list(band.calculated_points)
    return list(band.points)


def boundary_polygon(structure: Structure, boundary: Boundary = "map") -> List[Point]:
    """
    포함 판정에 쓸 폴리곤을 고릅니다.

    요청한 경계가 3점 미만이면 mapPoints로 대체하고, 그것도 3점 미만이면 빈 목록.
    """
    points = boundary_points(structure, boundary)
    if len(points) >= 3:
        return points
    if len(structure.map_points) >= 3:
        return list(structure.map_points)
    return []


def contains(structure: Structure, point: Point, boundary: Boundary = "map") -> bool:
    return point_in_polygon(point, boundary_polygon(structure, boundary))


def locate(point: Point, structures: Iterable[Structure], boundary: Boundary = "map") -> List[Structure]:
    """점을 포함하는 모든 구조물 (입력 순서)"""
    return [s for s in structures if contains(s, point, boundary)]


def structure_area(structure: Structure, boundary: Boundary = "map") -> float:
    """경계 폴리곤 면적 (제곱미터, 대체 없음)"""
    return area_square_meters(boundary_points(structure, boundary))
