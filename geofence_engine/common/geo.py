"""
Geographic utilities for the geofence engine.

This module provides the low-level vector and polygon primitives used by
trigger band generation and containment checks: centroid, angular vertex
ordering, perpendicular offsets, planar area and ray-casting containment.

All functions are pure. Latitude/longitude are treated as planar
Cartesian coordinates, which is adequate for building-sized regions only.
Inputs with too few vertices degrade to empty results instead of raising.
"""

import math
from typing import List, Optional, Sequence

from geofence_engine.core.models import Point

EARTH_RADIUS_M = 6371000.0
METERS_PER_DEGREE = 111000.0


def centroid(points: Sequence[Point]) -> Point:
    """
    위도와 경도의 산술 평균을 구합니다.

    Args:
        points: 점 목록 (비어 있으면 안 됨)

    Returns:
        평균 좌표

    Raises:
        ValueError: 빈 목록인 경우 (호출자가 먼저 확인해야 함)
    """
    if not points:
        raise ValueError("centroid of an empty point sequence is undefined")
    n = len(points)
    return Point(
        lat=sum(p.lat for p in points) / n,
        lng=sum(p.lng for p in points) / n,
    )


def sort_by_angle_from_centroid(points: Sequence[Point]) -> List[Point]:
    """
    무게중심 기준 atan2 각도 오름차순으로 꼭짓점을 정렬합니다.

    독립적으로 그린 두 폴리곤을 같은 인덱스로 맞추기 위한 휴리스틱이며,
    오목하거나 모양이 크게 다른 폴리곤에서는 대응이 맞지 않을 수 있습니다.
    """
    if not points:
        return []
    center = centroid(points)
    return sorted(points, key=lambda p: math.atan2(p.lat - center.lat, p.lng - center.lng))


def midpoint(a: Point, b: Point) -> Point:
    """두 점의 축별 평균"""
    return Point(lat=(a.lat + b.lat) / 2, lng=(a.lng + b.lng) / 2)


def perpendicular_offset(p1: Point, p2: Point, length_degrees: float) -> Point:
    """
    방향 벡터 p2-p1을 90도 회전하고 length_degrees 길이로 맞춘 벡터를 반환합니다.

    Args:
        p1: 선분 시작점
        p2: 선분 끝점
        length_degrees: 결과 벡터 길이 (도)

    Returns:
        진행 방향 왼쪽을 가리키는 오프셋 벡터. 길이 0인 선분이면 (0, 0).
    """
    dx = p2.lng - p1.lng
    dy = p2.lat - p1.lat
    length = math.hypot(dx, dy)
    if length == 0:
        return Point(lat=0.0, lng=0.0)
    # 90도 회전 행렬 [0, -1; 1, 0]
    return Point(lat=dx * length_degrees / length, lng=-dy * length_degrees / length)


def meters_to_degrees(meters: float, meters_per_degree: float = METERS_PER_DEGREE) -> float:
    """위도와 무관한 고정 상수로 미터를 도로 환산합니다."""
    return meters / meters_per_degree


def longitude_scale(latitude: float) -> float:
    """
    주어진 위도에서 경도 1도가 위도 1도보다 얼마나 짧은지 보정하는 배율.

    극지방(cos≈0)에서는 보정하지 않고 1.0을 반환합니다.
    """
    c = math.cos(math.radians(latitude))
    if abs(c) < 1e-12:
        return 1.0
    return 1.0 / c


def area_square_meters(points: Sequence[Point]) -> float:
    """
    등장방형 투영 후 신발끈 공식으로 폴리곤 면적을 계산합니다.

    Args:
        points: 폴리곤 꼭짓점 (닫힘 점 불필요)

    Returns:
        면적 (제곱미터). 꼭짓점이 3개 미만이면 0.
    """
    if len(points) < 3:
        return 0.0

    mean_lat = sum(p.lat for p in points) / len(points)
    cos_lat = math.cos(math.radians(mean_lat))
    xy = [
        (math.radians(p.lng) * cos_lat * EARTH_RADIUS_M, math.radians(p.lat) * EARTH_RADIUS_M)
        for p in points
    ]

    total = 0.0
    n = len(xy)
    for i in range(n):
        j = (i + 1) % n
        total += xy[i][0] * xy[j][1]
        total -= xy[j][0] * xy[i][1]
    return abs(total) / 2


def point_in_polygon(point: Point, polygon: Sequence[Point]) -> bool:
    """
    점이 폴리곤 내부에 있는지 Ray casting(짝홀) 알고리즘으로 확인합니다.

    경계선 위의 점은 어느 쪽으로든 분류될 수 있습니다.

    Args:
        point: 확인할 점
        polygon: 폴리곤 꼭짓점

    Returns:
        내부이면 True. 꼭짓점이 3개 미만이면 항상 False.
    """
    if len(polygon) < 3:
        return False

    inside = False
    n = len(polygon)
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i].lng, polygon[i].lat
        xj, yj = polygon[j].lng, polygon[j].lat
        # yi == yj인 수평 변은 첫 조건에서 걸러지므로 0으로 나누지 않는다
        if (yi > point.lat) != (yj > point.lat) and \
                point.lng < (xj - xi) * (point.lat - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def haversine_distance(a: Point, b: Point) -> float:
    """
    두 지점 간의 Haversine 거리를 계산합니다 (미터).
    """
    lat1, lon1 = math.radians(a.lat), math.radians(a.lng)
    lat2, lon2 = math.radians(b.lat), math.radians(b.lng)
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


def path_length_m(points: Sequence[Point], closed: bool = False) -> float:
    """
    경로(또는 closed=True이면 폴리곤 둘레)의 길이를 미터로 반환합니다.
    """
    if len(points) < 2:
        return 0.0
    total = sum(haversine_distance(points[i], points[i + 1]) for i in range(len(points) - 1))
    if closed and len(points) >= 3:
        total += haversine_distance(points[-1], points[0])
    return total


def validate_coordinates(lat: float, lng: float) -> bool:
    """
    좌표가 유효한지 확인합니다.
    """
    return -90 <= lat <= 90 and -180 <= lng <= 180


def to_point(value) -> Optional[Point]:
    """
    {"lat", "lng"} 딕셔너리, Point, 또는 GeoJSON 순서 [lng, lat] 배열을 Point로 변환합니다.

    Returns:
        변환된 Point, 해석할 수 없거나 범위를 벗어나면 None
    """
    if isinstance(value, Point):
        return value
    try:
        if isinstance(value, dict):
            lat = float(value["lat"])
            lng = float(value["lng"] if "lng" in value else value["lon"])
        elif isinstance(value, (list, tuple)) and len(value) >= 2:
            lng, lat = float(value[0]), float(value[1])
        else:
            return None
    except (KeyError, TypeError, ValueError):
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)) or not validate_coordinates(lat, lng):
        return None
    return Point(lat=lat, lng=lng)
