"""
포함 판정 단위 테스트
"""

import pytest

from geofence_engine.core.containment import (
    boundary_points,
    boundary_polygon,
    contains,
    locate,
    structure_area,
)
from geofence_engine.core.models import Point, Structure, TriggerBand


def P(lat, lng):
    return Point(lat=lat, lng=lng)


class TestBoundarySelection:
    """경계 선택 테스트"""

    def test_trigger_prefers_calculated_points(self, outer_square, inner_square):
        structure = Structure(code="A", trigger_band=TriggerBand(points=outer_square, calculated_points=inner_square))
        assert boundary_points(structure, "trigger") == inner_square

    def test_fallback_to_map_points(self, outer_square):
        """요청한 경계가 3점 미만이면 mapPoints"""
        structure = Structure(code="A", map_points=outer_square, walk_points=[P(0, 0), P(1, 1)])
        assert boundary_polygon(structure, "walk") == outer_square
        assert boundary_polygon(structure, "trigger") == outer_square

    def test_no_polygon(self):
        assert boundary_polygon(Structure(code="A", walk_points=[P(0, 0)]), "walk") == []


class TestContains:
    """포함 여부 테스트"""

    def test_contains_by_boundary(self, outer_square, inner_square):
        structure = Structure(code="A", map_points=outer_square, walk_points=inner_square)
        point = P(0.25, 0.25)

        assert contains(structure, point, "map") is True
        assert contains(structure, point, "walk") is False

    def test_contains_empty_structure(self):
        assert contains(Structure(code="A"), P(0, 0)) is False

    def test_locate_nested(self, campus):
        """중첩된 구조물은 모두 반환 (입력 순서)"""
        inside_hall = P(43.702, -72.298)
        found = locate(inside_hall, campus)
        assert [s.code for s in found] == ["CAMPUS", "HALL"]

    def test_locate_nowhere(self, campus):
        assert locate(P(0, 0), campus) == []


class TestStructureArea:
    """구조물 면적 테스트"""

    def test_area_of_map_boundary(self, campus):
        assert structure_area(campus[0]) > structure_area(campus[1]) > 0

    def test_area_without_polygon(self, campus):
        assert structure_area(campus[2]) == pytest.approx(0.0)
