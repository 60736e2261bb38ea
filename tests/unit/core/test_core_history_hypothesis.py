"""
hypothesis를 활용한 실행 취소 속성 테스트

이 모듈은 임의의 점 추가 순서 뒤 실행 취소가 이전 상태를
복원하는지 검사합니다.
"""

from hypothesis import given, settings, strategies as st

from geofence_engine.core.models import Point, Structure
from geofence_engine.orchestrators.engine import GeofenceEngine

local_coords = st.builds(
    Point,
    lat=st.floats(min_value=43.0, max_value=43.01, allow_nan=False),
    lng=st.floats(min_value=-72.01, max_value=-72.0, allow_nan=False),
)


class TestUndoProperties:
    """실행 취소 속성 테스트"""

    @settings(max_examples=50)
    @given(st.lists(st.tuples(st.sampled_from(["map", "walk", "trigger"]), local_coords), max_size=15),
           st.integers(min_value=0, max_value=15))
    def test_undo_restores_prior_state(self, operations, keep):
        """마지막 N개 추가를 되돌리면 N개 이전의 점 상태로 복원"""
        engine = GeofenceEngine(structures=[Structure(code="A")])
        keep = min(keep, len(operations))
        for boundary, point in operations[:keep]:
            engine.add_point("A", point, boundary)
        snapshot = engine.structures.get("A")

        for boundary, point in operations[keep:]:
            engine.add_point("A", point, boundary)
        for _ in operations[keep:]:
            engine.undo()

        restored = engine.structures.get("A")
        assert restored.map_points == snapshot.map_points
        assert restored.walk_points == snapshot.walk_points
        if len(restored.map_points) >= 3 and len(restored.walk_points) >= 3:
            assert restored.trigger_band.points == snapshot.trigger_band.points

    def test_undo_empty_log_is_noop(self):
        engine = GeofenceEngine(structures=[Structure(code="A")])
        before = engine.structures.get("A")
        assert engine.undo() is None
        assert engine.structures.get("A") == before
