"""
테스트 설정 및 픽스처

이 모듈은 pytest 설정과 공통 픽스처를 제공합니다.
"""

import pytest

from geofence_engine.core.models import Point, Structure
from geofence_engine.settings import Settings


def square(lat0: float, lng0: float, size: float):
    """(lat0, lng0)에서 시작하는 정사각형 꼭짓점"""
    return [
        Point(lat=lat0, lng=lng0),
        Point(lat=lat0, lng=lng0 + size),
        Point(lat=lat0 + size, lng=lng0 + size),
        Point(lat=lat0 + size, lng=lng0),
    ]


@pytest.fixture
def temp_file_path(tmp_path):
    """구조물/트리거 JSON을 쓸 임시 파일 경로"""
    return str(tmp_path / "payload.json")


@pytest.fixture
def sample_settings():
    """테스트용 설정"""
    settings = Settings()
    settings.observability.service_name = "test-service"
    settings.observability.log_level = "DEBUG"
    return settings


@pytest.fixture
def outer_square():
    """바깥 경계 (0,0)-(2,2)"""
    return square(0.0, 0.0, 2.0)


@pytest.fixture
def inner_square():
    """안쪽 경계 (0.5,0.5)-(1.5,1.5)"""
    return square(0.5, 0.5, 1.0)


@pytest.fixture
def campus():
    """테스트용 구조물 계층: CAMPUS > HALL > ROOM, 그리고 독립 GYM"""
    return [
        Structure(code="campus", name="Campus", type="administrative",
                  map_points=square(43.70, -72.30, 0.01)),
        Structure(code="hall", name="Hall", type="academic", parent_id="campus",
                  map_points=square(43.701, -72.299, 0.002),
                  walk_points=square(43.7012, -72.2988, 0.0016)),
        Structure(code="room", name="Room", parent_id="hall"),
        Structure(code="gym", name="Gym", type="athletic",
                  map_points=square(43.80, -72.30, 0.001)),
    ]


def pytest_configure(config):
    config.addinivalue_line("markers", "property: hypothesis 속성 기반 테스트")


def pytest_collection_modifyitems(config, items):
    """@given 테스트에 property 마커를 붙여 run_tests.py --property로 고를 수 있게 함"""
    for item in items:
        if getattr(getattr(item, "obj", None), "is_hypothesis_test", False):
            item.add_marker(pytest.mark.property)
