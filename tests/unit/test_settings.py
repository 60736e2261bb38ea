"""
설정 로딩 단위 테스트
"""

import pytest
from pydantic import ValidationError

from geofence_engine.settings import BandSettings, HistorySettings, Settings, load_settings

ENV_VARS = [
    "GEOFENCE_BAND_THICKNESS_M",
    "GEOFENCE_METERS_PER_DEGREE",
    "GEOFENCE_LATITUDE_CORRECTION",
    "GEOFENCE_APP_VERSION",
    "GEOFENCE_FORCE_POLYGON",
    "GEOFENCE_HISTORY_MAX_ENTRIES",
    "GEOFENCE_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    """기본값 테스트"""

    def test_defaults(self):
        s = load_settings()

        assert s.band.default_thickness_m == 5.0
        assert s.band.meters_per_degree == 111000.0
        assert s.band.latitude_correction is False
        assert s.triggers.title_max == 50
        assert s.triggers.body_max == 100
        assert s.triggers.permanence_hours_max == 24
        assert s.export.force_polygon is False
        assert s.history.max_entries is None
        assert s.observability.log_level == "INFO"

    def test_equivalent_to_model_defaults(self):
        assert load_settings() == Settings()


class TestEnvironmentOverrides:
    """환경 변수 덮어쓰기 테스트"""

    def test_band_overrides(self, monkeypatch):
        monkeypatch.setenv("GEOFENCE_BAND_THICKNESS_M", "12.5")
        monkeypatch.setenv("GEOFENCE_METERS_PER_DEGREE", "111320")
        monkeypatch.setenv("GEOFENCE_LATITUDE_CORRECTION", "yes")

        s = load_settings()

        assert s.band.default_thickness_m == 12.5
        assert s.band.meters_per_degree == 111320.0
        assert s.band.latitude_correction is True

    @pytest.mark.parametrize("raw, expected", [("1", True), ("on", True), ("TRUE", True), ("0", False), ("no", False)])
    def test_boolean_parsing(self, monkeypatch, raw, expected):
        monkeypatch.setenv("GEOFENCE_FORCE_POLYGON", raw)
        assert load_settings().export.force_polygon is expected

    def test_history_and_logging(self, monkeypatch):
        monkeypatch.setenv("GEOFENCE_HISTORY_MAX_ENTRIES", "20")
        monkeypatch.setenv("GEOFENCE_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("GEOFENCE_APP_VERSION", "2.1.0")

        s = load_settings()

        assert s.history.max_entries == 20
        assert s.observability.log_level == "DEBUG"
        assert s.export.app_version == "2.1.0"


class TestValidation:
    """설정 값 검증 테스트"""

    def test_thickness_must_be_positive(self):
        with pytest.raises(ValidationError):
            BandSettings(default_thickness_m=0)

    def test_history_limit_must_be_positive(self):
        with pytest.raises(ValidationError):
            HistorySettings(max_entries=0)

    @pytest.mark.parametrize("name, raw", [
        ("GEOFENCE_BAND_THICKNESS_M", "-1"),
        ("GEOFENCE_BAND_THICKNESS_M", "0"),
        ("GEOFENCE_METERS_PER_DEGREE", "-111000"),
        ("GEOFENCE_HISTORY_MAX_ENTRIES", "0"),
    ])
    def test_out_of_range_env_rejected(self, monkeypatch, name, raw):
        """환경 변수로 들어온 값도 모델 제약을 지켜야 함"""
        monkeypatch.setenv(name, raw)
        with pytest.raises(ValidationError):
            load_settings()
