"""
포맷터 및 시각 헬퍼 단위 테스트
"""

from datetime import timezone

import pytest

from geofence_engine.common.clock import parse_iso, utc_now_iso
from geofence_engine.common.formatters import format_area, format_date, format_distance


class TestFormatArea:
    """면적 포맷 테스트"""

    @pytest.mark.parametrize("value, expected", [
        (0.5, "5000 cm²"),
        (250, "250.0 m²"),
        (9999.94, "9999.9 m²"),
        (25_000, "2.50 ha"),
    ])
    def test_format_area(self, value, expected):
        assert format_area(value) == expected


class TestFormatDistance:
    """거리 포맷 테스트"""

    @pytest.mark.parametrize("value, expected", [
        (0.5, "50 cm"),
        (12.34, "12.3 m"),
        (2500, "2.50 km"),
    ])
    def test_format_distance(self, value, expected):
        assert format_distance(value) == expected


class TestFormatDate:
    """날짜 포맷 테스트"""

    def test_format_date_afternoon(self):
        assert format_date("2025-01-05T15:04:00.000Z") == "Jan 5, 2025, 03:04 PM"

    def test_format_date_with_offset(self):
        assert format_date("2024-11-30T09:30:00+00:00") == "Nov 30, 2024, 09:30 AM"

    @pytest.mark.parametrize("value", ["not a date", "", None])
    def test_format_date_invalid(self, value):
        assert format_date(value) == "Invalid date"


class TestClock:
    """시각 헬퍼 테스트"""

    def test_utc_now_iso_shape(self):
        """밀리초 3자리와 Z 접미사"""
        value = utc_now_iso()
        assert value.endswith("Z")
        assert len(value) == len("2025-01-01T00:00:00.000Z")

    def test_parse_iso_roundtrip(self):
        parsed = parse_iso(utc_now_iso())
        assert parsed.tzinfo is not None
        assert parsed.utcoffset() == timezone.utc.utcoffset(None)

    def test_parse_naive_is_utc(self):
        assert parse_iso("2025-01-01T00:00:00").tzinfo == timezone.utc
