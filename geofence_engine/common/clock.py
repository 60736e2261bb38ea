"""
Timestamp helpers for the geofence engine.

All timestamps are stored as ISO 8601 strings in UTC with a trailing "Z",
matching the format produced by JavaScript's Date.toISOString().
"""

from datetime import datetime, timezone


def utc_now_iso() -> str:
    """현재 UTC 시각을 밀리초 정밀도의 ISO 8601 문자열로 반환합니다."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def parse_iso(value: str) -> datetime:
    """
    ISO 8601 문자열을 datetime으로 변환합니다.

    Args:
        value: "Z" 접미사를 포함할 수 있는 ISO 8601 문자열

    Returns:
        timezone 정보가 있는 datetime

    Raises:
        ValueError: 형식이 올바르지 않은 경우
    """
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
