"""
Human-readable formatting for areas, distances and timestamps.
"""

from geofence_engine.common.clock import parse_iso


def format_date(value: str) -> str:
    """ISO 문자열을 "Jan 5, 2025, 03:04 PM" 형식으로 바꿉니다."""
    try:
        dt = parse_iso(value)
    except (AttributeError, TypeError, ValueError):
        return "Invalid date"
    return f"{dt:%b} {dt.day}, {dt:%Y}, {dt:%I:%M %p}"


def format_distance(meters: float) -> str:
    if meters < 1:
        return f"{meters * 100:.0f} cm"
    elif meters < 1000:
        return f"{meters:.1f} m"
    else:
        return f"{meters / 1000:.2f} km"


def format_area(square_meters: float) -> str:
    if square_meters < 1:
        return f"{square_meters * 10000:.0f} cm²"
    elif square_meters < 10000:
        return f"{square_meters:.1f} m²"
    else:
        return f"{square_meters / 10000:.2f} ha"
