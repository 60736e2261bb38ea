"""
Undo log for additive point edits.

``HistoryLog`` is an append-only stack owned by the engine instance (never
module-level state). It exposes ``push``/``pop``/``peek`` only; applying an
entry in reverse is the pure function :func:`revert`.
"""

from collections import deque
from typing import Deque, List, Optional

from geofence_engine.common.clock import utc_now_iso
from geofence_engine.core.models import (
    Boundary,
    HistoryAction,
    HistoryEntry,
    Point,
    Structure,
    normalize_code,
)

ACTION_FOR_BOUNDARY = {
    "map": "addMapPoint",
    "walk": "addWalkPoint",
    "trigger": "addTriggerPoint",
}


class HistoryLog:
    """
    추가형 점 편집의 실행 취소 기록.

    max_entries를 주면 가장 오래된 기록부터 버립니다 (None = 무제한).
    """

    def __init__(self, max_entries: Optional[int] = None):
        self._entries: Deque[HistoryEntry] = deque(maxlen=max_entries)

    def record(self, action_type: HistoryAction, structure_code: str, point: Point) -> HistoryEntry:
        """편집 동작을 기록합니다."""
        entry = HistoryEntry(
            action_type=action_type,
            structure_code=normalize_code(structure_code),
            payload=point,
        )
        self.push(entry)
        return entry

    def push(self, entry: HistoryEntry) -> None:
        self._entries.append(entry)

    def pop(self) -> Optional[HistoryEntry]:
        """마지막 기록을 꺼냅니다. 비어 있으면 None."""
        return self._entries.pop() if self._entries else None

    def peek(self) -> Optional[HistoryEntry]:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

    def can_undo(self) -> bool:
        return bool(self._entries)

    def entries(self) -> List[HistoryEntry]:
        """기록 사본 (오래된 순)"""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def action_for(boundary: Boundary) -> HistoryAction:
    return ACTION_FOR_BOUNDARY[boundary]


def revert(structure: Structure, entry: HistoryEntry) -> Structure:
    """
    기록 하나를 되돌린 새 구조물을 반환합니다.

    mapPoints/walkPoints의 마지막 점을 지우고, 그 경계가 3점 미만이 되면
    트리거 밴드 점도 비웁니다. addTriggerPoint는 밴드의 마지막 점만 지웁니다.

    Args:
        structure: 기록이 가리키는 구조물
        entry: 되돌릴 기록

    Returns:
        되돌린 구조물 (지울 점이 없으면 그대로)
    """
    band = structure.trigger_band

    if entry.action_type == "addTriggerPoint":
        if not band.points:
            return structure
        band = band.model_copy(update={"points": band.points[:-1], "calculated_points": []})
        return structure.model_copy(update={"trigger_band": band, "last_modified": utc_now_iso()})

    field = "map_points" if entry.action_type == "addMapPoint" else "walk_points"
    points: List[Point] = getattr(structure, field)
    if not points:
        return structure

    remaining = points[:-1]
    update = {field: remaining, "last_modified": utc_now_iso()}
    if len(remaining) < 3:
        update["trigger_band"] = band.model_copy(update={"points": [], "calculated_points": []})
    return structure.model_copy(update=update)
