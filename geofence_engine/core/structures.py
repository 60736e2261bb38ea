"""
In-memory structure store for the geofence engine.

Structures live in a flat, insertion-ordered map keyed by their
normalised code. Parent links are weak references by code. Every
mutation either applies completely or reports failure by return value
and leaves the store untouched.
"""

import uuid
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from geofence_engine.common.clock import utc_now_iso
from geofence_engine.core import band, hierarchy
from geofence_engine.core.models import (
    Boundary,
    Point,
    Structure,
    StructureRelationship,
    TreeNode,
    normalize_code,
)
from geofence_engine.observability.logging_setup import get_logger
from geofence_engine.settings import BandSettings

log = get_logger("geofence.structures")

POINT_FIELDS = {"map": "map_points", "walk": "walk_points"}
IMMUTABLE_FIELDS = ("code", "last_modified")


class StructureStore:
    """구조물 저장소 (코드 → 구조물)"""

    def __init__(self, structures: Iterable[Structure] = (), *, band_settings: Optional[BandSettings] = None):
        """
        초기화합니다.

        Args:
            structures: 초기 구조물 (중복 코드는 앞의 것을 유지)
            band_settings: 밴드 생성 설정
        """
        self.band_settings = band_settings or BandSettings()
        self._items: Dict[str, Structure] = {}
        for structure in structures:
            self.add(structure)

    # ---- 조회 -------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Structure]:
        return iter(list(self._items.values()))

    def __contains__(self, code) -> bool:
        return isinstance(code, str) and normalize_code(code) in self._items

    def get(self, code: str) -> Optional[Structure]:
        return self._items.get(normalize_code(code))

    def all(self) -> List[Structure]:
        return list(self._items.values())

    def codes(self) -> List[str]:
        return list(self._items)

    def generate_code(self, prefix: str = "STRUCT", taken: Iterable[str] = ()) -> str:
        """저장소와 taken 어디에도 없는 새 코드를 만듭니다."""
        taken = set(taken)
        while True:
            code = f"{prefix}-{uuid.uuid4().hex[:8].upper()}"
            if code not in self._items and code not in taken:
                return code

    # ---- CRUD -------------------------------------------------------------

    def add(self, structure: Structure) -> bool:
        """
        구조물을 추가합니다.

        Returns:
            추가되면 True. 코드가 중복이거나 parent_id가 없는 코드를 가리키면 False.
        """
        if structure.code in self._items:
            log.warning(f"Structure code already exists: {structure.code}")
            return False
        if structure.parent_id and structure.parent_id not in self._items:
            log.warning(f"Unknown parent {structure.parent_id} for {structure.code}")
            return False
        self._items[structure.code] = structure
        log.debug(f"Structure added: {structure.code}")
        return True

    def create(
        self,
        name: str,
        *,
        code: Optional[str] = None,
        description: str = "",
        type: str = "other",
        parent_id: Optional[str] = None,
    ) -> Optional[Structure]:
        """새 구조물을 만들어 추가합니다. 실패하면 None."""
        structure = Structure(
            code=code or self.generate_code(),
            name=name,
            description=description,
            type=type,
            parent_id=parent_id,
            trigger_band={"thickness": self.band_settings.default_thickness_m},
        )
        return structure if self.add(structure) else None

    def update(self, code: str, **changes) -> bool:
        """
        이름, 설명, 유형 같은 필드를 바꿉니다.

        parent_id 변경은 set_parent 규칙을 따르고, code와 last_modified는 바꿀 수 없습니다.
        """
        current = self.get(code)
        if current is None:
            return False
        for name in IMMUTABLE_FIELDS:
            if name in changes:
                log.warning(f"Field '{name}' cannot be updated on {current.code}")
                return False

        parent_changed = "parent_id" in changes
        new_parent = changes.pop("parent_id", None)

        data = current.model_dump()
        data.update(changes)
        data["last_modified"] = utc_now_iso()
        try:
            updated = Structure.model_validate(data)
        except ValueError as e:
            log.warning(f"Invalid update for {current.code}: {e}")
            return False

        if parent_changed and not self._parent_allowed(current.code, new_parent):
            return False
        if parent_changed:
            updated = updated.model_copy(update={"parent_id": _normalize_parent(new_parent)})

        self._items[current.code] = updated
        return True

    def delete(self, code: str, *, cascade: bool = False) -> List[str]:
        """
        구조물을 삭제합니다.

        Args:
            code: 삭제할 구조물 코드
            cascade: True이면 모든 자손도 삭제, False이면 자식을 루트로 분리

        Returns:
            삭제된 코드 목록 (없는 코드이면 빈 목록). 부모는 절대 삭제하지 않습니다.
        """
        code = normalize_code(code)
        if code not in self._items:
            return []

        removed = [code]
        if cascade:
            removed += [s.code for s in hierarchy.descendants(code, self.all())]
        else:
            now = utc_now_iso()
            for child in self.all():
                if child.parent_id == code:
                    self._items[child.code] = child.model_copy(
                        update={"parent_id": None, "last_modified": now}
                    )

        for removed_code in removed:
            self._items.pop(removed_code, None)
        log.info(f"Structures deleted: {removed}")
        return removed

    def replace(self, structure: Structure) -> None:
        """검증된 구조물로 기존 항목을 덮어씁니다 (실행 취소 전용)."""
        self._items[structure.code] = structure

    # ---- 계층 -------------------------------------------------------------

    def set_parent(self, child_code: str, parent_code: Optional[str]) -> bool:
        """
        부모를 바꿉니다. 순환을 만들면 거부하고 상태를 바꾸지 않습니다.

        Args:
            child_code: 자식 구조물 코드
            parent_code: 새 부모 코드, None이면 루트로 분리

        Returns:
            성공 여부
        """
        child = self.get(child_code)
        if child is None:
            return False
        if not self._parent_allowed(child.code, parent_code):
            return False
        self._items[child.code] = child.model_copy(
            update={"parent_id": _normalize_parent(parent_code), "last_modified": utc_now_iso()}
        )
        return True

    def _parent_allowed(self, child_code: str, parent_code: Optional[str]) -> bool:
        if not _normalize_parent(parent_code):
            return True
        if not hierarchy.can_reparent(child_code, parent_code, self.all()):
            log.warning(f"Reparent rejected: {child_code} -> {parent_code}")
            return False
        return True

    def forest(self) -> List[TreeNode]:
        return hierarchy.build_forest(self.all())

    def relationships(self, code: str) -> StructureRelationship:
        return hierarchy.relationships(code, self.all())

    # ---- 점 편집 ----------------------------------------------------------

    def add_map_point(self, code: str, point: Point) -> Optional[Structure]:
        return self._append_point(code, "map", point)

    def add_walk_point(self, code: str, point: Point) -> Optional[Structure]:
        return self._append_point(code, "walk", point)

    def add_trigger_point(self, code: str, point: Point) -> Optional[Structure]:
        return self._append_point(code, "trigger", point)

    def _append_point(self, code: str, boundary: Boundary, point: Point) -> Optional[Structure]:
        structure = self.get(code)
        if structure is None:
            return None
        points = self._points(structure, boundary) + [point]
        return self._store_points(structure, boundary, points)

    def move_point(self, code: str, index: int, point: Point, boundary: Boundary = "map") -> Optional[Structure]:
        """index 위치의 점을 옮깁니다. 범위를 벗어나면 None."""
        structure = self.get(code)
        if structure is None:
            return None
        points = self._points(structure, boundary)
        if not 0 <= index < len(points):
            log.warning(f"Point index {index} out of range for {structure.code} ({boundary})")
            return None
        points[index] = point
        return self._store_points(structure, boundary, points)

    def delete_point(self, code: str, index: int, boundary: Boundary = "map") -> Optional[Structure]:
        """
        index 위치의 점을 지웁니다.

        지도 또는 보행 경계의 마지막 점을 지우면 트리거 밴드 점도 비웁니다.
        """
        structure = self.get(code)
        if structure is None:
            return None
        points = self._points(structure, boundary)
        if not 0 <= index < len(points):
            log.warning(f"Point index {index} out of range for {structure.code} ({boundary})")
            return None
        del points[index]
        updated = self._store_points(structure, boundary, points)
        if boundary != "trigger" and not points:
            updated = band.with_band_points(updated, [])
            self._items[updated.code] = updated
        return updated

    @staticmethod
    def _points(structure: Structure, boundary: Boundary) -> List[Point]:
        if boundary == "trigger":
            return list(structure.trigger_band.points)
        return list(getattr(structure, POINT_FIELDS[boundary]))

    def _store_points(self, structure: Structure, boundary: Boundary, points: Sequence[Point]) -> Structure:
        if boundary == "trigger":
            band_model = structure.trigger_band.model_copy(update={"points": list(points), "calculated_points": []})
            update = {"trigger_band": band_model}
        else:
            update = {POINT_FIELDS[boundary]: list(points)}
        update["last_modified"] = utc_now_iso()
        updated = structure.model_copy(update=update)
        self._items[updated.code] = updated
        return updated

    # ---- 트리거 밴드 ------------------------------------------------------

    def _band_kwargs(self) -> dict:
        return {
            "meters_per_degree": self.band_settings.meters_per_degree,
            "latitude_correction": self.band_settings.latitude_correction,
        }

    def regenerate_band(self, code: str) -> Optional[Structure]:
        """경계로부터 밴드를 다시 계산해 저장합니다."""
        structure = self.get(code)
        if structure is None:
            return None
        updated = band.regenerate(structure, **self._band_kwargs())
        self._items[updated.code] = updated
        return updated

    def set_trigger_band(self, code: str, points: Sequence[Point]) -> Optional[Structure]:
        """밴드 점을 직접 지정합니다 (재계산 없음)."""
        structure = self.get(code)
        if structure is None:
            return None
        updated = band.with_band_points(structure, points)
        self._items[updated.code] = updated
        return updated

    def update_thickness(self, code: str, thickness: float) -> Optional[Structure]:
        """밴드 두께를 바꿉니다. 두께가 0 이하이거나 코드가 없으면 None."""
        structure = self.get(code)
        if structure is None:
            return None
        try:
            updated = band.update_thickness(structure, thickness, **self._band_kwargs())
        except ValueError as e:
            log.warning(f"Thickness update rejected for {structure.code}: {e}")
            return None
        self._items[updated.code] = updated
        return updated

    # ---- 일괄 가져오기 ----------------------------------------------------

    def import_structures(self, structures: Iterable[Structure]) -> List[Structure]:
        """
        정규화된 구조물을 병합합니다.

        코드는 이미 고유하다고 가정하지만, 충돌하면 새 코드로 바꿉니다.
        저장소와 가져온 목록 어디에도 없는 parent_id는 비웁니다.

        Returns:
            실제로 추가된 구조물 목록
        """
        incoming: List[Structure] = []
        seen = set()
        renamed: Dict[str, str] = {}
        for structure in structures:
            if structure.code in self._items or structure.code in seen:
                new_code = self.generate_code("IMPORT", taken=seen)
                log.warning(f"Code collision on import: {structure.code} -> {new_code}")
                if structure.code not in seen:
                    renamed.setdefault(structure.code, new_code)
                structure = structure.model_copy(update={"code": new_code})
            seen.add(structure.code)
            incoming.append(structure)
        incoming = hierarchy.remap_parents(incoming, renamed)

        known = set(self._items) | {s.code for s in incoming}
        added: List[Structure] = []
        for structure in incoming:
            if structure.parent_id and structure.parent_id not in known:
                log.warning(f"Dropping unknown parent {structure.parent_id} on {structure.code}")
                structure = structure.model_copy(update={"parent_id": None})
            self._items[structure.code] = structure
            added.append(structure)

        log.info(f"Imported {len(added)} structures")
        return added


def _normalize_parent(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return normalize_code(value) or None
