"""
Geofence engine facade.

This module implements the engine that owns one session's state: the
structure store, the trigger store and the undo log. All operations are
synchronous; a concurrent host must serialise access to one instance.
"""

from typing import Any, Dict, Iterable, List, Optional, Union

from geofence_engine.core import export, normalize
from geofence_engine.core.containment import locate
from geofence_engine.core.history import HistoryLog, action_for, revert
from geofence_engine.core.models import Boundary, Point, Structure, TriggersExport
from geofence_engine.core.structures import StructureStore
from geofence_engine.core.triggers import TriggerStore
from geofence_engine.observability.logging_setup import get_logger
from geofence_engine.settings import Settings

log = get_logger("geofence.engine")


class GeofenceEngine:
    """구조물, 트리거, 실행 취소 기록을 함께 관리하는 엔진"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        structures: Iterable[Structure] = (),
        triggers: Iterable = (),
    ):
        """
        초기화합니다.

        Args:
            settings: 엔진 설정 (None이면 기본값)
            structures: 초기 구조물
            triggers: 초기 트리거
        """
        self.settings = settings or Settings()
        self.structures = StructureStore(structures, band_settings=self.settings.band)
        self.triggers = TriggerStore(
            triggers,
            rules=self.settings.triggers,
            structure_exists=self.structures.__contains__,
        )
        self.history = HistoryLog(self.settings.history.max_entries)

    # ---- 점 편집 + 실행 취소 ---------------------------------------------

    def add_point(self, code: str, point: Point, boundary: Boundary = "map") -> Optional[Structure]:
        """
        경계에 점을 추가하고 실행 취소 기록을 남깁니다.

        밴드는 자동으로 다시 계산하지 않습니다 (regenerate_band 호출).

        Returns:
            갱신된 구조물, 코드가 없으면 None
        """
        if boundary == "map":
            updated = self.structures.add_map_point(code, point)
        elif boundary == "walk":
            updated = self.structures.add_walk_point(code, point)
        else:
            updated = self.structures.add_trigger_point(code, point)

        if updated is not None:
            self.history.record(action_for(boundary), updated.code, point)
        return updated

    def undo(self) -> Optional[Structure]:
        """
        마지막 점 추가를 되돌립니다.

        Returns:
            되돌린 구조물. 기록이 없거나 구조물이 삭제되었으면 None.
        """
        entry = self.history.pop()
        if entry is None:
            return None

        structure = self.structures.get(entry.structure_code)
        if structure is None:
            log.warning(f"Dropping undo entry for deleted structure {entry.structure_code}")
            return None

        reverted = revert(structure, entry)
        self.structures.replace(reverted)
        return reverted

    def can_undo(self) -> bool:
        return self.history.can_undo()

    # ---- 구조물 ----------------------------------------------------------

    def delete_structure(self, code: str, *, cascade: bool = False) -> List[str]:
        """구조물을 삭제합니다. 트리거는 남겨 두고 고아 개수만 기록합니다."""
        removed = self.structures.delete(code, cascade=cascade)
        if removed:
            orphans = self.triggers.orphaned(self.structures.codes())
            if orphans:
                log.info(f"{len(orphans)} triggers now reference deleted structures")
        return removed

    def locate(self, point: Point, boundary: Boundary = "map") -> List[Structure]:
        return locate(point, self.structures, boundary)

    def prune_orphan_triggers(self) -> List[str]:
        return self.triggers.prune_orphans(self.structures.codes())

    # ---- 가져오기 / 내보내기 --------------------------------------------

    def import_structures(self, payload: Union[str, bytes, Any]) -> List[Structure]:
        """
        구조물 페이로드를 해석해 병합합니다.

        Raises:
            UnsupportedFormatError: 형식을 인식할 수 없는 경우
        """
        obj = normalize.loads(payload) if isinstance(payload, (str, bytes)) else payload
        structures = normalize.to_structures(
            obj,
            existing_codes=self.structures.codes(),
            default_thickness=self.settings.band.default_thickness_m,
        )
        return self.structures.import_structures(structures)

    def export_structures(self, fmt: str = "custom", *, force_polygon: Optional[bool] = None) -> Dict[str, Any]:
        """
        구조물을 내보냅니다.

        Args:
            fmt: "custom" 또는 "geojson"
            force_polygon: walkPoints를 Polygon으로 (None이면 설정값)
        """
        cfg = self.settings.export
        if fmt == "geojson":
            polygon = cfg.force_polygon if force_polygon is None else force_polygon
            return export.to_geojson(self.structures, force_polygon=polygon)
        if fmt == "custom":
            return export.to_custom_format(self.structures, cfg.format_version, cfg.app_version)
        raise ValueError(f"Unknown export format: {fmt}")

    def export_triggers(self) -> TriggersExport:
        return self.triggers.export_all(self.settings.export.format_version)

    def import_triggers(self, payload, replace_all: bool = False) -> bool:
        return self.triggers.import_payload(payload, replace_all=replace_all)
