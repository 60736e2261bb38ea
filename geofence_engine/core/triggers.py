"""
Trigger store for the geofence engine.

Triggers are notification rules bound to one structure by code. Field
validation and per-structure uniqueness are enforced inside ``create``
and ``update`` and reported as a :class:`MutationResult` rather than
raised. Triggers whose structure no longer exists are kept but treated
as inert; ``orphaned``/``prune_orphans`` let the caller decide.
"""

import random
import string
import time
from typing import Callable, Dict, Iterable, List, Optional, Union

from jsonschema import validate
from jsonschema.exceptions import ValidationError as SchemaValidationError
from pydantic import ValidationError

from geofence_engine.common.clock import utc_now_iso
from geofence_engine.core import validation
from geofence_engine.core.models import (
    MembershipEvent,
    MembershipTrigger,
    MutationResult,
    NotificationConfig,
    PermanenceTrigger,
    Trigger,
    TriggerExportMetadata,
    TriggersExport,
    TriggerStatistics,
    normalize_code,
)
from geofence_engine.core.normalize import UnsupportedFormatError, load_schema, loads
from geofence_engine.observability.logging_setup import get_logger
from geofence_engine.settings import TriggerSettings

log = get_logger("geofence.triggers")

TRIGGER_EXPORT_SCHEMA = load_schema("trigger_export")


def generate_trigger_id() -> str:
    """trigger_<밀리초>_<임의 9자> 형식의 ID"""
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f"trigger_{int(time.time() * 1000)}_{suffix}"


def export_triggers(triggers: Iterable[Trigger], version: str = "1.0") -> TriggersExport:
    """
    트리거 목록을 버전이 붙은 내보내기 페이로드로 만듭니다.

    Args:
        triggers: 내보낼 트리거
        version: 페이로드 버전

    Returns:
        내보내기 모델 (model_dump(by_alias=True)로 직렬화)
    """
    triggers = list(triggers)
    return TriggersExport(
        version=version,
        triggers=triggers,
        metadata=TriggerExportMetadata(exported_at=utc_now_iso(), total_triggers=len(triggers)),
    )


def parse_trigger_export(payload: Union[str, bytes, dict, TriggersExport]) -> TriggersExport:
    """
    트리거 내보내기 페이로드를 해석합니다.

    Raises:
        UnsupportedFormatError: JSON이 아니거나 형식이 맞지 않는 경우
    """
    if isinstance(payload, TriggersExport):
        return payload
    obj = loads(payload) if isinstance(payload, (str, bytes)) else payload

    try:
        validate(instance=obj, schema=TRIGGER_EXPORT_SCHEMA)
    except SchemaValidationError as e:
        raise UnsupportedFormatError(f"Trigger export schema validation failed: {e.message}")
    try:
        return TriggersExport.model_validate(obj)
    except ValidationError as e:
        raise UnsupportedFormatError(f"Invalid trigger in export: {e.error_count()} error(s)")


class TriggerStore:
    """트리거 저장소 (ID 기준, 삽입 순서 유지)"""

    def __init__(
        self,
        triggers: Iterable[Trigger] = (),
        *,
        rules: Optional[TriggerSettings] = None,
        structure_exists: Optional[Callable[[str], bool]] = None,
    ):
        """
        초기화합니다.

        Args:
            triggers: 초기 트리거
            rules: 검증 한계값
            structure_exists: 구조물 코드 존재 여부 확인 함수 (None이면 확인 안 함)
        """
        self.rules = rules or TriggerSettings()
        self.structure_exists = structure_exists
        self._items: Dict[str, Trigger] = {}
        for trigger in triggers:
            self._items.setdefault(trigger.id, trigger)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(list(self._items.values()))

    def get(self, trigger_id: str) -> Optional[Trigger]:
        return self._items.get(trigger_id)

    def all(self) -> List[Trigger]:
        return list(self._items.values())

    # ---- 생성 / 수정 / 삭제 -------------------------------------------------

    def _check_structure(self, structure_code: str, errors: Dict[str, str]) -> None:
        if not normalize_code(structure_code or ""):
            errors["structure_code"] = "Structure code is required"
        elif self.structure_exists is not None and not self.structure_exists(structure_code):
            errors["structure_code"] = f"Unknown structure: {normalize_code(structure_code)}"

    def create_membership(
        self,
        structure_code: str,
        trigger_type: MembershipEvent,
        title: str,
        body: str,
        flow_id: str,
    ) -> MutationResult:
        """
        진입/이탈 트리거를 만듭니다.

        Returns:
            MutationResult. 필드 오류, 같은 구조물의 같은 이벤트 중복, 없는 구조물이면 ok=False.
        """
        errors = dict(validation.validate_trigger_data(title, body, flow_id, rules=self.rules).errors)
        self._check_structure(structure_code, errors)
        if trigger_type not in ("enter", "exit"):
            errors["trigger_type"] = "Trigger type must be 'enter' or 'exit'"
        elif validation.is_duplicate_membership(self._items.values(), structure_code or "", trigger_type):
            errors["trigger_type"] = f"An '{trigger_type}' trigger already exists for this structure"
        if errors:
            return self._rejected("create", errors)

        now = utc_now_iso()
        trigger = MembershipTrigger(
            id=generate_trigger_id(),
            structure_code=structure_code,
            trigger_type=trigger_type,
            notification_config=NotificationConfig(title=title.strip(), body=body.strip()),
            severity=self.rules.default_severity,
            flow_id=flow_id.strip(),
            created_at=now,
            updated_at=now,
        )
        return self._stored(trigger)

    def create_permanence(
        self,
        structure_code: str,
        permanence_hours: int,
        title: str,
        body: str,
        flow_id: str,
    ) -> MutationResult:
        """
        체류 시간 트리거를 만듭니다.

        Returns:
            MutationResult. 같은 구조물에 같은 시간이 이미 있으면 ok=False.
        """
        errors = dict(
            validation.validate_trigger_data(title, body, flow_id, permanence_hours, rules=self.rules).errors
        )
        self._check_structure(structure_code, errors)
        if "permanence_hours" not in errors and validation.is_duplicate_permanence(
            self._items.values(), structure_code or "", permanence_hours
        ):
            errors["permanence_hours"] = (
                f"A {permanence_hours}-hour trigger already exists for this structure"
            )
        if errors:
            return self._rejected("create", errors)

        now = utc_now_iso()
        trigger = PermanenceTrigger(
            id=generate_trigger_id(),
            structure_code=structure_code,
            permanence_hours=permanence_hours,
            notification_config=NotificationConfig(title=title.strip(), body=body.strip()),
            severity=self.rules.default_severity,
            flow_id=flow_id.strip(),
            created_at=now,
            updated_at=now,
        )
        return self._stored(trigger)

    def update(
        self,
        trigger_id: str,
        *,
        title: Optional[str] = None,
        body: Optional[str] = None,
        flow_id: Optional[str] = None,
        is_active: Optional[bool] = None,
        trigger_type: Optional[MembershipEvent] = None,
        permanence_hours: Optional[int] = None,
    ) -> MutationResult:
        """
        트리거를 수정합니다. 결과 전체를 다시 검증하며 자기 자신은 중복에서 제외합니다.

        Args:
            trigger_id: 수정할 트리거 ID
            title, body, flow_id, is_active: 바꿀 값 (None이면 유지)
            trigger_type: 진입/이탈 트리거의 이벤트
            permanence_hours: 체류 트리거의 시간

        Returns:
            MutationResult
        """
        current = self._items.get(trigger_id)
        if current is None:
            return self._rejected("update", {"id": f"Unknown trigger: {trigger_id}"})

        config = current.notification_config
        title = config.title if title is None else title
        body = config.body if body is None else body
        flow_id = current.flow_id if flow_id is None else flow_id
        is_membership = isinstance(current, MembershipTrigger)

        errors: Dict[str, str] = {}
        if is_membership and permanence_hours is not None:
            errors["permanence_hours"] = "Membership triggers have no permanence hours"
        if not is_membership and trigger_type is not None:
            errors["trigger_type"] = "Permanence triggers have no trigger type"

        hours = None
        if not is_membership:
            hours = current.permanence_hours if permanence_hours is None else permanence_hours
        errors.update(validation.validate_trigger_data(title, body, flow_id, hours, rules=self.rules).errors)

        update = {
            "notification_config": NotificationConfig(title=title.strip(), body=body.strip()),
            "flow_id": flow_id.strip(),
            "updated_at": utc_now_iso(),
        }
        if is_active is not None:
            update["is_active"] = bool(is_active)

        if is_membership:
            event = current.trigger_type if trigger_type is None else trigger_type
            if event not in ("enter", "exit"):
                errors["trigger_type"] = "Trigger type must be 'enter' or 'exit'"
            elif validation.is_duplicate_membership(
                self._items.values(), current.structure_code, event, exclude_id=trigger_id
            ):
                errors["trigger_type"] = f"An '{event}' trigger already exists for this structure"
            update["trigger_type"] = event
        elif "permanence_hours" not in errors:
            if validation.is_duplicate_permanence(
                self._items.values(), current.structure_code, hours, exclude_id=trigger_id
            ):
                errors["permanence_hours"] = f"A {hours}-hour trigger already exists for this structure"
            update["permanence_hours"] = hours

        if errors:
            return self._rejected("update", errors)
        return self._stored(current.model_copy(update=update))

    def delete(self, trigger_id: str) -> bool:
        removed = self._items.pop(trigger_id, None)
        if removed is not None:
            log.info(f"Trigger deleted: {trigger_id}")
        return removed is not None

    def toggle_active(self, trigger_id: str) -> Optional[Trigger]:
        """활성 상태를 뒤집습니다. 없는 ID이면 None."""
        current = self._items.get(trigger_id)
        if current is None:
            return None
        toggled = current.model_copy(update={"is_active": not current.is_active, "updated_at": utc_now_iso()})
        self._items[trigger_id] = toggled
        return toggled

    def clear(self) -> None:
        self._items.clear()

    def _stored(self, trigger: Trigger) -> MutationResult:
        self._items[trigger.id] = trigger
        log.info(f"Trigger saved: {trigger.id} ({trigger.type}) on {trigger.structure_code}")
        return MutationResult(ok=True, trigger=trigger)

    @staticmethod
    def _rejected(action: str, errors: Dict[str, str]) -> MutationResult:
        log.warning(f"Trigger {action} rejected: {errors}")
        return MutationResult(ok=False, errors=errors)

    # ---- 조회 -------------------------------------------------------------

    def for_structure(self, structure_code: str) -> List[Trigger]:
        code = normalize_code(structure_code)
        return [t for t in self._items.values() if t.structure_code == code]

    def has_triggers(self, structure_code: str) -> bool:
        code = normalize_code(structure_code)
        return any(t.structure_code == code for t in self._items.values())

    def orphaned(self, existing_codes: Iterable[str]) -> List[Trigger]:
        """존재하지 않는 구조물을 가리키는 (비활성으로 취급할) 트리거"""
        codes = {normalize_code(c) for c in existing_codes}
        return [t for t in self._items.values() if t.structure_code not in codes]

    def prune_orphans(self, existing_codes: Iterable[str]) -> List[str]:
        """고아 트리거를 삭제하고 삭제된 ID 목록을 반환합니다."""
        removed = [t.id for t in self.orphaned(existing_codes)]
        for trigger_id in removed:
            del self._items[trigger_id]
        if removed:
            log.info(f"Pruned {len(removed)} orphaned triggers")
        return removed

    def statistics(self) -> TriggerStatistics:
        triggers = self.all()
        membership = [t for t in triggers if isinstance(t, MembershipTrigger)]
        active = sum(1 for t in triggers if t.is_active)
        return TriggerStatistics(
            total_triggers=len(triggers),
            active_triggers=active,
            inactive_triggers=len(triggers) - active,
            membership_triggers=len(membership),
            enter_triggers=sum(1 for t in membership if t.trigger_type == "enter"),
            exit_triggers=sum(1 for t in membership if t.trigger_type == "exit"),
            permanence_triggers=sum(1 for t in triggers if isinstance(t, PermanenceTrigger)),
            structures_with_triggers=len({t.structure_code for t in triggers}),
        )

    # ---- 내보내기 / 가져오기 ---------------------------------------------

    def export_all(self, version: str = "1.0") -> TriggersExport:
        return export_triggers(self._items.values(), version)

    def import_payload(self, payload, replace_all: bool = False) -> bool:
        """
        트리거 내보내기 페이로드를 가져옵니다.

        replace_all이면 현재 목록을 통째로 바꾸고, 아니면 ID 기준으로 병합하며
        이미 있는 ID는 건너뜁니다 (먼저 저장된 쪽 우선). 들어오는 트리거도
        create와 같은 필드 검증과 구조물별 중복 검사를 거치며, 통과하지 못한
        트리거는 건너뜁니다. 형식이 잘못되면 상태를 바꾸지 않고 False를 반환합니다.
        """
        try:
            export = parse_trigger_export(payload)
        except UnsupportedFormatError as e:
            log.error(f"Failed to import triggers: {e}")
            return False

        if replace_all:
            merged: Dict[str, Trigger] = {}
        else:
            merged = dict(self._items)

        skipped = 0
        for trigger in export.triggers:
            if trigger.id in merged:
                skipped += 1
                continue
            errors = self._import_errors(trigger, merged.values())
            if errors:
                log.warning(f"Skipping imported trigger {trigger.id}: {errors}")
                skipped += 1
                continue
            merged[trigger.id] = trigger
        self._items = merged

        log.info(
            f"Imported {len(export.triggers) - skipped} triggers "
            f"(skipped {skipped}, replace_all={replace_all})"
        )
        return True

    def _import_errors(self, trigger: Trigger, accepted: Iterable[Trigger]) -> Dict[str, str]:
        """가져온 트리거 하나를 검증 규칙과 이미 받아들인 트리거에 대해 검사합니다."""
        config = trigger.notification_config
        hours = trigger.permanence_hours if isinstance(trigger, PermanenceTrigger) else None
        errors = dict(
            validation.validate_trigger_data(config.title, config.body, trigger.flow_id, hours, rules=self.rules).errors
        )
        if isinstance(trigger, MembershipTrigger):
            if validation.is_duplicate_membership(accepted, trigger.structure_code, trigger.trigger_type):
                errors["trigger_type"] = f"An '{trigger.trigger_type}' trigger already exists for this structure"
        elif "permanence_hours" not in errors and validation.is_duplicate_permanence(
            accepted, trigger.structure_code, hours
        ):
            errors["permanence_hours"] = f"A {hours}-hour trigger already exists for this structure"
        return errors
