"""
Trigger rule validation for the geofence engine.

This module contains pure functions for validating notification trigger
fields and for detecting duplicate triggers on a structure. Validation
never raises: every field is checked and all errors are collected into a
single field map so a caller can report them at once.
"""

import re
from typing import Dict, Iterable, Optional

from geofence_engine.core.models import (
    MembershipEvent,
    MembershipTrigger,
    PermanenceTrigger,
    Trigger,
    ValidationResult,
    normalize_code,
)
from geofence_engine.settings import TriggerSettings

DEFAULT_RULES = TriggerSettings()


def validate_notification_config(
    title: str, body: str, rules: TriggerSettings = DEFAULT_RULES
) -> Dict[str, str]:
    """
    알림 제목과 본문 길이를 검증합니다 (앞뒤 공백 제외).

    Returns:
        필드별 오류 메시지 (오류가 없으면 빈 딕셔너리)
    """
    errors: Dict[str, str] = {}

    title = (title or "").strip()
    if len(title) < rules.title_min:
        errors["title"] = f"Title must be at least {rules.title_min} characters long"
    elif len(title) > rules.title_max:
        errors["title"] = f"Title must be no more than {rules.title_max} characters long"

    body = (body or "").strip()
    if len(body) < rules.body_min:
        errors["body"] = f"Body must be at least {rules.body_min} characters long"
    elif len(body) > rules.body_max:
        errors["body"] = f"Body must be no more than {rules.body_max} characters long"

    return errors


def validate_flow_id(flow_id: str, rules: TriggerSettings = DEFAULT_RULES) -> Dict[str, str]:
    """flow ID가 비어 있지 않고 허용 문자만 포함하는지 검증합니다."""
    flow_id = (flow_id or "").strip()
    if not flow_id:
        return {"flow_id": "Flow ID is required"}
    if not re.fullmatch(rules.flow_id_pattern, flow_id):
        return {"flow_id": "Flow ID can only contain letters, numbers, underscores, and hyphens"}
    return {}


def validate_permanence_hours(hours, rules: TriggerSettings = DEFAULT_RULES) -> Dict[str, str]:
    """체류 시간이 허용 범위의 정수인지 검증합니다."""
    # bool은 int의 하위 클래스이므로 따로 거른다
    if isinstance(hours, bool) or not isinstance(hours, int):
        return {"permanence_hours": "Permanence hours must be a whole number"}
    if hours < rules.permanence_hours_min:
        return {"permanence_hours": f"Permanence hours must be at least {rules.permanence_hours_min}"}
    if hours > rules.permanence_hours_max:
        return {"permanence_hours": f"Permanence hours must be no more than {rules.permanence_hours_max}"}
    return {}


def validate_trigger_data(
    title: str,
    body: str,
    flow_id: str,
    permanence_hours: Optional[int] = None,
    rules: TriggerSettings = DEFAULT_RULES,
) -> ValidationResult:
    """
    트리거 입력 전체를 검증합니다.

    한 필드가 실패해도 나머지 필드를 계속 검사해 모든 오류를 모읍니다.

    Args:
        title: 알림 제목
        body: 알림 본문
        flow_id: 실행할 플로우 ID
        permanence_hours: 체류 트리거이면 시간, 진입/이탈 트리거이면 None
        rules: 검증 한계값

    Returns:
        검증 결과 (is_valid, errors)
    """
    errors: Dict[str, str] = {}
    errors.update(validate_notification_config(title, body, rules))
    errors.update(validate_flow_id(flow_id, rules))
    if permanence_hours is not None:
        errors.update(validate_permanence_hours(permanence_hours, rules))
    return ValidationResult(is_valid=not errors, errors=errors)


def is_duplicate_membership(
    triggers: Iterable[Trigger],
    structure_code: str,
    trigger_type: MembershipEvent,
    exclude_id: Optional[str] = None,
) -> bool:
    """같은 구조물에 같은 진입/이탈 트리거가 이미 있는지 확인합니다."""
    code = normalize_code(structure_code)
    return any(
        isinstance(t, MembershipTrigger)
        and t.structure_code == code
        and t.trigger_type == trigger_type
        and t.id != exclude_id
        for t in triggers
    )


def is_duplicate_permanence(
    triggers: Iterable[Trigger],
    structure_code: str,
    hours: int,
    exclude_id: Optional[str] = None,
) -> bool:
    """같은 구조물에 같은 체류 시간 트리거가 이미 있는지 확인합니다."""
    code = normalize_code(structure_code)
    return any(
        isinstance(t, PermanenceTrigger)
        and t.structure_code == code
        and t.permanence_hours == hours
        and t.id != exclude_id
        for t in triggers
    )


def membership_preview(title: str, body: str, flow_id: str, trigger_type: MembershipEvent) -> str:
    action = "entering" if trigger_type == "enter" else "exiting"
    return (
        f'When {action} the structure, users will see: "{title}" - "{body}" '
        f'and flow "{flow_id}" will be triggered.'
    )


def permanence_preview(title: str, body: str, flow_id: str, hours: int) -> str:
    plural = "" if hours == 1 else "s"
    return (
        f"After staying in the structure for {hours} hour{plural}, "
        f'users will see: "{title}" - "{body}" and flow "{flow_id}" will be triggered.'
    )


def preview(trigger: Trigger) -> str:
    """저장된 트리거의 안내 문장"""
    config = trigger.notification_config
    if isinstance(trigger, MembershipTrigger):
        return membership_preview(config.title, config.body, trigger.flow_id, trigger.trigger_type)
    return permanence_preview(config.title, config.body, trigger.flow_id, trigger.permanence_hours)
