"""
트리거 검증 규칙 단위 테스트
"""

import pytest

from geofence_engine.core.models import MembershipTrigger, NotificationConfig, PermanenceTrigger
from geofence_engine.core.validation import (
    is_duplicate_membership,
    is_duplicate_permanence,
    membership_preview,
    permanence_preview,
    preview,
    validate_flow_id,
    validate_notification_config,
    validate_permanence_hours,
    validate_trigger_data,
)
from geofence_engine.settings import TriggerSettings


def membership(id, code, event):
    return MembershipTrigger(id=id, structure_code=code, trigger_type=event, flow_id="flow",
                             notification_config=NotificationConfig(title="Hello", body="World"))


def permanence(id, code, hours):
    return PermanenceTrigger(id=id, structure_code=code, permanence_hours=hours, flow_id="flow",
                             notification_config=NotificationConfig(title="Hello", body="World"))


class TestFieldValidation:
    """필드 검증 테스트"""

    def test_valid_input(self):
        result = validate_trigger_data("Welcome", "Enjoy your stay", "flow_1")
        assert result.is_valid is True
        assert result.errors == {}

    def test_errors_accumulate(self):
        """한 필드가 실패해도 모든 필드를 검사"""
        result = validate_trigger_data("ab", "x" * 101, "bad id!", 30)

        assert result.is_valid is False
        assert set(result.errors) == {"title", "body", "flow_id", "permanence_hours"}

    def test_title_is_trimmed(self):
        """앞뒤 공백은 길이에 포함하지 않음"""
        assert "title" in validate_notification_config("  ab  ", "Body text")
        assert validate_notification_config("  abc  ", "Body text") == {}

    @pytest.mark.parametrize("title, ok", [("abc", True), ("a" * 50, True), ("a" * 51, False), ("", False)])
    def test_title_bounds(self, title, ok):
        assert ("title" not in validate_notification_config(title, "Body text")) is ok

    @pytest.mark.parametrize("body, ok", [("abc", True), ("b" * 100, True), ("b" * 101, False)])
    def test_body_bounds(self, body, ok):
        assert ("body" not in validate_notification_config("Title", body)) is ok

    @pytest.mark.parametrize("flow_id, message", [
        ("", "Flow ID is required"),
        ("   ", "Flow ID is required"),
        ("has space", "Flow ID can only contain letters, numbers, underscores, and hyphens"),
    ])
    def test_flow_id_errors(self, flow_id, message):
        assert validate_flow_id(flow_id) == {"flow_id": message}

    def test_flow_id_valid(self):
        assert validate_flow_id("Flow-01_a") == {}

    @pytest.mark.parametrize("hours, ok", [(1, True), (24, True), (0, False), (25, False),
                                           (2.5, False), (True, False), ("3", False)])
    def test_permanence_hours(self, hours, ok):
        assert (validate_permanence_hours(hours) == {}) is ok

    def test_permanence_error_key(self):
        """체류 시간 오류는 permanence_hours 키"""
        assert set(validate_permanence_hours(0)) == {"permanence_hours"}

    def test_custom_rules(self):
        rules = TriggerSettings(title_min=1, permanence_hours_max=48)
        assert validate_trigger_data("A", "Body", "f", 48, rules=rules).is_valid


class TestDuplicates:
    """중복 검사 테스트"""

    @pytest.fixture
    def triggers(self):
        return [membership("t1", "HALL", "enter"), permanence("t2", "HALL", 2)]

    def test_duplicate_membership(self, triggers):
        assert is_duplicate_membership(triggers, "hall", "enter") is True
        assert is_duplicate_membership(triggers, "HALL", "exit") is False
        assert is_duplicate_membership(triggers, "GYM", "enter") is False

    def test_duplicate_membership_excludes_self(self, triggers):
        assert is_duplicate_membership(triggers, "HALL", "enter", exclude_id="t1") is False

    def test_duplicate_permanence(self, triggers):
        assert is_duplicate_permanence(triggers, "HALL", 2) is True
        assert is_duplicate_permanence(triggers, "HALL", 3) is False
        assert is_duplicate_permanence(triggers, "HALL", 2, exclude_id="t2") is False

    def test_types_do_not_cross(self, triggers):
        """진입 트리거는 체류 중복 검사에 걸리지 않음"""
        assert is_duplicate_permanence([membership("m", "HALL", "enter")], "HALL", 2) is False


class TestPreview:
    """미리보기 문장 테스트"""

    def test_membership_preview(self):
        assert membership_preview("Hi", "There", "f1", "exit") == (
            'When exiting the structure, users will see: "Hi" - "There" and flow "f1" will be triggered.'
        )

    @pytest.mark.parametrize("hours, unit", [(1, "hour"), (3, "hours")])
    def test_permanence_preview_plural(self, hours, unit):
        assert f"for {hours} {unit}," in permanence_preview("Hi", "There", "f1", hours)

    def test_preview_from_trigger(self):
        assert preview(membership("t", "A", "enter")).startswith("When entering")
        assert preview(permanence("t", "A", 4)).startswith("After staying in the structure for 4 hours")
