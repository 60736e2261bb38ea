"""
Core domain models for the geofence engine.

This module defines the structure, trigger band, trigger rule and
history models using Pydantic v2. Field names are snake_case in Python
and camelCase on the wire (``model_dump(by_alias=True)``).
"""

from typing import Annotated, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from geofence_engine.common.clock import utc_now_iso

DEFAULT_THICKNESS_M = 5.0

# 구조물 유형 (작은 열린 열거형: 모르는 값은 가져오기 시 "other"로 정규화)
StructureType = Literal[
    "academic", "residential", "administrative", "athletic", "dining", "library", "other"
]
STRUCTURE_TYPES = (
    "academic", "residential", "administrative", "athletic", "dining", "library", "other"
)

# 편집 대상 경계
Boundary = Literal["map", "walk", "trigger"]
# GeoJSON properties.boundaryType 값
BoundaryType = Literal["mapPoints", "walkPoints", "triggerBand"]
BOUNDARY_TYPES = ("mapPoints", "walkPoints", "triggerBand")

MembershipEvent = Literal["enter", "exit"]
HistoryAction = Literal["addMapPoint", "addWalkPoint", "addTriggerPoint"]


def normalize_code(value: str) -> str:
    """구조물 코드를 정규화합니다 (앞뒤 공백 제거, 대문자)."""
    return value.strip().upper()


class WireModel(BaseModel):
    """camelCase 별칭으로 직렬화되는 기본 모델"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Point(BaseModel):
    """위도/경도 좌표 (도 단위, 고도 없음)"""
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class TriggerBand(WireModel):
    """알림 트리거 밴드"""
    points: List[Point] = Field(default_factory=list)
    thickness: float = Field(DEFAULT_THICKNESS_M, gt=0)  # 미터
    calculated_points: List[Point] = Field(default_factory=list)


class Structure(WireModel):
    """지오펜스 구조물 모델"""
    code: str
    name: str = ""
    description: str = ""
    type: StructureType = "other"
    parent_id: Optional[str] = None
    map_points: List[Point] = Field(default_factory=list)
    walk_points: List[Point] = Field(default_factory=list)
    trigger_band: TriggerBand = Field(default_factory=TriggerBand)
    last_modified: str = Field(default_factory=utc_now_iso)

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, value: str) -> str:
        code = normalize_code(value)
        if not code:
            raise ValueError("code must not be empty")
        return code

    @field_validator("parent_id")
    @classmethod
    def _normalize_parent(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return normalize_code(value) or None

    @field_validator("type", mode="before")
    @classmethod
    def _lower_type(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class NotificationConfig(WireModel):
    """알림 내용"""
    title: str
    body: str


class TriggerBase(WireModel):
    """트리거 공통 필드"""
    id: str
    structure_code: str
    notification_config: NotificationConfig
    severity: str = "medium"
    flow_id: str
    is_active: bool = True
    created_at: str = Field(default_factory=utc_now_iso)
    updated_at: str = Field(default_factory=utc_now_iso)

    @field_validator("structure_code")
    @classmethod
    def _normalize_structure_code(cls, value: str) -> str:
        return normalize_code(value)


class MembershipTrigger(TriggerBase):
    """경계 진입/이탈 트리거"""
    type: Literal["membership"] = "membership"
    trigger_type: MembershipEvent


class PermanenceTrigger(TriggerBase):
    """체류 시간 트리거"""
    type: Literal["permanence"] = "permanence"
    permanence_hours: int


Trigger = Annotated[Union[MembershipTrigger, PermanenceTrigger], Field(discriminator="type")]
TriggerListAdapter = TypeAdapter(List[Trigger])


class TriggerExportMetadata(WireModel):
    exported_at: str = Field(default_factory=utc_now_iso)
    total_triggers: int = 0


class TriggersExport(WireModel):
    """트리거 내보내기 페이로드"""
    version: str = "1.0"
    triggers: List[Trigger] = Field(default_factory=list)
    metadata: TriggerExportMetadata = Field(default_factory=TriggerExportMetadata)


class ValidationResult(BaseModel):
    """필드별 검증 결과"""
    is_valid: bool
    errors: Dict[str, str] = Field(default_factory=dict)


class MutationResult(BaseModel):
    """트리거 변경 결과 (성공 시 trigger, 실패 시 errors)"""
    ok: bool
    trigger: Optional[Trigger] = None
    errors: Dict[str, str] = Field(default_factory=dict)


class TriggerStatistics(WireModel):
    total_triggers: int = 0
    active_triggers: int = 0
    inactive_triggers: int = 0
    membership_triggers: int = 0
    enter_triggers: int = 0
    exit_triggers: int = 0
    permanence_triggers: int = 0
    structures_with_triggers: int = 0


class HistoryEntry(WireModel):
    """추가형 점 편집 기록"""
    action_type: HistoryAction
    structure_code: str
    payload: Point


class TreeNode(BaseModel):
    """구조물 계층 트리 노드"""
    structure: Structure
    children: List["TreeNode"] = Field(default_factory=list)
    depth: int = 0


class StructureRelationship(BaseModel):
    """구조물 관계 조회 결과"""
    parent: Optional[Structure] = None
    children: List[Structure] = Field(default_factory=list)
    siblings: List[Structure] = Field(default_factory=list)
    ancestors: List[Structure] = Field(default_factory=list)
    descendants: List[Structure] = Field(default_factory=list)


TreeNode.model_rebuild()
