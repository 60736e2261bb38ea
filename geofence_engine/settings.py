# geofence_engine/settings.py
from __future__ import annotations
import os
from typing import Optional
from pydantic import BaseModel, Field

class BandSettings(BaseModel):
    default_thickness_m: float = Field(5.0, gt=0)
    meters_per_degree: float = Field(111000.0, gt=0)  # 적도 기준 근사값
    latitude_correction: bool = False                  # True면 경도 오프셋을 cos(위도)로 보정

class TriggerSettings(BaseModel):
    title_min: int = 3
    title_max: int = 50
    body_min: int = 3
    body_max: int = 100
    flow_id_pattern: str = r"^[A-Za-z0-9_-]+$"
    permanence_hours_min: int = 1
    permanence_hours_max: int = 24
    default_severity: str = "medium"

class ExportSettings(BaseModel):
    format_version: str = "1.0"
    app_version: str = "1.0.0"
    force_polygon: bool = False                        # walkPoints를 LineString 대신 Polygon으로

class HistorySettings(BaseModel):
    max_entries: Optional[int] = Field(None, gt=0)     # None = 무제한

class Observability(BaseModel):
    service_name: str = "geofence-engine"
    log_level: str = "INFO"

class Settings(BaseModel):
    band: BandSettings = Field(default_factory=BandSettings)
    triggers: TriggerSettings = Field(default_factory=TriggerSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)
    history: HistorySettings = Field(default_factory=HistorySettings)
    observability: Observability = Field(default_factory=Observability)


def _b(name, default=False): return os.getenv(name, str(default)).lower() in ("1","true","yes","on")

def load_settings() -> Settings:
    """기본 설정에 GEOFENCE_* 환경 변수를 덮어써 Settings를 만듭니다.

    덮어쓴 값은 마지막에 모델 제약으로 다시 검증하며, 범위를 벗어나면 ValidationError.
    """
    s = Settings()

    # 트리거 밴드
    s.band.default_thickness_m = float(os.getenv("GEOFENCE_BAND_THICKNESS_M", s.band.default_thickness_m))
    s.band.meters_per_degree = float(os.getenv("GEOFENCE_METERS_PER_DEGREE", s.band.meters_per_degree))
    s.band.latitude_correction = _b("GEOFENCE_LATITUDE_CORRECTION", s.band.latitude_correction)

    # 내보내기
    s.export.app_version = os.getenv("GEOFENCE_APP_VERSION", s.export.app_version)
    s.export.force_polygon = _b("GEOFENCE_FORCE_POLYGON", s.export.force_polygon)

    # 실행 취소 기록
    max_entries = os.getenv("GEOFENCE_HISTORY_MAX_ENTRIES")
    if max_entries:
        s.history.max_entries = int(max_entries)

    # 관측성
    s.observability.log_level = os.getenv("GEOFENCE_LOG_LEVEL", s.observability.log_level)
    return Settings.model_validate(s.model_dump())
