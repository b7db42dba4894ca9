"""
Core domain models for Galle Flood Watch.

This module defines the incident record using Pydantic v2.
Field names are snake_case in Python and camelCase in the
durable JSON form.
"""

import math
from typing import Any, Literal, Tuple, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from floodwatch.observability.logging_setup import get_logger

log = get_logger("floodwatch.models")

# 열거형 타입 정의
ShapeKind = Literal["point", "circle", "polygon", "path"]
Severity = Literal["minor", "moderate", "severe", "critical"]
EvacuationStatus = Literal["not_required", "recommended", "in_progress", "completed"]
WaterLevel = Literal["", "ankle", "knee", "waist", "above_waist"]
WeatherConditions = Literal["", "heavy_rain", "moderate_rain", "light_rain", "cloudy", "clear"]

SHAPE_KINDS = get_args(ShapeKind)
SEVERITY_LEVELS = get_args(Severity)
EVACUATION_STATUSES = get_args(EvacuationStatus)
WATER_LEVELS = get_args(WaterLevel)
WEATHER_CONDITIONS = get_args(WeatherConditions)

# 인식할 수 없는 값이 저장소에서 읽혔을 때의 대체값
FALLBACKS = {
    "shape_kind": "circle",
    "severity_level": "minor",
    "evacuation_status": "not_required",
    "water_level": "",
    "weather_conditions": "",
}

ACTIVE_STATUSES = frozenset({"in_progress", "recommended"})


def is_active(evacuation_status: str) -> bool:
    """대피 상태로부터 활성 여부를 계산합니다 (저장하지 않음)."""
    return evacuation_status in ACTIVE_STATUSES


def parse_position(value: Any) -> Tuple[float, float]:
    """
    좌표 값을 (위도, 경도) 튜플로 변환합니다.

    [lat, lon] 시퀀스 또는 {lat, lng}/{lat, lon} 매핑을 허용합니다.

    Raises:
        ValueError: 유한한 숫자 두 개가 아닌 경우
    """
    if isinstance(value, dict):
        lon = value.get("lng", value.get("lon"))
        parts = [value.get("lat"), lon]
    elif isinstance(value, (list, tuple)):
        parts = list(value)
    else:
        raise ValueError("position must be [lat, lon]")

    if len(parts) != 2:
        raise ValueError("position must have exactly two components")

    coords = []
    for part in parts:
        if isinstance(part, bool) or part is None:
            raise ValueError("position components must be numbers")
        try:
            number = float(part)
        except (TypeError, ValueError, OverflowError):
            raise ValueError("position components must be numbers")
        if not math.isfinite(number):
            raise ValueError("position components must be finite")
        coords.append(number)
    return coords[0], coords[1]


class IncidentRecord(BaseModel):
    """영속화되는 침수 인시던트 레코드"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(min_length=1)
    shape_kind: ShapeKind = "circle"
    position: Tuple[float, float]
    radius_meters: float = Field(gt=0, allow_inf_nan=False)
    created_at_millis: int
    incident_name: str = Field(min_length=1)
    reporter_name: str = Field(min_length=1)
    severity_level: Severity = "moderate"
    description: str = ""
    affected_area: str = ""
    water_level: WaterLevel = ""
    weather_conditions: WeatherConditions = ""
    evacuation_status: EvacuationStatus = "not_required"

    @field_validator("position", mode="before")
    @classmethod
    def _check_position(cls, v):
        return parse_position(v)

    @field_validator("description", "affected_area", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        return "" if v is None else v

    @field_validator(*FALLBACKS.keys(), mode="before")
    @classmethod
    def _degrade_unknown(cls, v, info):
        allowed = {
            "shape_kind": SHAPE_KINDS,
            "severity_level": SEVERITY_LEVELS,
            "evacuation_status": EVACUATION_STATUSES,
            "water_level": WATER_LEVELS,
            "weather_conditions": WEATHER_CONDITIONS,
        }[info.field_name]
        if v is None or v not in allowed:
            fallback = FALLBACKS[info.field_name]
            log.warning(f"알 수 없는 값 대체됨 field:{info.field_name} value:{v!r} fallback:{fallback!r}")
            return fallback
        return v

    @property
    def is_active(self) -> bool:
        return is_active(self.evacuation_status)

    def to_storage(self) -> dict:
        """영속화용 JSON 호환 딕셔너리를 반환합니다."""
        return self.model_dump(by_alias=True, mode="json")


# 입력 키(camelCase 또는 snake_case) -> 필드 이름
FIELD_NAMES = {}
for _name, _field in IncidentRecord.model_fields.items():
    FIELD_NAMES[_name] = _name
    FIELD_NAMES[_field.alias or _name] = _name
