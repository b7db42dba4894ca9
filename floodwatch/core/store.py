"""
Incident store for Galle Flood Watch.

This module owns the ordered collection of incident records and
mirrors it to a single durable key-value slot after every
successful mutation. The whole collection is re-serialized on
each write.
"""

import json
import math
import uuid
from datetime import datetime
from typing import Any, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from floodwatch.core.errors import NotFoundError, PersistenceError, ValidationError
from floodwatch.core.models import (
    EVACUATION_STATUSES,
    FIELD_NAMES,
    SEVERITY_LEVELS,
    SHAPE_KINDS,
    WATER_LEVELS,
    WEATHER_CONDITIONS,
    IncidentRecord,
    parse_position,
)
from floodwatch.observability import metrics
from floodwatch.observability.logging_setup import get_logger
from floodwatch.ports.kvstore import KVStorePort

log = get_logger("floodwatch.store")

DEFAULT_KEY = "floodIncidents"

# 생성 후 변경 불가 필드
IMMUTABLE_FIELDS = frozenset({"id", "shape_kind", "position", "created_at_millis"})
REQUIRED_ON_ADD = ("incident_name", "reporter_name", "position", "radius_meters", "date_time")
ENUM_DOMAINS = {
    "shape_kind": SHAPE_KINDS,
    "severity_level": SEVERITY_LEVELS,
    "evacuation_status": EVACUATION_STATUSES,
    "water_level": WATER_LEVELS,
    "weather_conditions": WEATHER_CONDITIONS,
}
DRAFT_ONLY_NAMES = {"dateTime": "date_time", "date_time": "date_time"}

def _alias(name: str) -> str:
    if name == "date_time":
        return "dateTime"
    return IncidentRecord.model_fields[name].alias or name

def parse_datetime_millis(value: Any) -> int:
    """
    폼의 날짜/시간 값을 epoch 밀리초로 변환합니다.

    ISO 8601 문자열 또는 datetime 을 허용하며, 타임존이 없는 값은
    로컬 시간으로 해석합니다. 정수는 이미 밀리초로 간주합니다.

    Raises:
        ValueError: 해석할 수 없는 값
    """
    if isinstance(value, bool):
        raise ValueError("dateTime must be a date/time")
    if isinstance(value, int):
        return value
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        dt = datetime.fromisoformat(text)
    else:
        raise ValueError("dateTime must be a date/time")
    return int(dt.timestamp() * 1000)

def _check_value(name: str, value: Any) -> Any:
    """단일 필드 값을 검증하고 정규화된 값을 반환합니다 (ValueError)."""
    if name in ("incident_name", "reporter_name"):
        if not isinstance(value, str) or not value.strip():
            raise ValueError("must be non-empty text")
        return value.strip()
    if name == "radius_meters":
        if isinstance(value, bool) or value is None:
            raise ValueError("must be a number")
        try:
            radius = float(value)
        except OverflowError:
            raise ValueError("must be a finite number")
        if not math.isfinite(radius) or radius <= 0:
            raise ValueError("must be a positive number")
        return radius
    if name == "position":
        return parse_position(value)
    if name == "date_time":
        return parse_datetime_millis(value)
    if name in ENUM_DOMAINS:
        if value not in ENUM_DOMAINS[name]:
            raise ValueError(f"must be one of {ENUM_DOMAINS[name]}")
        return value
    if name in ("description", "affected_area"):
        if value is None:
            return ""
        if not isinstance(value, str):
            raise ValueError("must be text")
        return value
    raise ValueError("unknown field")

def _normalize(fields: Mapping[str, Any], *, allow_draft_only: bool):
    """입력 키를 필드 이름으로 바꾸고 값을 검증합니다."""
    values = {}
    errors = []
    for key, value in fields.items():
        name = FIELD_NAMES.get(key)
        if name is None and allow_draft_only:
            name = DRAFT_ONLY_NAMES.get(key)
        if name is None:
            errors.append(key)
            continue
        try:
            values[name] = _check_value(name, value)
        except (TypeError, ValueError, OverflowError):
            errors.append(_alias(name))
    return values, errors

def decode_collection(raw: Optional[str]) -> List[IncidentRecord]:
    """
    저장된 JSON 을 레코드 목록으로 복원합니다.

    값이 없거나 파싱할 수 없으면 빈 목록을 반환합니다.
    유효하지 않은 레코드와 중복 ID 는 건너뜁니다.
    """
    if not raw:
        return []
    try:
        items = json.loads(raw)
    except (TypeError, ValueError) as e:
        log.warning(f"저장된 인시던트 파싱 실패, 빈 목록으로 시작: {e}")
        return []
    if not isinstance(items, list):
        log.warning(f"저장된 인시던트 형식 오류 (list 아님): {type(items).__name__}")
        return []

    records: List[IncidentRecord] = []
    seen = set()
    for index, item in enumerate(items):
        try:
            record = IncidentRecord.model_validate(item)
        except PydanticValidationError as e:
            log.warning(f"유효하지 않은 인시던트 건너뜀 index:{index} errors:{e.error_count()}")
            continue
        except (TypeError, ValueError, OverflowError) as e:
            log.warning(f"유효하지 않은 인시던트 건너뜀 index:{index} error:{e!r}")
            continue
        if record.id in seen:
            log.warning(f"중복 인시던트 ID 건너뜀 id:{record.id}")
            continue
        seen.add(record.id)
        records.append(record)
    return records

def encode_collection(records: List[IncidentRecord]) -> str:
    return json.dumps([r.to_storage() for r in records], ensure_ascii=False)

class IncidentStore:
    """인시던트 컬렉션 저장소"""

    def __init__(self, kv: KVStorePort, key: str = DEFAULT_KEY):
        """
        초기화합니다.

        Args:
            kv: 영속 키-값 저장소
            key: 컬렉션을 저장할 슬롯 키
        """
        self.kv = kv
        self.key = key
        self._records: List[IncidentRecord] = []
        log.info(f"IncidentStore 초기화: key={key}")

    async def load(self) -> List[IncidentRecord]:
        """
        저장 슬롯에서 컬렉션을 읽어 메모리 상태를 교체합니다.

        읽기 실패나 손상된 데이터는 "데이터 없음"으로 취급하며
        호출자에게 오류를 전달하지 않습니다.
        """
        try:
            raw = await self.kv.get(self.key)
        except Exception as e:
            log.error(f"인시던트 슬롯 읽기 실패, 빈 목록으로 시작: {e}")
            raw = None
        self._records = decode_collection(raw)
        self._update_gauges()
        log.info(f"인시던트 로드됨 count:{len(self._records)}")
        return list(self._records)

    def all(self) -> List[IncidentRecord]:
        """삽입 순서대로 전체 레코드를 반환합니다."""
        return list(self._records)

    def active(self) -> List[IncidentRecord]:
        return [r for r in self._records if r.is_active]

    def get(self, incident_id: str) -> IncidentRecord:
        return self._records[self._index(incident_id)]

    async def add(self, draft: Mapping[str, Any]) -> IncidentRecord:
        """
        새 인시던트를 추가합니다.

        Args:
            draft: incidentName, reporterName, position, radiusMeters,
                dateTime 필수. 나머지는 선택.

        Returns:
            새 ID 가 부여된 레코드

        Raises:
            ValidationError: 필수 필드 누락 또는 잘못된 값
            PersistenceError: 메모리 반영 후 저장 실패
        """
        values, errors = _normalize(draft, allow_draft_only=True)
        for name in REQUIRED_ON_ADD:
            if name not in values and _alias(name) not in errors:
                errors.append(_alias(name))
        if errors:
            log.warning(f"인시던트 추가 거부됨 fields:{errors}")
            raise ValidationError(errors)

        created_at = values.pop("date_time")
        record = self._build(id=self._new_id(), created_at_millis=created_at, **values)

        self._records.append(record)
        metrics.incident_mutations.labels(op="add").inc()
        log.info(f"인시던트 추가됨 id:{record.id} name:{record.incident_name} severity:{record.severity_level}")
        await self._flush(record)
        return record

    async def update(self, incident_id: str, fields: Mapping[str, Any]) -> IncidentRecord:
        """
        지정된 필드만 교체합니다. 주어지지 않은 필드는 유지됩니다.

        Raises:
            NotFoundError: 존재하지 않는 ID
            ValidationError: 변경 불가 필드, 알 수 없는 필드 또는 잘못된 값
            PersistenceError: 메모리 반영 후 저장 실패
        """
        index = self._index(incident_id)
        values, errors = _normalize(fields, allow_draft_only=False)
        for name in IMMUTABLE_FIELDS & values.keys():
            errors.append(_alias(name))
        if errors:
            log.warning(f"인시던트 수정 거부됨 id:{incident_id} fields:{errors}")
            raise ValidationError(errors)

        current = self._records[index]
        record = self._build(**{**current.model_dump(), **values})

        self._records[index] = record
        metrics.incident_mutations.labels(op="update").inc()
        log.info(f"인시던트 수정됨 id:{incident_id} fields:{sorted(values)}")
        await self._flush(record)
        return record

    async def set_active(self, incident_id: str, active: bool) -> IncidentRecord:
        """활성/비활성 토글을 대피 상태로 반영합니다."""
        status = "in_progress" if active else "not_required"
        return await self.update(incident_id, {"evacuationStatus": status})

    async def remove(self, incident_id: str) -> None:
        """
        인시던트를 삭제합니다.

        Raises:
            NotFoundError: 존재하지 않는 ID (이미 삭제된 경우 포함)
            PersistenceError: 메모리 반영 후 저장 실패
        """
        index = self._index(incident_id)
        self._records.pop(index)
        metrics.incident_mutations.labels(op="remove").inc()
        log.info(f"인시던트 삭제됨 id:{incident_id}")
        await self._flush(None)

    def _index(self, incident_id: str) -> int:
        for i, record in enumerate(self._records):
            if record.id == incident_id:
                return i
        raise NotFoundError(incident_id)

    def _new_id(self) -> str:
        ids = {r.id for r in self._records}
        while True:
            candidate = uuid.uuid4().hex
            if candidate not in ids:
                return candidate

    def _build(self, **values) -> IncidentRecord:
        try:
            return IncidentRecord(**values)
        except PydanticValidationError as e:
            fields = [_alias(str(err["loc"][0])) for err in e.errors() if err.get("loc")]
            raise ValidationError(fields or ["record"]) from e

    async def _flush(self, record: Optional[IncidentRecord]) -> None:
        """전체 컬렉션을 저장 슬롯에 다시 기록합니다."""
        self._update_gauges()
        payload = encode_collection(self._records)
        try:
            await self.kv.set(self.key, payload)
        except Exception as e:
            metrics.incident_persist_failures.inc()
            log.error(f"인시던트 저장 실패 (메모리 변경은 유지됨): {e}")
            raise PersistenceError(f"failed to persist incidents: {e}", record=record) from e

    def _update_gauges(self) -> None:
        metrics.incident_store_size.set(len(self._records))
        metrics.incident_store_active.set(sum(1 for r in self._records if r.is_active))
