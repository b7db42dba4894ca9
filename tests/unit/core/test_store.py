"""
IncidentStore 단위 테스트

이 모듈은 인시던트 저장소의 추가/수정/삭제와 영속화를 테스트합니다.
"""

import json
from datetime import datetime

import pytest

from floodwatch.adapters.storage.memory_kv import InMemoryKVStore
from floodwatch.core.errors import NotFoundError, PersistenceError, ValidationError
from floodwatch.core.store import IncidentStore, decode_collection, encode_collection


class FailingKV(InMemoryKVStore):
    """쓰기가 항상 실패하는 저장소"""

    async def set(self, key, value):
        raise OSError("disk full")


class BrokenReadKV(InMemoryKVStore):
    """읽기가 항상 실패하는 저장소"""

    async def get(self, key):
        raise OSError("unreadable")


class TestAdd:
    """인시던트 추가 테스트"""

    @pytest.mark.asyncio
    async def test_add_appends_one_record_with_fresh_id(self, store, sample_draft):
        """추가 후 레코드가 하나 늘고 새 ID 가 부여됨"""
        before = store.all()
        record = await store.add(sample_draft)
        after = store.all()

        assert len(after) == len(before) + 1
        assert after[-1] == record
        assert record.id
        assert record.id not in {r.id for r in before}

    @pytest.mark.asyncio
    async def test_add_assigns_unique_ids(self, store, sample_draft):
        """여러 번 추가해도 ID 는 중복되지 않음"""
        records = [await store.add(sample_draft) for _ in range(20)]
        assert len({r.id for r in records}) == 20

    @pytest.mark.asyncio
    async def test_add_keeps_insertion_order(self, store, sample_draft):
        """삽입 순서 유지"""
        names = ["first", "second", "third"]
        for name in names:
            await store.add({**sample_draft, "incidentName": name})
        assert [r.incident_name for r in store.all()] == names

    @pytest.mark.asyncio
    async def test_add_maps_draft_fields(self, store, sample_draft):
        """입력 필드가 레코드에 반영됨"""
        record = await store.add(sample_draft)

        assert record.position == (6.0535, 80.2210)
        assert record.radius_meters == 150.0
        assert record.severity_level == "severe"
        assert record.shape_kind == "circle"
        assert record.water_level == "knee"
        assert record.created_at_millis == int(datetime(2025, 5, 20, 14, 30).timestamp() * 1000)

    @pytest.mark.asyncio
    async def test_add_applies_form_defaults(self, store):
        """선택 필드 기본값"""
        record = await store.add({
            "incidentName": "Drain overflow",
            "reporterName": "K. Silva",
            "dateTime": "2025-05-20T08:00:00+05:30",
            "position": [6.03, 80.21],
            "radiusMeters": "100",
        })

        assert record.severity_level == "moderate"
        assert record.evacuation_status == "not_required"
        assert record.description == ""
        assert record.radius_meters == 100.0
        assert record.created_at_millis == int(datetime.fromisoformat("2025-05-20T08:00:00+05:30").timestamp() * 1000)

    @pytest.mark.asyncio
    async def test_add_persists_whole_collection(self, store, memory_kv, sample_draft):
        """추가 후 전체 컬렉션이 슬롯에 기록됨"""
        await store.add(sample_draft)
        await store.add({**sample_draft, "incidentName": "Second"})

        stored = json.loads(memory_kv.data["floodIncidents"])
        assert [item["incidentName"] for item in stored] == ["Galle Road Flooding", "Second"]
        assert memory_kv.writes == 2

    @pytest.mark.asyncio
    async def test_add_empty_incident_name_rejected(self, store, memory_kv, sample_draft):
        """빈 인시던트 이름은 거부되고 컬렉션은 변하지 않음"""
        with pytest.raises(ValidationError) as exc_info:
            await store.add({**sample_draft, "incidentName": "   "})

        assert exc_info.value.fields == ["incidentName"]
        assert store.all() == []
        assert memory_kv.writes == 0

    @pytest.mark.asyncio
    async def test_add_lists_every_missing_field(self, store):
        """누락된 필수 필드를 모두 나열"""
        with pytest.raises(ValidationError) as exc_info:
            await store.add({"severityLevel": "minor"})

        assert set(exc_info.value.fields) == {
            "incidentName", "reporterName", "position", "radiusMeters", "dateTime"
        }

    @pytest.mark.parametrize("position", [
        None,
        [6.05],
        [6.05, 80.2, 1.0],
        ["north", 80.2],
        [float("nan"), 80.2],
        [6.05, float("inf")],
        {"lat": 6.05},
        [True, 80.2],
        [10**400, 80.2],
    ])
    @pytest.mark.asyncio
    async def test_add_invalid_position_rejected(self, store, sample_draft, position):
        """유효하지 않은 좌표는 거부됨"""
        with pytest.raises(ValidationError) as exc_info:
            await store.add({**sample_draft, "position": position})
        assert exc_info.value.fields == ["position"]
        assert store.all() == []

    @pytest.mark.parametrize("radius", ["wide", None, -5, 0, True, 10**400, float("inf")])
    @pytest.mark.asyncio
    async def test_add_invalid_radius_rejected(self, store, sample_draft, radius):
        """숫자가 아닌 반경은 거부됨"""
        with pytest.raises(ValidationError) as exc_info:
            await store.add({**sample_draft, "radiusMeters": radius})
        assert exc_info.value.fields == ["radiusMeters"]

    @pytest.mark.asyncio
    async def test_add_radius_range_not_enforced_by_store(self, store, sample_draft):
        """반경 범위 [10, 1000] 는 입력 단계에서만 검증"""
        record = await store.add({**sample_draft, "radiusMeters": 5000})
        assert record.radius_meters == 5000.0

    @pytest.mark.asyncio
    async def test_add_unknown_severity_rejected(self, store, sample_draft):
        """정의되지 않은 심각도는 입력 시 거부됨"""
        with pytest.raises(ValidationError) as exc_info:
            await store.add({**sample_draft, "severityLevel": "apocalyptic"})
        assert exc_info.value.fields == ["severityLevel"]

    @pytest.mark.asyncio
    async def test_add_bad_datetime_rejected(self, store, sample_draft):
        """해석할 수 없는 날짜/시간은 거부됨"""
        with pytest.raises(ValidationError) as exc_info:
            await store.add({**sample_draft, "dateTime": "yesterday-ish"})
        assert exc_info.value.fields == ["dateTime"]

    @pytest.mark.asyncio
    async def test_add_rejects_caller_supplied_id(self, store, sample_draft):
        """ID 는 저장소가 부여함"""
        with pytest.raises(ValidationError) as exc_info:
            await store.add({**sample_draft, "id": "mine"})
        assert exc_info.value.fields == ["id"]


class TestUpdate:
    """인시던트 수정 테스트"""

    @pytest.mark.asyncio
    async def test_update_unknown_id(self, store):
        """존재하지 않는 ID 수정은 NotFoundError"""
        with pytest.raises(NotFoundError):
            await store.update("missing", {"severityLevel": "minor"})

    @pytest.mark.asyncio
    async def test_update_replaces_only_given_fields(self, store, sample_draft):
        """주어진 필드만 교체됨"""
        record = await store.add(sample_draft)
        updated = await store.update(record.id, {"severityLevel": "critical", "radiusMeters": 400})

        assert updated.severity_level == "critical"
        assert updated.radius_meters == 400.0
        assert updated.incident_name == record.incident_name
        assert updated.position == record.position
        assert updated.created_at_millis == record.created_at_millis
        assert store.get(record.id) == updated

    @pytest.mark.asyncio
    async def test_update_evacuation_status_drives_is_active(self, store, sample_draft):
        """대피 상태에 따라 활성 여부가 다시 계산됨"""
        record = await store.add(sample_draft)
        assert store.get(record.id).is_active is False

        await store.update(record.id, {"evacuationStatus": "in_progress"})
        assert store.get(record.id).is_active is True

        await store.update(record.id, {"evacuationStatus": "completed"})
        assert store.get(record.id).is_active is False

    @pytest.mark.asyncio
    async def test_is_active_never_persisted(self, store, memory_kv, sample_draft):
        """활성 여부는 저장되지 않음"""
        record = await store.add({**sample_draft, "evacuationStatus": "recommended"})
        stored = json.loads(memory_kv.data["floodIncidents"])

        assert record.is_active is True
        assert "isActive" not in stored[0]
        assert "is_active" not in stored[0]

    @pytest.mark.parametrize("field", ["id", "position", "createdAtMillis", "shapeKind", "isActive", "colour"])
    @pytest.mark.asyncio
    async def test_update_rejects_immutable_and_unknown_fields(self, store, sample_draft, field):
        """변경 불가/알 수 없는 필드는 거부되고 레코드는 유지됨"""
        record = await store.add(sample_draft)
        values = {
            "id": "other",
            "position": [6.1, 80.1],
            "createdAtMillis": 0,
            "shapeKind": "polygon",
            "isActive": True,
            "colour": "red",
        }
        with pytest.raises(ValidationError) as exc_info:
            await store.update(record.id, {field: values[field]})

        assert exc_info.value.fields == [field]
        assert store.get(record.id) == record

    @pytest.mark.asyncio
    async def test_update_empty_reporter_rejected(self, store, sample_draft):
        """빈 보고자 이름으로 수정 불가"""
        record = await store.add(sample_draft)
        with pytest.raises(ValidationError):
            await store.update(record.id, {"reporterName": ""})
        assert store.get(record.id).reporter_name == "N. Perera"

    @pytest.mark.asyncio
    async def test_update_accepts_snake_case_names(self, store, sample_draft):
        """snake_case 필드 이름도 허용"""
        record = await store.add(sample_draft)
        updated = await store.update(record.id, {"affected_area": "School Zone"})
        assert updated.affected_area == "School Zone"

    @pytest.mark.asyncio
    async def test_set_active_maps_to_evacuation_status(self, store, sample_draft):
        """활성 토글은 대피 상태로 반영됨"""
        record = await store.add(sample_draft)

        activated = await store.set_active(record.id, True)
        assert activated.evacuation_status == "in_progress"
        assert store.active() == [activated]

        deactivated = await store.set_active(record.id, False)
        assert deactivated.evacuation_status == "not_required"
        assert store.active() == []


class TestRemove:
    """인시던트 삭제 테스트"""

    @pytest.mark.asyncio
    async def test_remove_unknown_id(self, store):
        """존재하지 않는 ID 삭제는 NotFoundError"""
        with pytest.raises(NotFoundError) as exc_info:
            await store.remove("missing")
        assert exc_info.value.incident_id == "missing"

    @pytest.mark.asyncio
    async def test_remove_twice_fails_second_time(self, store, memory_kv, sample_draft):
        """두 번째 삭제는 NotFoundError"""
        record = await store.add(sample_draft)

        await store.remove(record.id)
        assert store.all() == []
        assert json.loads(memory_kv.data["floodIncidents"]) == []

        with pytest.raises(NotFoundError):
            await store.remove(record.id)

    @pytest.mark.asyncio
    async def test_remove_keeps_other_records_in_order(self, store, sample_draft):
        """삭제 후 나머지 순서 유지"""
        a = await store.add({**sample_draft, "incidentName": "a"})
        b = await store.add({**sample_draft, "incidentName": "b"})
        c = await store.add({**sample_draft, "incidentName": "c"})

        await store.remove(b.id)
        assert [r.id for r in store.all()] == [a.id, c.id]


class TestPersistence:
    """영속화 테스트"""

    @pytest.mark.asyncio
    async def test_round_trip_through_slot(self, store, memory_kv, sample_draft):
        """저장 후 다시 로드하면 같은 컬렉션"""
        await store.add(sample_draft)
        await store.add({**sample_draft, "incidentName": "Second", "position": [6.12, 80.11]})
        await store.add({**sample_draft, "incidentName": "Third", "waterLevel": ""})

        reloaded = IncidentStore(memory_kv)
        assert await reloaded.load() == store.all()

    @pytest.mark.asyncio
    async def test_encode_decode_round_trip(self, store, sample_draft):
        """직렬화/역직렬화 시 순서와 필드 보존"""
        await store.add(sample_draft)
        await store.add({**sample_draft, "incidentName": "Second"})

        assert decode_collection(encode_collection(store.all())) == store.all()

    @pytest.mark.parametrize("raw", [None, "", "not json", "{}", "42", '{"id": "x"}'])
    @pytest.mark.asyncio
    async def test_load_missing_or_corrupt_is_empty(self, raw):
        """없거나 손상된 슬롯은 빈 목록"""
        kv = InMemoryKVStore({} if raw is None else {"floodIncidents": raw})
        store = IncidentStore(kv)
        assert await store.load() == []
        assert store.all() == []

    @pytest.mark.asyncio
    async def test_load_read_failure_is_empty(self):
        """읽기 실패도 빈 목록"""
        store = IncidentStore(BrokenReadKV())
        assert await store.load() == []

    @pytest.mark.asyncio
    async def test_load_skips_invalid_and_duplicate_records(self, sample_draft):
        """유효하지 않은 레코드와 중복 ID 는 건너뜀"""
        good = {
            "id": "a1",
            "shapeKind": "circle",
            "position": [6.05, 80.22],
            "radiusMeters": 100,
            "createdAtMillis": 1716195600000,
            "incidentName": "Fort flooding",
            "reporterName": "R. Fernando",
            "severityLevel": "moderate",
            "evacuationStatus": "recommended",
        }
        bad_position = {**good, "id": "a2", "position": [6.05]}
        duplicate = {**good, "incidentName": "copy"}
        kv = InMemoryKVStore({"floodIncidents": json.dumps([good, bad_position, duplicate])})

        records = await IncidentStore(kv).load()

        assert [r.id for r in records] == ["a1"]
        assert records[0].incident_name == "Fort flooding"
        assert records[0].is_active is True

    @pytest.mark.asyncio
    async def test_load_skips_out_of_range_numbers(self):
        """float 로 변환할 수 없는 큰 정수는 오류 없이 건너뜀"""
        good = {
            "id": "a1",
            "position": [6.05, 80.22],
            "radiusMeters": 100,
            "createdAtMillis": 1716195600000,
            "incidentName": "Fort flooding",
            "reporterName": "R. Fernando",
        }
        huge_position = {**good, "id": "a2", "position": [10**400, 80.2]}
        huge_radius = {**good, "id": "a3", "radiusMeters": 10**400}
        kv = InMemoryKVStore({"floodIncidents": json.dumps([huge_position, good, huge_radius])})

        records = await IncidentStore(kv).load()

        assert [r.id for r in records] == ["a1"]

    @pytest.mark.asyncio
    async def test_update_out_of_range_radius_rejected(self, store, sample_draft):
        record = await store.add(sample_draft)
        with pytest.raises(ValidationError) as exc_info:
            await store.update(record.id, {"radiusMeters": 10**400})
        assert exc_info.value.fields == ["radiusMeters"]
        assert store.get(record.id).radius_meters == 150

    @pytest.mark.asyncio
    async def test_load_degrades_unknown_enums(self):
        """알 수 없는 열거값은 대체값으로"""
        item = {
            "id": "x",
            "position": [6.05, 80.22],
            "radiusMeters": 100,
            "createdAtMillis": 1716195600000,
            "incidentName": "Old record",
            "reporterName": "Someone",
            "severityLevel": "high",
            "evacuationStatus": "maybe",
        }
        kv = InMemoryKVStore({"floodIncidents": json.dumps([item])})
        [record] = await IncidentStore(kv).load()

        assert record.severity_level == "minor"
        assert record.evacuation_status == "not_required"
        assert record.is_active is False

    @pytest.mark.asyncio
    async def test_persist_failure_is_reported_and_mutation_kept(self, sample_draft):
        """저장 실패는 보고되지만 메모리 변경은 유지됨"""
        store = IncidentStore(FailingKV())

        with pytest.raises(PersistenceError) as exc_info:
            await store.add(sample_draft)

        committed = exc_info.value.record
        assert committed is not None
        assert store.all() == [committed]

    @pytest.mark.asyncio
    async def test_custom_slot_key(self, memory_kv, sample_draft):
        """슬롯 키 지정"""
        store = IncidentStore(memory_kv, key="otherKey")
        await store.add(sample_draft)
        assert "otherKey" in memory_kv.data
        assert "floodIncidents" not in memory_kv.data
