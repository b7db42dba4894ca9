"""
테스트 설정 및 픽스처

이 모듈은 pytest 설정과 공통 픽스처를 제공합니다.
"""

import os
import tempfile

import pytest

from floodwatch.adapters.storage.memory_kv import InMemoryKVStore
from floodwatch.core.store import IncidentStore
from floodwatch.settings import Settings


@pytest.fixture
def temp_db_path():
    """임시 데이터베이스 파일 경로"""
    with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as f:
        temp_path = f.name
    yield temp_path
    # 테스트 후 파일 정리
    if os.path.exists(temp_path):
        os.unlink(temp_path)


@pytest.fixture
def sample_settings():
    """테스트용 설정"""
    settings = Settings()
    settings.observability.service_name = "test-service"
    settings.observability.build_version = "1.0.0"
    settings.observability.log_level = "INFO"
    return settings


@pytest.fixture
def memory_kv():
    """테스트용 메모리 키-값 저장소"""
    return InMemoryKVStore()


@pytest.fixture
def store(memory_kv):
    """테스트용 인시던트 저장소"""
    return IncidentStore(memory_kv)


@pytest.fixture
def sample_draft():
    """테스트용 인시던트 입력"""
    return {
        "incidentName": "Galle Road Flooding",
        "reporterName": "N. Perera",
        "dateTime": "2025-05-20T14:30",
        "position": {"lat": 6.0535, "lng": 80.2210},
        "radiusMeters": 150,
        "severityLevel": "severe",
        "description": "Water over the road near the bus stand",
        "affectedArea": "Residential Area",
        "evacuationStatus": "not_required",
        "waterLevel": "knee",
        "weatherConditions": "heavy_rain",
    }


@pytest.fixture
def galle_candidates():
    """테스트용 지오코더 응답"""
    return [
        {
            "lat": "7.2906",
            "lon": "80.6337",
            "display_name": "Kandy, Central Province, Sri Lanka",
            "address": {"city": "Kandy", "state_district": "Kandy District"},
        },
        {
            "lat": "6.1395",
            "lon": "80.1063",
            "display_name": "Hikkaduwa, Galle District, Southern Province, Sri Lanka",
            "address": {"town": "Hikkaduwa", "state_district": "Galle District"},
        },
    ]
