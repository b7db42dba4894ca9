# floodwatch/settings.py
from __future__ import annotations
from pydantic import BaseModel, Field

class Storage(BaseModel):
    path: str = "/data/floodwatch.db"
    key: str = "floodIncidents"

class Geocoder(BaseModel):
    base_url: str = "https://nominatim.openstreetmap.org/search"
    timeout_sec: float = 10.0
    limit: int = 3
    country_code: str = "lk"
    user_agent: str = "DisasterTrackingApp/1.0"
    accept_language: str = "en-US,en;q=0.9"

class District(BaseModel):
    name: str = "Galle"
    country: str = "Sri Lanka"
    # 경계 상자 (지도 이동 제한 + 지오펜스 공용)
    north: float = 6.4200
    south: float = 5.9700
    east: float = 80.5000
    west: float = 79.9800
    center_lat: float = 6.0535
    center_lon: float = 80.2210
    default_zoom: int = 14
    search_zoom: int = 15
    min_zoom: int = 10
    max_zoom: int = 18

class Validation(BaseModel):
    radius_min_m: float = 10.0
    radius_max_m: float = 1000.0
    default_radius_m: float = 100.0

class Observability(BaseModel):
    http_port: int = 8099
    metrics_enabled: bool = True
    service_name: str = "Galle-Flood-Watch"
    build_version: str = "0.1.0"
    build_date: str = "2025-01-01"
    log_level: str = "INFO"
    json_logs: bool = False

class Settings(BaseModel):
    # 하위 섹션 (기본값/팩토리로 누락 방지)
    storage: Storage = Field(default_factory=Storage)
    geocoder: Geocoder = Field(default_factory=Geocoder)
    district: District = Field(default_factory=District)
    validation: Validation = Field(default_factory=Validation)
    observability: Observability = Field(default_factory=Observability)
