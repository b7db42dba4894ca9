"""
HTTP endpoints for Galle Flood Watch.

This module implements health, readiness, metrics, and info endpoints
together with the incident and location-search API used by the map
dashboard.
"""

from datetime import datetime
from typing import Optional

from fastapi import Body, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
import time

from floodwatch.core.display import incident_view
from floodwatch.core.errors import (
    GeocodeNetworkError,
    GeofenceNotFound,
    NotFoundError,
    PersistenceError,
    SearchInProgressError,
    ValidationError,
)
from floodwatch.core.store import IncidentStore
from floodwatch.features.search import LocationSearch
from floodwatch.observability import metrics
from floodwatch.observability.logging_setup import get_logger, with_context
from floodwatch.settings import Settings

log = get_logger("floodwatch.http")

SEARCH_FAILED_MESSAGE = "Search failed. Please try again."

def create_app(settings: Settings,
               store: Optional[IncidentStore] = None,
               search: Optional[LocationSearch] = None) -> FastAPI:
    """FastAPI 애플리케이션을 생성합니다."""
    app = FastAPI(
        title=settings.observability.service_name,
        version=settings.observability.build_version,
        description="Galle District Flood Incident Service"
    )

    start_time = time.time()

    @app.middleware("http")
    async def _request_context(request: Request, call_next):
        with with_context(method=request.method, path=request.url.path):
            return await call_next(request)

    # ---------- 오류 매핑 ----------
    @app.exception_handler(ValidationError)
    async def _validation_error(request: Request, exc: ValidationError):
        return JSONResponse(status_code=422, content={"error": "validation", "fields": exc.fields, "message": str(exc)})

    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"error": "not_found", "id": exc.incident_id})

    @app.exception_handler(PersistenceError)
    async def _persistence_error(request: Request, exc: PersistenceError):
        record = incident_view(exc.record) if exc.record is not None else None
        return JSONResponse(status_code=500, content={
            "error": "persistence",
            "message": "Change applied but could not be saved.",
            "incident": record,
        })

    @app.exception_handler(SearchInProgressError)
    async def _search_busy(request: Request, exc: SearchInProgressError):
        return JSONResponse(status_code=409, content={"error": "search_in_progress", "message": str(exc)})

    @app.exception_handler(GeofenceNotFound)
    async def _geofence_not_found(request: Request, exc: GeofenceNotFound):
        return JSONResponse(status_code=404, content={"error": "location_not_found", "message": str(exc)})

    @app.exception_handler(GeocodeNetworkError)
    async def _geocode_error(request: Request, exc: GeocodeNetworkError):
        return JSONResponse(status_code=502, content={"error": "search_failed", "message": SEARCH_FAILED_MESSAGE})

    def _store() -> IncidentStore:
        if store is None:
            raise HTTPException(status_code=503, detail="incident store not configured")
        return store

    def _check_radius(payload: dict) -> None:
        """폼 입력 단계의 반경 범위 검증 (저장소는 범위를 강제하지 않음)"""
        for key in ("radiusMeters", "radius_meters"):
            if key not in payload:
                continue
            try:
                radius = float(payload[key])
            except (TypeError, ValueError, OverflowError):
                raise ValidationError([key])
            v = settings.validation
            if not v.radius_min_m <= radius <= v.radius_max_m:
                raise ValidationError([key], f"{key} must be between {v.radius_min_m} and {v.radius_max_m}")

    # ---------- 관측성 ----------
    @app.get("/health")
    async def health():
        """헬스 체크 엔드포인트"""
        return JSONResponse({
            "status": "ok",
            "service": settings.observability.service_name,
            "timestamp": time.time()
        })

    @app.get("/ready")
    async def ready():
        """레디니스 체크 엔드포인트"""
        if store is None:
            raise HTTPException(status_code=503, detail="incident store not configured")
        return JSONResponse({
            "status": "ready",
            "service": settings.observability.service_name,
            "incidents": len(store.all()),
            "timestamp": time.time()
        })

    @app.get("/metrics")
    async def metrics_endpoint():
        """Prometheus 메트릭 엔드포인트"""
        if not settings.observability.metrics_enabled:
            raise HTTPException(status_code=503, detail="Metrics disabled")

        metrics.uptime_seconds.set(time.time() - start_time)
        return Response(
            generate_latest(),
            media_type=CONTENT_TYPE_LATEST
        )

    @app.get("/info")
    async def info():
        """서비스 정보 엔드포인트"""
        uptime = time.time() - start_time
        return JSONResponse({
            "service": settings.observability.service_name,
            "version": settings.observability.build_version,
            "build_date": settings.observability.build_date,
            "uptime_seconds": int(uptime),
            "metrics_enabled": settings.observability.metrics_enabled,
            "log_level": settings.observability.log_level,
            "district": settings.district.name
        })

    # ---------- 지도 설정 ----------
    @app.get("/api/district")
    async def district():
        """지도 중심, 줌, 이동 제한 경계"""
        d = settings.district
        return {
            "name": d.name,
            "country": d.country,
            "center": [d.center_lat, d.center_lon],
            "zoom": {"default": d.default_zoom, "search": d.search_zoom, "min": d.min_zoom, "max": d.max_zoom},
            "bounds": {"north": d.north, "south": d.south, "east": d.east, "west": d.west},
            "radius": {
                "min": settings.validation.radius_min_m,
                "max": settings.validation.radius_max_m,
                "default": settings.validation.default_radius_m,
            },
        }

    # ---------- 인시던트 ----------
    @app.get("/api/incidents")
    async def list_incidents(active: Optional[bool] = None):
        s = _store()
        records = s.all()
        if active is not None:
            records = [r for r in records if r.is_active == active]
        return {"incidents": [incident_view(r) for r in records]}

    @app.get("/api/incidents/{incident_id}")
    async def get_incident(incident_id: str):
        return incident_view(_store().get(incident_id))

    @app.post("/api/incidents", status_code=201)
    async def create_incident(payload: dict = Body(...)):
        """지도 클릭 위치에 새 인시던트를 추가합니다."""
        draft = dict(payload)
        draft.setdefault("radiusMeters", settings.validation.default_radius_m)
        draft.setdefault("dateTime", datetime.now().isoformat(timespec="minutes"))
        _check_radius(draft)
        record = await _store().add(draft)
        return incident_view(record)

    @app.patch("/api/incidents/{incident_id}")
    async def update_incident(incident_id: str, payload: dict = Body(...)):
        s = _store()
        s.get(incident_id)
        _check_radius(payload)
        record = await s.update(incident_id, payload)
        return incident_view(record)

    @app.put("/api/incidents/{incident_id}/active")
    async def set_incident_active(incident_id: str, payload: dict = Body(...)):
        """ACTIVE/INACTIVE 토글"""
        active = payload.get("active")
        if not isinstance(active, bool):
            raise ValidationError(["active"])
        record = await _store().set_active(incident_id, active)
        return incident_view(record)

    @app.delete("/api/incidents/{incident_id}", status_code=204)
    async def delete_incident(incident_id: str):
        await _store().remove(incident_id)
        return Response(status_code=204)

    # ---------- 위치 검색 ----------
    @app.get("/api/search")
    async def search_location(q: str = ""):
        if search is None:
            raise HTTPException(status_code=503, detail="search not configured")
        result = await search.search(q)
        return result.model_dump()

    @app.get("/")
    async def root():
        """루트 엔드포인트"""
        return JSONResponse({
            "service": settings.observability.service_name,
            "version": settings.observability.build_version,
            "endpoints": {
                "health": "/health",
                "ready": "/ready",
                "metrics": "/metrics",
                "info": "/info",
                "district": "/api/district",
                "incidents": "/api/incidents",
                "search": "/api/search"
            }
        })

    return app
