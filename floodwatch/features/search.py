"""
Location search feature for Galle Flood Watch.

This module joins the geocoder with the district geofence and
allows only one outstanding search at a time.
"""

from typing import Mapping, Optional, Tuple

from pydantic import BaseModel

from floodwatch.common.geo import parse_coordinate
from floodwatch.core.errors import GeofenceNotFound, SearchInProgressError, ValidationError
from floodwatch.core.geofence import DistrictBounds, select_district_candidate
from floodwatch.observability import metrics
from floodwatch.observability.logging_setup import get_logger
from floodwatch.ports.geocoder import GeocoderPort

log = get_logger("floodwatch.search")


def _coordinates(candidate) -> Optional[Tuple[float, float]]:
    if not isinstance(candidate, Mapping):
        return None
    lat = parse_coordinate(candidate.get("lat"))
    lon = parse_coordinate(candidate.get("lon"))
    if lat is None or lon is None:
        return None
    return lat, lon


class SearchResult(BaseModel):
    """지도 이동 대상 검색 결과"""
    lat: float
    lon: float
    display_name: Optional[str] = None
    zoom: int
    candidate: dict


class LocationSearch:
    """지구 한정 위치 검색"""

    def __init__(self, geocoder: GeocoderPort, district):
        """
        초기화합니다.

        Args:
            geocoder: 지오코딩 포트
            district: 지구 설정 (이름, 경계, 검색 줌)
        """
        self.geocoder = geocoder
        self.district_name = district.name
        self.bounds = DistrictBounds.from_settings(district)
        self.search_zoom = district.search_zoom
        self._searching = False

    @property
    def searching(self) -> bool:
        return self._searching

    async def search(self, query: str) -> SearchResult:
        """
        검색어로 지구 내 위치를 찾습니다.

        Raises:
            ValidationError: 빈 검색어
            SearchInProgressError: 이미 검색 중
            GeocodeNetworkError: 지오코딩 요청 실패
            GeofenceNotFound: 지구 내 후보 없음
        """
        if not query or not query.strip():
            metrics.searches_rejected.labels(reason="blank").inc()
            raise ValidationError(["query"])
        if self._searching:
            metrics.searches_rejected.labels(reason="in_progress").inc()
            log.warning(f"검색 거부됨 (진행 중) query:{query!r}")
            raise SearchInProgressError()

        self._searching = True
        try:
            candidates = await self.geocoder.search(query.strip())
            if not candidates:
                log.warning(f"검색 결과 없음 query:{query!r}")
                raise GeofenceNotFound(self.district_name, candidate_count=0)
        finally:
            self._searching = False

        # 좌표 없는 후보는 지도에 표시할 수 없으므로 다음 후보로 넘어감
        mappable = [c for c in candidates if _coordinates(c) is not None]
        try:
            chosen = select_district_candidate(mappable, self.bounds, self.district_name)
        except GeofenceNotFound:
            raise GeofenceNotFound(self.district_name, candidate_count=len(candidates)) from None
        lat, lon = _coordinates(chosen)

        log.info(f"검색 완료 query:{query!r} lat:{lat} lon:{lon}")
        return SearchResult(
            lat=lat,
            lon=lon,
            display_name=chosen.get("display_name"),
            zoom=self.search_zoom,
            candidate=dict(chosen),
        )
