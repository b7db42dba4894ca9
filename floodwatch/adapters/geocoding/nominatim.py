"""
Nominatim geocoding client for Galle Flood Watch.

This module provides an aiohttp client for the OpenStreetMap
Nominatim address-search endpoint, scoped to one district.
"""

import aiohttp
import asyncio
import time
from typing import Dict, List, Optional
from floodwatch.core.errors import GeocodeNetworkError
from floodwatch.observability import metrics
from floodwatch.observability.logging_setup import get_logger

log = get_logger("floodwatch.geocoder")

NOMINATIM_URL = "https://nominatim.openstreetmap.org/search"

class NominatimClient:
    """Nominatim 주소 검색 클라이언트"""
    
    def __init__(self,
                 base_url: str = NOMINATIM_URL,
                 *,
                 district_name: str = "Galle",
                 country: str = "Sri Lanka",
                 country_code: str = "lk",
                 limit: int = 3,
                 timeout: float = 10.0,
                 user_agent: str = "DisasterTrackingApp/1.0",
                 accept_language: str = "en-US,en;q=0.9",
                 session: Optional[aiohttp.ClientSession] = None):
        """
        초기화합니다.
        
        Args:
            base_url: 검색 엔드포인트 URL
            district_name: 검색어에 덧붙일 지구 이름
            country: 검색어에 덧붙일 국가 이름
            country_code: countrycodes 필터
            limit: 최대 후보 수
            timeout: 요청 타임아웃 (초)
            user_agent: User-Agent 헤더
            accept_language: Accept-Language 헤더
            session: 외부에서 주입한 세션 (없으면 async with 또는 요청마다 생성)
        """
        self.base_url = base_url
        self.district_name = district_name
        self.country = country
        self.country_code = country_code
        self.limit = limit
        self.timeout = timeout
        self.headers = {
            "User-Agent": user_agent,
            "Accept-Language": accept_language,
        }
        self.session = session
        self._owns_session = False
        
        log.info(f"Nominatim 클라이언트 초기화됨 url:{base_url} timeout:{timeout}s")
    
    async def __aenter__(self):
        """비동기 컨텍스트 매니저 진입"""
        if self.session is None:
            self.session = aiohttp.ClientSession(headers=self.headers)
            self._owns_session = True
        return self
    
    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """비동기 컨텍스트 매니저 종료"""
        if self._owns_session and self.session:
            await self.session.close()
            self.session = None
            self._owns_session = False
    
    def build_query(self, text: str) -> str:
        return f"{text.strip()}, {self.district_name} District, {self.country}"
    
    def build_params(self, text: str) -> Dict[str, object]:
        """검색 요청 쿼리 파라미터를 생성합니다."""
        return {
            "q": self.build_query(text),
            "format": "json",
            "limit": self.limit,
            "countrycodes": self.country_code,
            "addressdetails": 1,
        }
    
    async def search(self, text: str) -> List[dict]:
        """
        후보 위치를 검색합니다. 재시도는 하지 않습니다.
        
        Args:
            text: 사용자 입력 검색어
            
        Returns:
            후보 목록
            
        Raises:
            GeocodeNetworkError: 전송 오류, 타임아웃, non-2xx 응답, 잘못된 본문
        """
        if self.session is None:
            async with aiohttp.ClientSession(headers=self.headers) as session:
                return await self._request(session, text)
        return await self._request(self.session, text)
    
    async def _request(self, session, text: str) -> List[dict]:
        started = time.perf_counter()
        try:
            async with session.get(
                self.base_url,
                params=self.build_params(text),
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if not 200 <= response.status < 300:
                    metrics.geocode_requests.labels(outcome="http_error").inc()
                    log.error(f"지오코딩 요청 실패 status:{response.status} query:{text!r}")
                    raise GeocodeNetworkError(f"search request failed: HTTP {response.status}",
                                              status=response.status)
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            metrics.geocode_requests.labels(outcome="network_error").inc()
            log.error(f"지오코딩 요청 오류 query:{text!r} error:{e!r}")
            raise GeocodeNetworkError(f"search request failed: {e!r}") from e
        except ValueError as e:
            metrics.geocode_requests.labels(outcome="bad_response").inc()
            log.error(f"지오코딩 응답 파싱 실패 query:{text!r} error:{e}")
            raise GeocodeNetworkError("search response was not valid JSON") from e
        finally:
            metrics.geocode_seconds.observe(time.perf_counter() - started)
        
        if not isinstance(data, list):
            metrics.geocode_requests.labels(outcome="bad_response").inc()
            log.error(f"지오코딩 응답 형식 오류 type:{type(data).__name__}")
            raise GeocodeNetworkError("search response was not a list")
        
        metrics.geocode_requests.labels(outcome="ok").inc()
        log.info(f"지오코딩 완료 query:{text!r} candidates:{len(data)}")
        return data
