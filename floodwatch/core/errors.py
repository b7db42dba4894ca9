"""
Error taxonomy for Galle Flood Watch.

Every error here is recovered at the boundary of the user action that
triggered it; none of them is fatal to the process.
"""

from typing import Iterable, List, Optional


class FloodWatchError(Exception):
    """모든 도메인 오류의 기본 클래스"""


class ValidationError(FloodWatchError):
    """필수 필드 누락 또는 잘못된 값"""

    def __init__(self, fields: Iterable[str], message: Optional[str] = None):
        self.fields: List[str] = list(fields)
        super().__init__(message or f"invalid or missing field(s): {', '.join(self.fields)}")


class NotFoundError(FloodWatchError):
    """존재하지 않는 인시던트 ID"""

    def __init__(self, incident_id: str):
        self.incident_id = incident_id
        super().__init__(f"incident not found: {incident_id}")


class PersistenceError(FloodWatchError):
    """
    저장소 기록 실패.

    메모리 상의 변경은 이미 커밋된 상태이며, record 는 커밋된 레코드
    (삭제의 경우 None) 입니다.
    """

    def __init__(self, message: str, record=None):
        self.record = record
        super().__init__(message)


class GeocodeNetworkError(FloodWatchError):
    """지오코딩 요청 실패 (전송 오류, 타임아웃, non-2xx)"""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class GeofenceNotFound(FloodWatchError):
    """검색은 성공했지만 지구 내 후보가 없음"""

    def __init__(self, district_name: str, candidate_count: int = 0):
        self.district_name = district_name
        self.candidate_count = candidate_count
        if candidate_count == 0:
            message = "Location not found. Please try another search."
        else:
            message = f"Location not found in {district_name} district. Please try another search."
        super().__init__(message)


class SearchInProgressError(FloodWatchError):
    """이미 진행 중인 검색이 있음"""

    def __init__(self):
        super().__init__("a search is already in progress")
