"""
Geocoder port interface.

This module defines the protocol for the address-search collaborator.
"""

from typing import List, Protocol

class GeocoderPort(Protocol):
    """지오코딩 포트 인터페이스"""
    
    async def search(self, text: str) -> List[dict]:
        """
        자유 텍스트로 후보 위치를 검색합니다.
        
        Args:
            text: 사용자 입력 검색어
            
        Returns:
            후보 목록 (각 항목은 lat, lon 문자열과 선택적 address 객체 포함)
            
        Raises:
            GeocodeNetworkError: 요청 실패 또는 non-2xx 응답
        """
        ...
