"""
Geographic utilities for Galle Flood Watch.

This module provides coordinate parsing
and bounding-box containment checks.
"""

import math
from typing import Any, Optional, Tuple


def parse_coordinate(value: Any) -> Optional[float]:
    """
    좌표 성분을 float 로 변환합니다.

    Args:
        value: 숫자 또는 숫자 문자열 (지오코더는 문자열로 반환)

    Returns:
        유한한 float, 변환할 수 없으면 None
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(number):
        return None
    return number


def point_in_bbox(lat: float, lon: float, bbox: Tuple[float, float, float, float]) -> bool:
    """
    점이 경계 상자 안에 있는지 확인합니다 (양 끝 포함).

    Args:
        lat: 위도
        lon: 경도
        bbox: (west, south, east, north)

    Returns:
        경계 상자 내부 또는 경계 위면 True
    """
    west, south, east, north = bbox
    return (south <= lat <= north) and (west <= lon <= east)
