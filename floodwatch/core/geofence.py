"""
District geofence for Galle Flood Watch.

This module decides whether a geocoder candidate lies within the
target district. Two independent signals are combined with OR:
a coordinate bounding box and an address-text match.
"""

from typing import Any, Iterable, Mapping, Optional, Tuple

from pydantic import BaseModel

from floodwatch.common.geo import parse_coordinate, point_in_bbox
from floodwatch.core.errors import GeofenceNotFound
from floodwatch.observability.logging_setup import get_logger

log = get_logger("floodwatch.geofence")

# 부분 문자열 비교 필드 / 정확히 일치 비교 필드
SUBSTRING_FIELDS = ("county", "state_district", "district")
EXACT_FIELDS = ("city", "town")


class DistrictBounds(BaseModel):
    """지구 경계 상자"""
    north: float
    south: float
    east: float
    west: float

    @classmethod
    def from_settings(cls, district) -> "DistrictBounds":
        return cls(north=district.north, south=district.south,
                   east=district.east, west=district.west)

    def as_bbox(self) -> Tuple[float, float, float, float]:
        """(west, south, east, north)"""
        return (self.west, self.south, self.east, self.north)

    def contains(self, lat: float, lon: float) -> bool:
        return point_in_bbox(lat, lon, self.as_bbox())


GALLE_BOUNDS = DistrictBounds(north=6.4200, south=5.9700, east=80.5000, west=79.9800)
GALLE_NAME = "Galle"


def in_bounds(candidate: Mapping[str, Any], bounds: DistrictBounds) -> bool:
    """
    후보 좌표가 경계 상자 안에 있는지 확인합니다.

    숫자가 아닌 좌표는 오류가 아니라 False 로 취급합니다.
    """
    lat = parse_coordinate(candidate.get("lat"))
    lon = parse_coordinate(candidate.get("lon"))
    if lat is None or lon is None:
        return False
    return bounds.contains(lat, lon)


def in_named_district(address: Optional[Mapping[str, Any]], district_name: str) -> bool:
    """
    주소 텍스트가 지구 이름과 일치하는지 확인합니다.

    Args:
        address: 지오코더의 address 객체 (없으면 불일치)
        district_name: 대상 지구 이름

    Returns:
        county/state_district/district 에 부분 포함되거나
        city/town 이 정확히 일치하면 True (대소문자 무시)
    """
    if not address or not isinstance(address, Mapping):
        return False
    target = district_name.lower()
    for field in SUBSTRING_FIELDS:
        value = address.get(field)
        if isinstance(value, str) and target in value.lower():
            return True
    for field in EXACT_FIELDS:
        value = address.get(field)
        if isinstance(value, str) and value.lower() == target:
            return True
    return False


def is_in_district(candidate: Mapping[str, Any],
                   bounds: DistrictBounds = GALLE_BOUNDS,
                   district_name: str = GALLE_NAME) -> bool:
    return in_bounds(candidate, bounds) or in_named_district(candidate.get("address"), district_name)


def select_district_candidate(candidates: Iterable[Mapping[str, Any]],
                              bounds: DistrictBounds = GALLE_BOUNDS,
                              district_name: str = GALLE_NAME) -> Mapping[str, Any]:
    """
    입력 순서대로 첫 번째 지구 내 후보를 반환합니다.

    Raises:
        GeofenceNotFound: 지구 내 후보가 없음
    """
    count = 0
    for candidate in candidates:
        count += 1
        if not isinstance(candidate, Mapping):
            continue
        if is_in_district(candidate, bounds, district_name):
            return candidate
    log.warning(f"지구 내 후보 없음 district:{district_name} candidates:{count}")
    raise GeofenceNotFound(district_name, candidate_count=count)
