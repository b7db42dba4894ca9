"""
Core domain models and pure functions for Galle Flood Watch.

This module contains the incident model, the incident store and the
district geofence, independent of concrete storage and network adapters.
"""

from .models import IncidentRecord, Severity, EvacuationStatus, ShapeKind, is_active
from .geofence import DistrictBounds, is_in_district, select_district_candidate
from .store import IncidentStore

__all__ = [
    "IncidentRecord", "Severity", "EvacuationStatus", "ShapeKind", "is_active",
    "DistrictBounds", "is_in_district", "select_district_candidate", "IncidentStore",
]
