"""
Geocoding adapters for Galle Flood Watch.
"""

from .nominatim import NominatimClient

__all__ = ["NominatimClient"]
