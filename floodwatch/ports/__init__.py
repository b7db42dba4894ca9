"""
Port interfaces for Galle Flood Watch.

This module defines the port interfaces (Protocols) that define
the contracts between the core domain and external adapters.
"""

from .kvstore import KVStorePort
from .geocoder import GeocoderPort

__all__ = ["KVStorePort", "GeocoderPort"]
