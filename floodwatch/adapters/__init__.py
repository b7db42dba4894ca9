"""
Adapters for Galle Flood Watch hexagonal architecture.

This module contains the concrete implementations of port interfaces
that handle external I/O and infrastructure concerns.
"""

from .storage import SQLiteKVStore, InMemoryKVStore
from .geocoding import NominatimClient

__all__ = ["SQLiteKVStore", "InMemoryKVStore", "NominatimClient"]
