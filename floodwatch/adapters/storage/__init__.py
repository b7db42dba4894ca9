"""
Storage adapters for Galle Flood Watch.

This module contains the durable key-value slot implementations.
"""

from .sqlite_kv import SQLiteKVStore
from .memory_kv import InMemoryKVStore

__all__ = ["SQLiteKVStore", "InMemoryKVStore"]
