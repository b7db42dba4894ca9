"""
In-memory key-value store.

Used by tests and by runs without a data directory.
"""

from typing import Dict, Optional

class InMemoryKVStore:
    """메모리 기반 키-값 저장소"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})
        self.writes = 0

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value
        self.writes += 1

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)
