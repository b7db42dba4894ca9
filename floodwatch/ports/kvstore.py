"""
Durable slot port interface.

The incident store keeps its whole collection as one serialized
string under a single key; adapters only need whole-value access.
"""

from typing import Protocol, Optional

class KVStorePort(Protocol):
    """문자열 값을 키 단위로 보관하는 영속 슬롯"""

    async def get(self, key: str) -> Optional[str]:
        """슬롯 값을 읽습니다. 한 번도 쓰지 않은 키는 None."""
        ...

    async def set(self, key: str, value: str) -> None:
        """
        슬롯 값을 통째로 교체합니다.

        부분 쓰기는 허용되지 않으며, 실패 시 예외를 그대로 전파해야
        호출자가 PersistenceError 로 보고할 수 있습니다.
        """
        ...

    async def delete(self, key: str) -> None:
        ...
