"""
Key-Value Store Interface
Abstract base class for durable settings/conversation storage
"""
from abc import ABC, abstractmethod
from typing import Any, Optional


class KeyValueStore(ABC):
    """Flat key -> JSON-serialisable record storage"""

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Return the stored record, or None if absent"""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store a record under key"""
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key if present"""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release resources"""
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Store name"""
        pass
