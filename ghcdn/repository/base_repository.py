"""Base interface for cache repositories."""

from typing import Protocol, Optional, runtime_checkable
from ghcdn.schema.resource import CacheStat


@runtime_checkable
class CacheRepository(Protocol):
    """Protocol for cache repository implementations, addressed by cache key."""

    async def stat(self, cache_key: str) -> Optional[CacheStat]: ...

    async def read(self, cache_key: str) -> bytes: ...

    async def write(self, cache_key: str, content: bytes) -> None: ...

    async def list_owners(self) -> list[str]: ...
