"""On-disk repository mirroring the cache key layout."""

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from stat import S_ISDIR
from typing import Optional

from ghcdn.config.settings import Settings
from ghcdn.schema.resource import CacheStat
from ghcdn.repository.base_repository import CacheRepository
from ghcdn.service.exceptions import NotWhitelistedError

logger = logging.getLogger(__name__)


class FileRepository(CacheRepository):
    """
    Cache stored as plain files below ``settings.cache_path``.

    A cache key such as ``/owner/repo/v1.0.0/dist/lib.js`` maps to the same
    relative path under the cache root. Any OSError other than "not present"
    propagates to the caller.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.root = Path(settings.cache_path).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, cache_key: str) -> Path:
        path = (self.root / cache_key.lstrip("/")).resolve()
        if path != self.root and self.root not in path.parents:
            raise NotWhitelistedError(f"Cache key escapes cache root: {cache_key}")
        return path

    def _stat(self, cache_key: str) -> Optional[CacheStat]:
        try:
            result = self._path(cache_key).stat()
        except FileNotFoundError:
            return None
        return CacheStat(
            is_dir=S_ISDIR(result.st_mode),
            mtime=result.st_mtime,
        )

    def _write(self, cache_key: str, content: bytes) -> None:
        path = self._path(cache_key)
        path.parent.mkdir(parents=True, exist_ok=True)
        # Readers only ever see the old or the complete new file
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(content)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _list_owners(self) -> list[str]:
        return sorted(
            entry.name
            for entry in self.root.iterdir()
            if entry.is_dir() and not entry.name.startswith(".")
        )

    async def stat(self, cache_key: str) -> Optional[CacheStat]:
        return await asyncio.to_thread(self._stat, cache_key)

    async def read(self, cache_key: str) -> bytes:
        return await asyncio.to_thread(self._path(cache_key).read_bytes)

    async def write(self, cache_key: str, content: bytes) -> None:
        await asyncio.to_thread(self._write, cache_key, content)
        logger.debug(f"Wrote {len(content)} bytes to cache key {cache_key}")

    async def list_owners(self) -> list[str]:
        """Immediate subdirectories of the cache root."""
        return await asyncio.to_thread(self._list_owners)
