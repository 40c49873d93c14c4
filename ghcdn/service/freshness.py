"""Freshness decision for cached resources."""

from typing import Optional

from ghcdn.schema.resource import CacheStat, Freshness
from ghcdn.service.exceptions import DirectoryCollisionError


def decide(
    cache_key: str,
    stat: Optional[CacheStat],
    window: float,
    now: float,
) -> Freshness:
    """
    Decide how a cache entry may be served.

    Within the first half of ``window`` the entry is served as-is, within the
    second half it is served and refreshed in the background, after that it is
    refreshed before serving. An infinite window never expires.

    Raises DirectoryCollisionError when the key is a directory.
    """
    if stat is None:
        return Freshness.ABSENT
    if stat.is_dir:
        raise DirectoryCollisionError(cache_key)

    age = now - stat.mtime
    if age <= window / 2:
        return Freshness.PRESENT_FRESH
    if age <= window:
        return Freshness.PRESENT_STALE_BG
    return Freshness.PRESENT_STALE_SYNC
