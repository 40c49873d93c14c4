"""Main cache service with business logic."""

import logging
import time
from typing import Callable
from urllib.parse import urlsplit

from ghcdn.config.settings import Settings
from ghcdn.repository.base_repository import CacheRepository
from ghcdn.repository.github_repository import GitHubRepository
from ghcdn.schema.resource import Freshness, RenderedResponse, ResourceKind
from ghcdn.service import freshness
from ghcdn.service.background import BackgroundRefresher
from ghcdn.service.exceptions import NotWhitelistedError
from ghcdn.service.minifier import Minifier
from ghcdn.service.path_resolver import resolve
from ghcdn.service.resources import Resource, build_resource
from ghcdn.service.response_builder import ResponseBuilder
from ghcdn.service.sync_executor import SyncExecutor

logger = logging.getLogger(__name__)


class CacheService:
    """Resolves a request, brings its cache entry up to date and renders it."""

    def __init__(
        self,
        settings: Settings,
        cache_repo: CacheRepository,
        github_repo: GitHubRepository,
        minifier: Minifier,
        refresher: BackgroundRefresher,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize cache service."""
        self.settings = settings
        self.cache_repo = cache_repo
        self.refresher = refresher
        self.clock = clock
        self.executor = SyncExecutor(cache_repo, github_repo, minifier)
        self.builder = ResponseBuilder(cache_repo)

    def _whitelist_entries(self) -> list[tuple[str, str | None]]:
        """Whitelist entries as (owner, repo) pairs, repo None for whole owners."""
        entries = []
        for whitelisted in self.settings.repositories:
            value = whitelisted.strip().lower()
            if "://" in value:
                value = urlsplit(value).path
            parts = [part for part in value.split("/") if part]
            # "github.com/owner/repo": owner names never contain a dot
            if parts and "." in parts[0]:
                parts = parts[1:]
            if not parts:
                continue
            repo = parts[1].removesuffix(".git") if len(parts) > 1 else None
            entries.append((parts[0], repo))
        return entries

    def _is_whitelisted(self, owner: str, repo: str) -> bool:
        """
        Check if repository is whitelisted.

        An empty ``repo`` (user listing) is allowed when any entry names the owner.
        """
        if not self.settings.repositories:
            return True

        owner, repo = owner.lower(), repo.lower()
        for entry_owner, entry_repo in self._whitelist_entries():
            if entry_owner != owner:
                continue
            if entry_repo is None or not repo or entry_repo == repo:
                return True
        return False

    def _check_whitelist(self, resource: Resource) -> None:
        if resource.kind is ResourceKind.ROOT:
            return
        repo = getattr(resource, "repo", "")
        if not self._is_whitelisted(resource.owner, repo):
            name = f"{resource.owner}/{repo}" if repo else resource.owner
            raise NotWhitelistedError(f"Repository {name} is not whitelisted")

    async def ensure_fresh(self, resource: Resource) -> Freshness:
        """
        Bring the cache entry of ``resource`` to a servable state.

        Missing and expired entries are synced before returning. Entries in the
        second half of their window are left as they are, the caller refreshes
        them in the background once the response is rendered.
        """
        key = resource.cache_key
        stat = await self.cache_repo.stat(key)
        verdict = freshness.decide(key, stat, resource.freshness_window, self.clock())

        if verdict is Freshness.PRESENT_FRESH:
            logger.info(f"Cache HIT: {key}")
        elif verdict is Freshness.PRESENT_STALE_BG:
            logger.info(f"Cache STALE: serving {key}, refreshing in background")
        elif verdict is Freshness.PRESENT_STALE_SYNC:
            logger.info(f"Cache EXPIRED: refreshing {key} before serving")
            await self.executor.sync(resource)
        else:
            logger.info(f"Cache MISS: fetching {key}")
            await self.executor.sync(resource)
        return verdict

    async def serve(self, request_url: str, wants_html: bool = False) -> RenderedResponse:
        """
        Serve a request path such as ``/owner/repo@1.2.3/dist/lib.js``.

        Raises ParseError, NotWhitelistedError, DirectoryCollisionError and the
        upstream errors of a synchronous refresh.
        """
        parsed = resolve(request_url)
        resource = build_resource(parsed, self.settings)
        self._check_whitelist(resource)

        verdict = await self.ensure_fresh(resource)
        rendered = await resource.render(self.builder, wants_html)
        if verdict is Freshness.PRESENT_STALE_BG:
            # Started after the read so the refresh cannot change this response
            self.refresher.submit(resource.cache_key, self.executor.sync(resource))
        return rendered
