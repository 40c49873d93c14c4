"""Upstream fetch-and-persist cycle."""

import logging

from ghcdn.repository.base_repository import CacheRepository
from ghcdn.repository.github_repository import GitHubRepository
from ghcdn.schema.resource import SyncOutcome
from ghcdn.service.exceptions import UpstreamError, UpstreamNotFoundError
from ghcdn.service.minifier import Minifier
from ghcdn.service.resources import CacheResource

logger = logging.getLogger(__name__)


class SyncExecutor:
    """Fetches a resource from upstream and stores the body at its cache key."""

    def __init__(
        self,
        cache_repo: CacheRepository,
        github_repo: GitHubRepository,
        minifier: Minifier,
    ) -> None:
        self.cache_repo = cache_repo
        self.github_repo = github_repo
        self.minifier = minifier

    async def sync(self, resource: CacheResource) -> SyncOutcome:
        """
        Refresh ``resource`` from upstream.

        Returns FETCHED when upstream answered 200, NOT_FOUND_HANDLED when it
        answered 404 and the resource produced replacement content.

        Raises UpstreamNotFoundError for an unhandled 404 and UpstreamError for
        any other status. Nothing is retried.
        """
        response = await resource.fetch_upstream(self.github_repo)

        if response.status == 200:
            await self.cache_repo.write(resource.cache_key, response.body)
            logger.info(
                f"Cached {resource.cache_key} ({len(response.body)} bytes) from {response.url}"
            )
            return SyncOutcome.FETCHED

        if response.status == 404:
            if await resource.on_upstream_not_found(self):
                logger.info(f"Replaced missing {response.url} at {resource.cache_key}")
                return SyncOutcome.NOT_FOUND_HANDLED
            raise UpstreamNotFoundError(response.url, response.status)

        raise UpstreamError(response.url, response.status)
