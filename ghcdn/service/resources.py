"""Resource kinds served by the CDN and their caching policies."""

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, Union

from ghcdn.config.settings import Settings
from ghcdn.repository.github_repository import GitHubRepository
from ghcdn.schema.resource import (
    ParsedPath,
    RenderedResponse,
    ResourceKind,
    UpstreamResponse,
)
from ghcdn.service.exceptions import MinifyError, UpstreamError
from ghcdn.service.minifier import unminified_sibling
from ghcdn.service.path_resolver import DEFAULT_TAG, is_immutable_tag
from ghcdn.service.response_builder import ResponseBuilder

if TYPE_CHECKING:
    from ghcdn.service.sync_executor import SyncExecutor

logger = logging.getLogger(__name__)

INDEX_FILE = "__index.json"
LISTING_QUERY = "?per_page=200"


class CacheResource(Protocol):
    """Capabilities every resource kind provides to the sync and render steps."""

    kind: ResourceKind

    @property
    def cache_key(self) -> str: ...

    @property
    def freshness_window(self) -> float: ...

    async def fetch_upstream(self, github: GitHubRepository) -> UpstreamResponse: ...

    async def on_upstream_not_found(self, executor: "SyncExecutor") -> bool: ...

    async def render(
        self, builder: ResponseBuilder, wants_html: bool
    ) -> RenderedResponse: ...


@dataclass(frozen=True)
class FileResource:
    """
    A file of a repository at a tag.

    Files under "main" expire after ``main_ttl``; every other tag is treated as
    fixed and cached forever. When upstream has no ``foo.min.js`` the file is
    produced from ``foo.js``; ``allow_minify_fallback`` is False for that nested
    fetch so the fallback never chains.
    """

    owner: str
    repo: str
    tag: str
    file: str
    main_ttl: float
    allow_minify_fallback: bool = True
    kind: ResourceKind = field(default=ResourceKind.FILE, init=False)

    @property
    def immutable(self) -> bool:
        return is_immutable_tag(self.tag)

    @property
    def cache_key(self) -> str:
        return f"/{self.owner}/{self.repo}/{self.tag}/{self.file}"

    @property
    def freshness_window(self) -> float:
        return self.main_ttl if self.tag == DEFAULT_TAG else math.inf

    async def fetch_upstream(self, github: GitHubRepository) -> UpstreamResponse:
        return await github.fetch_raw(self.owner, self.repo, self.tag, self.file)

    def sibling(self, file: str) -> "FileResource":
        return FileResource(
            owner=self.owner,
            repo=self.repo,
            tag=self.tag,
            file=file,
            main_ttl=self.main_ttl,
            allow_minify_fallback=False,
        )

    async def on_upstream_not_found(self, executor: "SyncExecutor") -> bool:
        if not self.allow_minify_fallback:
            return False
        source_file = unminified_sibling(self.file)
        if source_file is None:
            return False

        source = self.sibling(source_file)
        logger.info(f"Minifying {source.cache_key} for missing {self.cache_key}")
        try:
            if await executor.cache_repo.stat(source.cache_key) is None:
                await executor.sync(source)
            content = await executor.cache_repo.read(source.cache_key)
            extension = "." + source_file.rsplit(".", 1)[-1]
            minified = await executor.minifier.minify(content, extension)
        except (UpstreamError, MinifyError, OSError) as e:
            logger.info(f"Minify fallback for {self.cache_key} failed: {e}")
            return False

        await executor.cache_repo.write(self.cache_key, minified)
        return True

    async def render(
        self, builder: ResponseBuilder, wants_html: bool
    ) -> RenderedResponse:
        return await builder.render_file(self.cache_key, self.immutable)


@dataclass(frozen=True)
class RepoResource:
    """Release listing of a repository."""

    owner: str
    repo: str
    listing_ttl: float
    kind: ResourceKind = field(default=ResourceKind.REPO, init=False)

    @property
    def cache_key(self) -> str:
        return f"/{self.owner}/{self.repo}/{INDEX_FILE}"

    @property
    def freshness_window(self) -> float:
        return self.listing_ttl

    async def fetch_upstream(self, github: GitHubRepository) -> UpstreamResponse:
        return await github.fetch_api(
            f"/repos/{self.owner}/{self.repo}/releases{LISTING_QUERY}"
        )

    async def on_upstream_not_found(self, executor: "SyncExecutor") -> bool:
        return False

    async def render(
        self, builder: ResponseBuilder, wants_html: bool
    ) -> RenderedResponse:
        return await builder.render_releases(
            self.cache_key, self.owner, self.repo, wants_html
        )


@dataclass(frozen=True)
class UserResource:
    """Repository listing of an organisation, or of a user account."""

    owner: str
    listing_ttl: float
    kind: ResourceKind = field(default=ResourceKind.USER, init=False)

    @property
    def cache_key(self) -> str:
        return f"/{self.owner}/{INDEX_FILE}"

    @property
    def freshness_window(self) -> float:
        return self.listing_ttl

    async def fetch_upstream(self, github: GitHubRepository) -> UpstreamResponse:
        response = await github.fetch_api(f"/orgs/{self.owner}/repos{LISTING_QUERY}")
        if response.status == 404:
            logger.info(f"{self.owner} is not an organisation, trying user repos")
            response = await github.fetch_api(
                f"/users/{self.owner}/repos{LISTING_QUERY}"
            )
        return response

    async def on_upstream_not_found(self, executor: "SyncExecutor") -> bool:
        return False

    async def render(
        self, builder: ResponseBuilder, wants_html: bool
    ) -> RenderedResponse:
        return await builder.render_repositories(self.cache_key, self.owner, wants_html)


@dataclass(frozen=True)
class RootResource:
    """Index of known organisations."""

    root_org: str
    kind: ResourceKind = field(default=ResourceKind.ROOT, init=False)

    @property
    def cache_key(self) -> str:
        return f"/{INDEX_FILE}"

    @property
    def freshness_window(self) -> float:
        return math.inf

    async def fetch_upstream(self, github: GitHubRepository) -> UpstreamResponse:
        return await github.fetch_api(f"/orgs/{self.root_org}/repos{LISTING_QUERY}")

    async def on_upstream_not_found(self, executor: "SyncExecutor") -> bool:
        return False

    async def render(
        self, builder: ResponseBuilder, wants_html: bool
    ) -> RenderedResponse:
        return await builder.render_root()


Resource = Union[FileResource, RepoResource, UserResource, RootResource]


def build_resource(parsed: ParsedPath, settings: Settings) -> Resource:
    """Construct the resource a classified path addresses."""
    if parsed.kind is ResourceKind.FILE:
        return FileResource(
            owner=parsed.owner,
            repo=parsed.repo,
            tag=parsed.tag,
            file=parsed.file,
            main_ttl=settings.main_ttl_seconds,
        )
    if parsed.kind is ResourceKind.REPO:
        return RepoResource(
            owner=parsed.owner,
            repo=parsed.repo,
            listing_ttl=settings.listing_ttl_seconds,
        )
    if parsed.kind is ResourceKind.USER:
        return UserResource(owner=parsed.owner, listing_ttl=settings.listing_ttl_seconds)
    return RootResource(root_org=settings.root_org)
