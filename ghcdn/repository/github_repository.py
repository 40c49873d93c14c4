"""GitHub raw content and REST API repository."""

import logging
from typing import Optional

import httpx

from ghcdn.config.settings import Settings
from ghcdn.schema.resource import UpstreamResponse
from ghcdn.service.exceptions import UpstreamError

logger = logging.getLogger(__name__)


class GitHubRepository:
    """Repository for fetching raw files and listings from GitHub."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize GitHub repository."""
        self.settings = settings
        self.raw_client = httpx.AsyncClient(
            base_url=self.settings.github_raw_url,
            timeout=30.0,
            follow_redirects=True,
            transport=transport,
        )

        auth = None
        if self.settings.github_token:
            auth = httpx.BasicAuth(
                self.settings.github_user,
                self.settings.github_token.get_secret_value(),
            )
        self.api_client = httpx.AsyncClient(
            base_url=self.settings.github_api_url,
            auth=auth,
            headers={"Accept": "application/vnd.github+json"},
            timeout=30.0,
            follow_redirects=True,
            transport=transport,
        )

    async def close(self) -> None:
        """Close HTTP clients."""
        await self.raw_client.aclose()
        await self.api_client.aclose()

    def build_raw_path(self, owner: str, repo: str, tag: str, file: str) -> str:
        """Build raw.githubusercontent.com path for a file."""
        return f"/{owner}/{repo}/{tag}/{file.lstrip('/')}"

    def _url(self, client: httpx.AsyncClient, path: str) -> str:
        return str(client.base_url).rstrip("/") + path

    async def _get(self, client: httpx.AsyncClient, path: str) -> UpstreamResponse:
        url = self._url(client, path)
        try:
            response = await client.get(path)
        except httpx.RequestError as e:
            logger.error(f"Upstream request to {url} failed: {e}")
            raise UpstreamError(url, 502) from e

        logger.info(f"Upstream GET {url} -> {response.status_code}")
        if response.status_code != 200:
            return UpstreamResponse(status=response.status_code, url=url)
        return UpstreamResponse(status=200, url=url, body=response.content)

    async def fetch_raw(
        self, owner: str, repo: str, tag: str, file: str
    ) -> UpstreamResponse:
        """
        Fetch a file from the raw content host.

        Files larger than ``max_file_size_bytes`` (by content-length) are refused
        with a 413 before their body is read.
        """
        path = self.build_raw_path(owner, repo, tag, file)
        limit = self.settings.max_file_size_bytes
        if limit is None:
            return await self._get(self.raw_client, path)

        url = self._url(self.raw_client, path)
        try:
            async with self.raw_client.stream("GET", path) as response:
                if response.status_code != 200:
                    return UpstreamResponse(status=response.status_code, url=url)
                length = response.headers.get("content-length")
                if length is not None and int(length) > limit:
                    logger.warning(f"Refusing {url}: {length} bytes exceeds {limit}")
                    raise UpstreamError(url, 413)
                body = await response.aread()
        except httpx.RequestError as e:
            logger.error(f"Upstream request to {url} failed: {e}")
            raise UpstreamError(url, 502) from e

        if len(body) > limit:
            raise UpstreamError(url, 413)
        return UpstreamResponse(status=200, url=url, body=body)

    async def fetch_api(self, path: str) -> UpstreamResponse:
        """GET a hosting API path, e.g. ``/orgs/acme/repos?per_page=200``."""
        return await self._get(self.api_client, path)
