"""Shared fakes for the test suite."""

import json

import httpx

from ghcdn.config.settings import Settings
from ghcdn.service.exceptions import MinifyError

RAW_URL = "https://raw.test"
API_URL = "https://api.test"


def make_settings(cache_path: str, **overrides) -> Settings:
    values = {
        "github_raw_url": RAW_URL,
        "github_api_url": API_URL,
        "github_user": "bot",
        "github_token": "secret",
        "root_org": "u1ui",
        "cache_path": cache_path,
        "main_ttl_seconds": 240,
        "listing_ttl_seconds": 1800,
        "repositories": [],
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeUpstream:
    """Routes requests to canned responses and records every request."""

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, bytes]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, url: str, status: int = 200, body: bytes | str | list = b"") -> None:
        if isinstance(body, list):
            body = json.dumps(body)
        if isinstance(body, str):
            body = body.encode("utf-8")
        self.routes[url] = (status, body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status, body = self.routes.get(str(request.url), (404, b"404: Not Found"))
        return httpx.Response(status, content=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, url: str) -> int:
        return sum(1 for request in self.requests if str(request.url) == url)


class FakeMinifier:
    """Strips whitespace lines, or fails when ``fail`` is set."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[bytes, str]] = []

    async def minify(self, source: bytes, extension: str) -> bytes:
        self.calls.append((source, extension))
        if self.fail:
            raise MinifyError("minifier failed")
        return b"".join(line.strip() for line in source.splitlines())
