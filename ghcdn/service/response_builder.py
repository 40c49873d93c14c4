"""Rendering of cached content into responses."""

import html
import mimetypes

from pydantic import TypeAdapter

from ghcdn.repository.base_repository import CacheRepository
from ghcdn.schema.resource import (
    GitHubRelease,
    GitHubRepositorySummary,
    RenderedResponse,
)

HTML_MEDIA_TYPE = "text/html; charset=utf-8"
JSON_MEDIA_TYPE = "application/json"

_releases_adapter = TypeAdapter(list[GitHubRelease])
_repositories_adapter = TypeAdapter(list[GitHubRepositorySummary])

_HTML_HEAD = """<!DOCTYPE html>
<html lang=en>
<head>
<meta charset=utf-8>
<meta name=viewport content="width=device-width">
<title>{title}</title>
</head>
<body>
"""
_HTML_TAIL = "</body>\n</html>\n"


def detect_content_type(path: str) -> str:
    """Detect content type from the file extension."""
    content_type, _ = mimetypes.guess_type(path)
    if content_type:
        return content_type

    # Fallback to common types
    if path.endswith((".js", ".mjs")):
        return "application/javascript"
    if path.endswith(".css"):
        return "text/css"
    if path.endswith((".json",)):
        return "application/json"
    if path.endswith((".html", ".htm")):
        return "text/html"
    if path.endswith((".svg",)):
        return "image/svg+xml"
    if path.endswith((".txt",)):
        return "text/plain"
    if path.endswith((".md", ".markdown")):
        return "text/markdown"

    return "application/octet-stream"


def _page(title: str, heading: str, body: str) -> bytes:
    document = (
        _HTML_HEAD.format(title=html.escape(title))
        + f"<h1>{heading}</h1>\n"
        + body
        + _HTML_TAIL
    )
    return document.encode("utf-8")


def _table(headers: list[str], rows: list[list[str]]) -> str:
    head = "".join(f"<th>{h}</th>" for h in headers)
    lines = [f"<table>\n<thead><tr>{head}</tr></thead>\n<tbody>"]
    for row in rows:
        lines.append("<tr>" + "".join(f"<td>{cell}</td>" for cell in row) + "</tr>")
    lines.append("</tbody>\n</table>\n")
    return "\n".join(lines)


def _link(href: str, text: str) -> str:
    return f'<a href="{html.escape(href)}">{html.escape(text)}</a>'


class ResponseBuilder:
    """Builds responses from the content of the cache."""

    def __init__(self, cache_repo: CacheRepository) -> None:
        self.cache_repo = cache_repo

    async def render_file(self, cache_key: str, immutable: bool) -> RenderedResponse:
        """Serve cached bytes verbatim, ``cache-control: immutable`` for version tags."""
        body = await self.cache_repo.read(cache_key)
        headers = {"cache-control": "immutable"} if immutable else {}
        return RenderedResponse(
            media_type=detect_content_type(cache_key),
            headers=headers,
            body=body,
        )

    async def render_releases(
        self, cache_key: str, owner: str, repo: str, wants_html: bool
    ) -> RenderedResponse:
        body = await self.cache_repo.read(cache_key)
        if not wants_html:
            return RenderedResponse(media_type=JSON_MEDIA_TYPE, body=body)

        releases = _releases_adapter.validate_json(body)
        rows = [
            [
                html.escape(release.tag_name),
                html.escape(release.name or ""),
                html.escape(release.published_at or ""),
            ]
            for release in releases
        ]
        return RenderedResponse(
            media_type=HTML_MEDIA_TYPE,
            body=_page(
                f"{owner}/{repo} releases",
                f"Repository: {_link(f'/{owner}?html', owner)} / {html.escape(repo)}",
                _table(["Tag", "Name", "Published"], rows),
            ),
        )

    async def render_repositories(
        self, cache_key: str, owner: str, wants_html: bool
    ) -> RenderedResponse:
        body = await self.cache_repo.read(cache_key)
        if not wants_html:
            return RenderedResponse(media_type=JSON_MEDIA_TYPE, body=body)

        repositories = _repositories_adapter.validate_json(body)
        rows = [
            [
                _link(f"/{owner}/{repository.name}?html", repository.name),
                html.escape(repository.description or ""),
                str(repository.stargazers_count),
            ]
            for repository in repositories
        ]
        return RenderedResponse(
            media_type=HTML_MEDIA_TYPE,
            body=_page(
                f"{owner} github repos",
                f"Organisation: {html.escape(owner)}",
                _table(["Name", "Description", "Stars"], rows),
            ),
        )

    async def render_root(self) -> RenderedResponse:
        """List organisations discovered in the cache directory, always HTML."""
        owners = await self.cache_repo.list_owners()
        items = "".join(f"<li>{_link(f'/{owner}?html', owner)}</li>\n" for owner in owners)
        return RenderedResponse(
            media_type=HTML_MEDIA_TYPE,
            body=_page("CDN", "Organisations", f"<ul>\n{items}</ul>\n"),
        )
