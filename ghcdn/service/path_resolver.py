"""Request path parsing and classification."""

import re
from urllib.parse import urlsplit

from ghcdn.schema.resource import ParsedPath, ResourceKind
from ghcdn.service.exceptions import ParseError

TAG_MARKER = "@"
DEFAULT_TAG = "main"

# /{owner}/{repo}@{tag}/{file}, every part optional from the right
_PATH_PATTERN = re.compile(
    r"^/(?:(?P<owner>[^/@]+)"
    r"(?:/(?:(?P<repo>[^/@]+)(?P<tag>@[^/]*)?"
    r"(?:/(?P<file>.*))?)?)?)?/?$"
)
_SEMVER_PATTERN = re.compile(r"^v[0-9]+\.[0-9]+\.[0-9]+")


def normalize_tag(raw: str | None) -> str:
    """
    Normalize a raw tag segment.

    "@1.2.3" -> "v1.2.3", "" or None -> "main", "@next" -> "next".
    """
    tag = (raw or "").lstrip(TAG_MARKER)
    if not tag:
        return DEFAULT_TAG
    if tag[0] in "0123456789":
        tag = "v" + tag
    return tag


def is_immutable_tag(tag: str) -> bool:
    """Semantic version tags never change upstream."""
    return bool(_SEMVER_PATTERN.match(tag))


def resolve(request_url: str) -> ParsedPath:
    """
    Parse a request path (optionally with query string) into a ParsedPath.

    Raises ParseError when the path does not match the URL scheme.
    """
    if "://" in request_url:
        request_url = urlsplit(request_url).path
    path = request_url.split("?", 1)[0] or "/"
    match = _PATH_PATTERN.match(path)
    if not match:
        raise ParseError(path)

    owner, repo, tag, file = match.group("owner", "repo", "tag", "file")
    if any(segment in (".", "..") for segment in path.split("/")):
        raise ParseError(path)

    if file:
        return ParsedPath(
            kind=ResourceKind.FILE,
            owner=owner,
            repo=repo,
            tag=normalize_tag(tag),
            file=file,
        )
    if repo:
        return ParsedPath(kind=ResourceKind.REPO, owner=owner, repo=repo)
    if owner:
        return ParsedPath(kind=ResourceKind.USER, owner=owner)
    return ParsedPath(kind=ResourceKind.ROOT)
