"""Errors raised while resolving and syncing resources."""


class ParseError(ValueError):
    """Request path does not address any resource."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Cannot resolve path: {path}")
        self.path = path


class UpstreamError(Exception):
    """Upstream answered with a status other than 200 or 404."""

    def __init__(self, url: str, status: int) -> None:
        super().__init__(f"fail status: {status} ({url})")
        self.url = url
        self.status = status


class UpstreamNotFoundError(UpstreamError):
    """Upstream reported 404 and no fallback could replace the content."""


class DirectoryCollisionError(NotImplementedError):
    """Cache key resolves to a directory, serving directories is not implemented."""

    def __init__(self, cache_key: str) -> None:
        super().__init__(f"Directory listing not implemented: {cache_key}")
        self.cache_key = cache_key


class MinifyError(RuntimeError):
    """External minifier could not produce output."""


class NotWhitelistedError(Exception):
    """Requested owner or repository is outside the configured allow-list."""
