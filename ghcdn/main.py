"""Main Litestar application."""

import uvicorn
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from litestar import Litestar, Request, Response
from litestar.di import Provide
from litestar.datastructures import State
from litestar.exceptions import NotFoundException
from litestar.openapi import OpenAPIConfig
from litestar.status_codes import (
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_501_NOT_IMPLEMENTED,
    HTTP_502_BAD_GATEWAY,
)

from ghcdn.config.settings import Settings, get_settings
from ghcdn.controller.cdn_controller import CdnController
from ghcdn.repository.file_repository import FileRepository
from ghcdn.repository.github_repository import GitHubRepository
from ghcdn.service.background import BackgroundRefresher
from ghcdn.service.cache_service import CacheService
from ghcdn.service.exceptions import (
    DirectoryCollisionError,
    NotWhitelistedError,
    ParseError,
    UpstreamError,
)
from ghcdn.service.minifier import CommandMinifier, Minifier

logger = logging.getLogger("ghcdn.main")


async def get_cache_service(state: State) -> CacheService:
    """Dependency: Get cache service instance wired to the app-scoped resources."""
    return CacheService(
        state.settings,
        state.cache_repo,
        state.github_repo,
        state.minifier,
        state.refresher,
    )


def not_found_handler(request: Request, exc: NotFoundException) -> Response:
    """Handle 404 errors raised by Litestar itself."""
    return Response(
        content={"status_code": exc.status_code, "detail": exc.detail},
        status_code=exc.status_code,
    )


def parse_error_handler(request: Request, exc: ParseError) -> Response:
    """Handle paths that do not address a resource."""
    return Response(
        content={
            "status_code": HTTP_404_NOT_FOUND,
            "detail": str(exc),
            "message": "Use /{owner}/{repo}@{tag}/{file} to fetch files.",
            "example": f"{request.url.scheme}://{request.url.netloc}/owner/repo@1.0.0/path/to/file.js",
        },
        status_code=HTTP_404_NOT_FOUND,
    )


def upstream_error_handler(request: Request, exc: UpstreamError) -> Response:
    """Pass the upstream status through, 404s included."""
    logger.warning(f"Upstream failure for {request.url.path}: {exc}")
    status_code = exc.status if exc.status >= 400 else HTTP_502_BAD_GATEWAY
    return Response(content=str(exc), status_code=status_code, media_type="text/plain")


def directory_error_handler(request: Request, exc: DirectoryCollisionError) -> Response:
    return Response(
        content=str(exc), status_code=HTTP_501_NOT_IMPLEMENTED, media_type="text/plain"
    )


def not_whitelisted_handler(request: Request, exc: NotWhitelistedError) -> Response:
    """Handle allow-list violations."""
    logger.error(f"Permission denied for {request.url.path}: {exc}")
    return Response(
        content={
            "status_code": HTTP_403_FORBIDDEN,
            "detail": str(exc),
        },
        status_code=HTTP_403_FORBIDDEN,
    )


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    minifier: Optional[Minifier] = None,
) -> Litestar:
    """
    Create and configure Litestar application.

    ``transport`` replaces the network for upstream calls and ``minifier`` the
    external minifier command; both exist for tests.
    """
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: Litestar):
        """Application lifespan context manager for initializing resources."""
        logger.info(f"Using file cache at {settings.cache_path}")
        app.state.settings = settings
        app.state.cache_repo = FileRepository(settings)
        app.state.github_repo = GitHubRepository(settings, transport=transport)
        app.state.minifier = minifier or CommandMinifier(settings)
        app.state.refresher = BackgroundRefresher()

        try:
            yield
        finally:
            # Cleanup
            await app.state.refresher.drain()
            await app.state.github_repo.close()

    return Litestar(
        debug=settings.dev,
        route_handlers=[CdnController],
        dependencies={"cache_service": Provide(get_cache_service)},
        exception_handlers={
            NotFoundException: not_found_handler,
            ParseError: parse_error_handler,
            UpstreamError: upstream_error_handler,
            DirectoryCollisionError: directory_error_handler,
            NotWhitelistedError: not_whitelisted_handler,
        },
        openapi_config=OpenAPIConfig(
            title="ghcdn - GitHub CDN",
            version="0.1.0",
            path="/__docs",
        ),
        lifespan=[lifespan],
    )


def run() -> None:
    """Run the application with uvicorn."""
    settings = get_settings()

    uvicorn.run(
        "ghcdn.main:create_app",
        factory=True,
        reload=settings.dev,
        host=settings.server_host,
        port=settings.server_port,
        workers=settings.workers,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
