import logging
from pathlib import Path
from typing import Optional
from urllib.parse import parse_qs

from litestar import Controller, Request, get
from litestar.exceptions import NotFoundException
from litestar.response import Response

from ghcdn.service.cache_service import CacheService

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "access-control-allow-origin": "*",
    "access-control-expose-headers": "*",
}


def wants_html(query: str) -> bool:
    """True for ``?html`` (with or without a value)."""
    return "html" in parse_qs(query, keep_blank_values=True)


class CdnController(Controller):
    """Controller serving repository files and listings."""

    path = "/"

    @get("/favicon.ico", include_in_schema=False)
    async def favicon(self) -> None:
        raise NotFoundException()

    @get(["/", "/{path:path}"])
    async def serve(
        self,
        request: Request,
        cache_service: CacheService,
        path: Optional[Path] = None,
    ) -> Response:
        """
        Serve ``/{owner}/{repo}@{tag}/{file}``, a release listing
        (``/{owner}/{repo}``), a repository listing (``/{owner}``) or the
        organisation index (``/``).

        Listings are JSON unless ``?html`` is given.
        """
        rendered = await cache_service.serve(
            request.url.path,
            wants_html=wants_html(request.url.query),
        )
        return Response(
            content=rendered.body,
            media_type=rendered.media_type,
            status_code=rendered.status,
            headers={**rendered.headers, **CORS_HEADERS},
        )
