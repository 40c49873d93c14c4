"""Request, cache and upstream data schemas."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ResourceKind(str, Enum):
    """Kind of resource a request path addresses."""

    ROOT = "root"
    USER = "user"
    REPO = "repo"
    FILE = "file"


class Freshness(str, Enum):
    """What to do with a cache entry before serving it."""

    PRESENT_FRESH = "present_fresh"
    PRESENT_STALE_BG = "present_stale_bg"
    PRESENT_STALE_SYNC = "present_stale_sync"
    ABSENT = "absent"


class SyncOutcome(str, Enum):
    """Result of a successful upstream sync."""

    FETCHED = "fetched"
    NOT_FOUND_HANDLED = "not_found_handled"


class ParsedPath(BaseModel):
    """Fields extracted from a request path."""

    model_config = ConfigDict(frozen=True)

    kind: ResourceKind
    owner: str | None = None
    repo: str | None = None
    tag: str | None = Field(None, description="Normalized tag, FILE only")
    file: str | None = None


class CacheStat(BaseModel):
    """State of a cache key on disk."""

    is_dir: bool
    mtime: float = Field(..., description="Last modification, seconds since epoch")


class UpstreamResponse(BaseModel):
    """Response of an upstream call. Only the body is ever persisted."""

    status: int
    url: str
    body: bytes = b""


class RenderedResponse(BaseModel):
    """Status, headers and body produced for a resource."""

    status: int = 200
    media_type: str
    headers: dict[str, str] = {}
    body: bytes


class GitHubRelease(BaseModel):
    """Release entry from the releases listing endpoint."""

    tag_name: str
    name: str | None = None
    published_at: str | None = None


class GitHubRepositorySummary(BaseModel):
    """Repository entry from the org/user repositories endpoints."""

    name: str
    description: str | None = None
    stargazers_count: int = 0
