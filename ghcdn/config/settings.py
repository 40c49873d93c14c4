"""Application settings using Pydantic Settings."""

from typing import Annotated

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    github_raw_url: str = "https://raw.githubusercontent.com"
    github_api_url: str = "https://api.github.com"

    # Credentials for the hosting API (raw host is fetched anonymously)
    github_user: str = ""
    github_token: SecretStr | None = None

    # Organization listed at "/"
    root_org: str = "u1ui"

    # Cache configuration
    cache_path: str = "cache"
    main_ttl_seconds: int = 240  # "main" files, background refresh after half
    listing_ttl_seconds: int = 1800  # release and repository listings
    max_file_size_bytes: int | None = None

    # Extension of the non-minified file -> external minifier command line
    minify_commands: dict[str, str] = {
        ".js": "terser --compress --mangle",
        ".css": "csso",
    }

    # Whitelist configuration
    repositories: Annotated[list[str], NoDecode] = []  # List of repository URLs or owner/repo strings

    @field_validator("repositories", mode="before")
    @classmethod
    def parse_repositories(cls, v):
        if isinstance(v, str):
            if not v.strip():
                return []
            return [item.strip() for item in v.split(",")]
        return v

    # Server configuration
    server_host: str = "0.0.0.0"
    server_port: int = 8081
    dev: bool = False
    workers: int = 1
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
