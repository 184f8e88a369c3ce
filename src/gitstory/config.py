"""Runtime settings, read from the environment (and a .env file when present)."""

import os
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, TypeVar

from dotenv import load_dotenv

from gitstory.errors import InvalidInputError

T = TypeVar("T")


@dataclass(frozen=True)
class Settings:
    """Tunable limits for both ingestion paths."""

    github_token: Optional[str] = None
    api_url: str = "https://api.github.com"
    allowed_hosts: Tuple[str, ...] = ("github.com",)

    # Local clone path
    clone_depth: int = 50
    max_commits: int = 100
    clone_timeout: float = 30.0
    log_timeout: float = 15.0

    # Remote API path
    per_page: int = 30
    hydrate_limit: int = 10
    hydrate_workers: int = 10
    request_timeout: float = 10.0
    max_retries: int = 3
    backoff_base: float = 0.5

    # Insights
    recent_activity: int = 10
    expert_count: int = 3
    focus_count: int = 5


def _env(name: str, cast: Callable[[str], T], default: T) -> T:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError as e:
        raise InvalidInputError(f"{name} must be a valid {cast.__name__}, got {raw!r}") from e


def load_settings(dotenv: bool = True) -> Settings:
    """Build Settings from GITHUB_TOKEN and GITSTORY_* environment variables."""
    if dotenv:
        load_dotenv()

    hosts = _env("GITSTORY_ALLOWED_HOSTS", str, "github.com")
    return Settings(
        github_token=os.getenv("GITHUB_TOKEN") or None,
        api_url=_env("GITSTORY_API_URL", str, Settings.api_url).rstrip("/"),
        allowed_hosts=tuple(h.strip().lower() for h in hosts.split(",") if h.strip()),
        clone_depth=_env("GITSTORY_CLONE_DEPTH", int, Settings.clone_depth),
        max_commits=_env("GITSTORY_MAX_COMMITS", int, Settings.max_commits),
        clone_timeout=_env("GITSTORY_CLONE_TIMEOUT", float, Settings.clone_timeout),
        log_timeout=_env("GITSTORY_LOG_TIMEOUT", float, Settings.log_timeout),
        per_page=_env("GITSTORY_PER_PAGE", int, Settings.per_page),
        hydrate_limit=_env("GITSTORY_HYDRATE_LIMIT", int, Settings.hydrate_limit),
        hydrate_workers=_env("GITSTORY_HYDRATE_WORKERS", int, Settings.hydrate_workers),
        request_timeout=_env("GITSTORY_REQUEST_TIMEOUT", float, Settings.request_timeout),
        max_retries=_env("GITSTORY_MAX_RETRIES", int, Settings.max_retries),
        backoff_base=_env("GITSTORY_BACKOFF_BASE", float, Settings.backoff_base),
    )
