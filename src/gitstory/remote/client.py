"""
GitHub REST client for repository metadata and commit pages.
Classifies upstream failures into rate-limit, token-type and generic errors.
"""

import email.utils
import random
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import requests
from loguru import logger
from requests.utils import parse_header_links

from gitstory.config import Settings
from gitstory.errors import RateLimitExceeded, TokenTypeRestricted, UpstreamError
from gitstory.nodes.git_log import parse_timestamp
from gitstory.types.repository import RepositoryMeta

RETRYABLE_STATUSES = (502, 503, 504)
MAX_BACKOFF = 30.0


def _parse_retry_after(raw: Optional[str]) -> Optional[float]:
    if not raw:
        return None
    try:
        return max(0.0, float(raw))
    except ValueError:
        pass
    try:
        dt = email.utils.parsedate_to_datetime(raw)
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return max(0.0, (dt - datetime.now(timezone.utc)).total_seconds())


def _parse_reset(raw: Optional[str]) -> Optional[datetime]:
    try:
        return datetime.fromtimestamp(float(raw), tz=timezone.utc) if raw else None
    except (TypeError, ValueError):
        return None


def _error_message(resp) -> str:
    try:
        body = resp.json()
    except ValueError:
        return (getattr(resp, "text", "") or "").strip()
    if isinstance(body, dict):
        return str(body.get("message") or "")
    return str(body)


def _is_token_type_restriction(message: str) -> bool:
    lowered = message.lower()
    if "fine-grained" in lowered:
        return True
    return "personal access token" in lowered and ("not accessible" in lowered or "forbid" in lowered)


def raise_for_upstream(resp, authenticated: bool = False) -> None:
    """Raise the most specific error for a non-2xx response."""
    status = resp.status_code
    message = _error_message(resp)
    headers = getattr(resp, "headers", {}) or {}

    if status in (403, 429) and (headers.get("X-RateLimit-Remaining") == "0" or "rate limit" in message.lower()):
        raise RateLimitExceeded(
            status,
            message or "API rate limit exceeded",
            reset_at=_parse_reset(headers.get("X-RateLimit-Reset")),
            authenticated=authenticated,
        )
    if status == 403 and _is_token_type_restriction(message):
        raise TokenTypeRestricted(status, message)
    raise UpstreamError(status, message or f"GitHub API returned HTTP {status}")


class GitHubClient:
    """Minimal GitHub client; the bearer token is optional."""

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = "https://api.github.com",
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff_base: float = 0.5,
    ):
        self.api_url = api_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> "GitHubClient":
        return cls(
            token=settings.github_token,
            api_url=settings.api_url,
            session=session,
            timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            backoff_base=settings.backoff_base,
        )

    @property
    def authenticated(self) -> bool:
        return "Authorization" in self.headers

    def _backoff(self, attempt: int) -> float:
        return min(self.backoff_base * (2**attempt) + random.uniform(0, self.backoff_base), MAX_BACKOFF)

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None):
        """GET with retries on connection errors and 502/503/504."""
        url = f"{self.api_url}{path}"
        attempt = 0
        while True:
            try:
                resp = self.session.get(url, headers=self.headers, params=params or {}, timeout=self.timeout)
            except requests.RequestException as e:
                if attempt >= self.max_retries:
                    raise UpstreamError(0, f"Request to {url} failed: {e}") from e
                wait = self._backoff(attempt)
                logger.debug(f"GET {url} failed ({e}); retrying in {wait:.2f}s")
            else:
                if 200 <= resp.status_code < 300:
                    return resp
                if resp.status_code not in RETRYABLE_STATUSES or attempt >= self.max_retries:
                    raise_for_upstream(resp, self.authenticated)
                retry_after = _parse_retry_after((resp.headers or {}).get("Retry-After"))
                wait = min(retry_after, MAX_BACKOFF) if retry_after is not None else self._backoff(attempt)
                logger.debug(f"GET {url} returned {resp.status_code}; retrying in {wait:.2f}s")
            time.sleep(wait)
            attempt += 1

    def get_repository(self, owner: str, repo: str) -> RepositoryMeta:
        data = self._get(f"/repos/{owner}/{repo}").json()
        created = data.get("created_at")
        return RepositoryMeta(
            name=data.get("name") or repo,
            full_name=data.get("full_name") or f"{owner}/{repo}",
            description=data.get("description"),
            language=data.get("language"),
            stars=int(data.get("stargazers_count") or 0),
            forks=int(data.get("forks_count") or 0),
            created_at=parse_timestamp(created) if created else None,
            html_url=data.get("html_url"),
        )

    def list_commits(self, owner: str, repo: str, page: int = 1, per_page: int = 30) -> Tuple[List[Dict[str, Any]], bool]:
        """Fetch one page of commit summaries and whether another page exists.

        The ``Link: rel="next"`` header is authoritative when present; without
        it a full page is taken to mean there may be more.
        """
        try:
            resp = self._get(f"/repos/{owner}/{repo}/commits", params={"page": page, "per_page": per_page})
        except UpstreamError as e:
            if e.status == 409:  # empty repository
                return [], False
            raise

        items = resp.json()
        if not isinstance(items, list):
            raise UpstreamError(resp.status_code, "Unexpected commit list payload from GitHub")

        link = (resp.headers or {}).get("Link")
        if link:
            has_next = any(entry.get("rel") == "next" for entry in parse_header_links(link))
        else:
            has_next = len(items) == per_page
        return items, has_next

    def get_commit(self, owner: str, repo: str, sha: str) -> Dict[str, Any]:
        """Fetch one commit with its per-file stats."""
        return self._get(f"/repos/{owner}/{repo}/commits/{sha}").json()
