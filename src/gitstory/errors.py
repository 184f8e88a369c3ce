"""Error taxonomy surfaced by gitstory."""

from datetime import datetime
from typing import Any, Dict, Optional


class GitStoryError(Exception):
    """Base class for all gitstory errors."""

    code = "gitstory_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message}


class InvalidInputError(GitStoryError, ValueError):
    """Malformed URL, missing field or bad setting; rejected before any work."""

    code = "invalid_input"


class RepositoryNotFound(GitStoryError, LookupError):
    code = "repository_not_found"


class InvalidStatusTransition(GitStoryError):
    code = "invalid_status_transition"


class IngestionError(GitStoryError):
    """Acquisition or extraction failed; terminal for the attempt."""

    code = "ingestion_failed"


class IngestionTimeout(IngestionError):
    code = "ingestion_timeout"


class IngestionCancelled(IngestionError):
    code = "ingestion_cancelled"


class LogParseError(IngestionError):
    code = "log_parse_error"


class UpstreamError(GitStoryError):
    """Non-2xx response from the forge API."""

    code = "upstream_error"

    def __init__(self, status: int, message: str):
        super().__init__(message)
        self.status = status

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "status": self.status}


class RateLimitExceeded(UpstreamError):
    code = "rate_limit_exceeded"

    def __init__(self, status: int, message: str, reset_at: Optional[datetime] = None, authenticated: bool = False):
        super().__init__(status, message)
        self.reset_at = reset_at
        self.authenticated = authenticated

    @property
    def remediation(self) -> str:
        when = f" after {self.reset_at.isoformat()}" if self.reset_at else " later"
        if self.authenticated:
            return f"GitHub API rate limit exceeded. Try again{when}."
        return f"GitHub API rate limit exceeded. Set GITHUB_TOKEN to a personal access token or try again{when}."

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "remediation": self.remediation,
            "resetAt": self.reset_at.isoformat() if self.reset_at else None,
        }


class TokenTypeRestricted(UpstreamError):
    code = "token_type_restricted"

    remediation = (
        "GitHub token type not supported for this repository. "
        "Use a classic personal access token instead of a fine-grained token."
    )

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "remediation": self.remediation}
