"""Repository records, remote metadata and paging types."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from .classification import ClassifiedCommit, Taxonomy
from .insights import OnboardingNarrative, TimelineInsights


class RepositoryStatus(str, Enum):
    """Ingestion lifecycle of a repository record."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class RepositoryRef:
    """A parsed ``https://host/owner/repo`` reference."""

    host: str
    owner: str
    name: str

    @property
    def url(self) -> str:
        return f"https://{self.host}/{self.owner}/{self.name}"

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class Repository:
    """A stored repository record."""

    id: str
    url: str
    name: str
    owner: str
    status: RepositoryStatus = RepositoryStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    error: Optional[str] = None

    def with_status(self, status: RepositoryStatus, error: Optional[str] = None) -> "Repository":
        return replace(self, status=status, error=error)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "name": self.name,
            "owner": self.owner,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class RepositoryMeta:
    """Repository metadata as reported by the forge."""

    name: str
    full_name: str
    description: Optional[str] = None
    language: Optional[str] = None
    stars: int = 0
    forks: int = 0
    created_at: Optional[datetime] = None
    html_url: Optional[str] = None

    def to_dict(self, repository_id: Optional[str] = None) -> Dict[str, Any]:
        return {
            "id": repository_id,
            "name": self.name,
            "fullName": self.full_name,
            "description": self.description,
            "language": self.language,
            "stars": self.stars,
            "forks": self.forks,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "url": self.html_url,
        }


@dataclass(frozen=True)
class Pagination:
    page: int
    per_page: int
    has_more: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"page": self.page, "perPage": self.per_page, "hasMore": self.has_more}


@dataclass(frozen=True)
class TimelinePage:
    """One page of the remote timeline with insights computed over it."""

    repository_id: str
    repository: RepositoryMeta
    commits: List[ClassifiedCommit]
    insights: TimelineInsights
    onboarding: OnboardingNarrative
    pagination: Pagination

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repository": self.repository.to_dict(self.repository_id),
            "commits": [commit.to_dict(Taxonomy.ONBOARDING) for commit in self.commits],
            "insights": self.insights.to_dict(),
            "onboarding": self.onboarding.to_dict(),
            "pagination": self.pagination.to_dict(),
        }
