"""Types for timeline insights and onboarding narrative."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ContributorProfile:
    """Commit count and accumulated tags for one contributor."""

    identity: str
    display_name: str
    commit_count: int
    tags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "displayName": self.display_name,
            "commitCount": self.commit_count,
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class ActivityEntry:
    """One line of the recent activity feed."""

    commit_id: str
    category: str
    timestamp: datetime
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": self.commit_id,
            "type": self.category,
            "date": self.timestamp.isoformat(),
            "message": self.message,
        }


@dataclass(frozen=True)
class TimelineInsights:
    """Aggregate view over a set of classified commits."""

    total_commits: int
    first_commit_time: Optional[datetime]
    last_commit_time: Optional[datetime]
    distinct_contributor_count: int
    category_counts: Dict[str, int]
    contributor_profiles: Dict[str, ContributorProfile]
    tag_frequency: Dict[str, int]
    recent_activity: List[ActivityEntry]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalCommits": self.total_commits,
            "firstCommitTime": self.first_commit_time.isoformat() if self.first_commit_time else None,
            "lastCommitTime": self.last_commit_time.isoformat() if self.last_commit_time else None,
            "contributors": self.distinct_contributor_count,
            "categoryCounts": dict(self.category_counts),
            "contributorProfiles": {key: profile.to_dict() for key, profile in self.contributor_profiles.items()},
            "tagFrequency": dict(self.tag_frequency),
            "recentActivity": [entry.to_dict() for entry in self.recent_activity],
        }


@dataclass(frozen=True)
class ExpertContact:
    """A contributor worth asking about a part of the codebase."""

    handle: str
    expertise: List[str]
    commit_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"username": self.handle, "expertise": list(self.expertise), "commits": self.commit_count}


@dataclass(frozen=True)
class FocusArea:
    category: str
    count: int
    percentage: int

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.category, "count": self.count, "percentage": self.percentage}


@dataclass(frozen=True)
class OnboardingNarrative:
    """Human-facing summary derived from the insights."""

    project_story: str
    expert_contacts: List[ExpertContact]
    focus_areas: List[FocusArea]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projectStory": self.project_story,
            "expertContacts": [contact.to_dict() for contact in self.expert_contacts],
            "focusAreas": [area.to_dict() for area in self.focus_areas],
        }
