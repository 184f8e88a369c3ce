"""Base types used across the gitstory system."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple


class ChangeKind(str, Enum):
    """How a file was touched by a commit."""

    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"
    RENAMED = "renamed"
    COPIED = "copied"
    CHANGED = "changed"
    UNCHANGED = "unchanged"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "ChangeKind":
        """Map a provider status string onto a kind, defaulting to modified."""
        try:
            return cls((raw or "").lower())
        except ValueError:
            return cls.MODIFIED


@dataclass(frozen=True)
class Author:
    """Who wrote a commit."""

    name: str
    email: str = ""
    handle: Optional[str] = None
    avatar_url: Optional[str] = None

    @property
    def identity(self) -> str:
        """Key used to tell contributors apart: handle if known, else name."""
        return self.handle or self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "email": self.email,
            "username": self.handle,
            "avatar": self.avatar_url,
        }


@dataclass(frozen=True)
class FileChange:
    """Per-file line counts for a commit."""

    path: str
    lines_added: int = 0
    lines_deleted: int = 0
    change_kind: ChangeKind = ChangeKind.MODIFIED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "linesAdded": self.lines_added,
            "linesDeleted": self.lines_deleted,
            "changeKind": self.change_kind.value,
        }


@dataclass(frozen=True)
class CommitStats:
    """Aggregate line counts.

    ``placeholder`` marks zero-filled stats for commits whose detail was never
    fetched, so "no data" is never mistaken for "no changes".
    """

    additions: int = 0
    deletions: int = 0
    total: int = 0
    placeholder: bool = False

    @classmethod
    def from_file_changes(cls, changes: Sequence[FileChange]) -> "CommitStats":
        additions = sum(change.lines_added for change in changes)
        deletions = sum(change.lines_deleted for change in changes)
        return cls(additions=additions, deletions=deletions, total=additions + deletions)

    @classmethod
    def unavailable(cls) -> "CommitStats":
        return cls(placeholder=True)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "additions": self.additions,
            "deletions": self.deletions,
            "total": self.total,
            "placeholder": self.placeholder,
        }


@dataclass(frozen=True)
class CommitRecord:
    """One immutable commit after ingestion."""

    id: str
    message: str
    author: Author
    timestamp: datetime
    file_changes: Tuple[FileChange, ...] = ()
    stats: CommitStats = field(default_factory=CommitStats.unavailable)
    source_url: Optional[str] = None
    hydrated: bool = True

    def __post_init__(self):
        if not isinstance(self.file_changes, tuple):
            object.__setattr__(self, "file_changes", tuple(self.file_changes))

    @property
    def short_id(self) -> str:
        return self.id[:7]

    @property
    def title(self) -> str:
        return self.message.split("\n", 1)[0]

    @property
    def paths(self) -> List[str]:
        return [change.path for change in self.file_changes]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "hash": self.id,
            "shortId": self.short_id,
            "message": self.message,
            "title": self.title,
            "author": self.author.to_dict(),
            "date": self.timestamp.isoformat(),
            "url": self.source_url,
            "fileChanges": [change.to_dict() for change in self.file_changes],
            "stats": self.stats.to_dict(),
            "hydrated": self.hydrated,
        }
