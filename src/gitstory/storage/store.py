"""
Repository and commit store with the ingestion status state machine.
Writes are serialized per repository; lookup-or-create by URL is atomic.
"""

import threading
import uuid
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple

from gitstory.errors import InvalidStatusTransition, RepositoryNotFound
from gitstory.types.classification import ClassifiedCommit
from gitstory.types.repository import Repository, RepositoryRef, RepositoryStatus

ALLOWED_TRANSITIONS: Dict[RepositoryStatus, Tuple[RepositoryStatus, ...]] = {
    RepositoryStatus.PENDING: (RepositoryStatus.PROCESSING,),
    RepositoryStatus.PROCESSING: (RepositoryStatus.COMPLETED, RepositoryStatus.ERROR),
    # A finished repository may be ingested again on request.
    RepositoryStatus.COMPLETED: (RepositoryStatus.PROCESSING,),
    RepositoryStatus.ERROR: (RepositoryStatus.PROCESSING,),
}


def check_transition(current: RepositoryStatus, target: RepositoryStatus) -> None:
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransition(f"Cannot move repository from {current.value} to {target.value}")


class RepositoryStore(ABC):
    """Storage interface the ingestion jobs write through."""

    @abstractmethod
    def get(self, repository_id: str) -> Optional[Repository]: ...

    @abstractmethod
    def get_by_url(self, url: str) -> Optional[Repository]: ...

    @abstractmethod
    def get_or_create(self, ref: RepositoryRef) -> Tuple[Repository, bool]:
        """Return the record for ``ref.url``, creating a pending one if absent."""

    @abstractmethod
    def update_status(self, repository_id: str, status: RepositoryStatus, error: Optional[str] = None) -> Repository: ...

    @abstractmethod
    def list_commits(self, repository_id: str) -> List[ClassifiedCommit]:
        """Commits of a repository in chronological order."""

    @abstractmethod
    def replace_commits(self, repository_id: str, commits: Sequence[ClassifiedCommit]) -> None:
        """Swap in a whole new commit set for a repository."""

    @abstractmethod
    def delete_commits(self, repository_id: str) -> None: ...


class MemoryStore(RepositoryStore):
    """In-process store guarded by one lock per repository key."""

    def __init__(self):
        self._lock = threading.RLock()
        self._key_locks: Dict[str, threading.RLock] = {}
        self._repositories: Dict[str, Repository] = {}
        self._by_url: Dict[str, str] = {}
        self._commits: Dict[str, Tuple[ClassifiedCommit, ...]] = {}

    def _key_lock(self, key: str) -> threading.RLock:
        with self._lock:
            return self._key_locks.setdefault(key, threading.RLock())

    def _require(self, repository_id: str) -> Repository:
        repository = self.get(repository_id)
        if repository is None:
            raise RepositoryNotFound(f"Repository {repository_id} not found")
        return repository

    def get(self, repository_id: str) -> Optional[Repository]:
        with self._lock:
            return self._repositories.get(repository_id)

    def get_by_url(self, url: str) -> Optional[Repository]:
        with self._lock:
            repository_id = self._by_url.get(url)
            return self._repositories.get(repository_id) if repository_id else None

    def get_or_create(self, ref: RepositoryRef) -> Tuple[Repository, bool]:
        with self._key_lock(f"url:{ref.url}"):
            existing = self.get_by_url(ref.url)
            if existing is not None:
                return existing, False
            repository = Repository(id=str(uuid.uuid4()), url=ref.url, name=ref.name, owner=ref.owner)
            with self._lock:
                self._repositories[repository.id] = repository
                self._by_url[ref.url] = repository.id
            return repository, True

    def update_status(self, repository_id: str, status: RepositoryStatus, error: Optional[str] = None) -> Repository:
        with self._key_lock(f"id:{repository_id}"):
            current = self._require(repository_id)
            check_transition(current.status, status)
            updated = current.with_status(status, error)
            with self._lock:
                self._repositories[repository_id] = updated
            return updated

    def list_commits(self, repository_id: str) -> List[ClassifiedCommit]:
        with self._lock:
            commits = self._commits.get(repository_id, ())
        return sorted(commits, key=lambda item: (item.commit.timestamp, item.commit.id))

    def replace_commits(self, repository_id: str, commits: Sequence[ClassifiedCommit]) -> None:
        with self._key_lock(f"id:{repository_id}"):
            self._require(repository_id)
            with self._lock:
                self._commits[repository_id] = tuple(commits)

    def delete_commits(self, repository_id: str) -> None:
        with self._key_lock(f"id:{repository_id}"):
            with self._lock:
                self._commits.pop(repository_id, None)
