"""Detached ingestion jobs and the service that starts and observes them."""

import threading
from typing import Callable, Dict, List, Optional, Sequence

from git.exc import GitCommandError
from loguru import logger

from gitstory.config import Settings, load_settings
from gitstory.errors import GitStoryError, RepositoryNotFound
from gitstory.models.requests import AnalyzeRequest, parse_repository_url, validate_request
from gitstory.nodes.insights import aggregate
from gitstory.storage.store import MemoryStore, RepositoryStore
from gitstory.types.classification import ClassifiedCommit, Taxonomy
from gitstory.types.repository import Repository, RepositoryMeta, RepositoryStatus
from gitstory.workflow import ingest_repository

IngestFn = Callable[[str, Settings, Optional[threading.Event]], Sequence[ClassifiedCommit]]


class IngestionJob(threading.Thread):
    """Runs one ingestion in the background and records the outcome as status.

    The record is moved to ``processing`` before the thread starts. Commits
    are swapped in before it turns ``completed``, and nothing partial is stored.
    """

    def __init__(self, repository: Repository, store: RepositoryStore, settings: Settings, ingest: IngestFn):
        super().__init__(name=f"ingest-{repository.id[:8]}", daemon=True)
        self.repository = repository
        self.store = store
        self.settings = settings
        self.ingest = ingest
        self.cancel_event = threading.Event()

    def cancel(self) -> None:
        self.cancel_event.set()

    def run(self) -> None:
        repository_id = self.repository.id
        try:
            commits = list(self.ingest(self.repository.url, self.settings, self.cancel_event))
        except (GitStoryError, GitCommandError) as e:
            logger.error(f"Repository analysis failed for {self.repository.url}: {e}")
            self.store.update_status(repository_id, RepositoryStatus.ERROR, error=str(e))
            return
        except Exception as e:
            logger.exception(f"Unexpected failure analyzing {self.repository.url}")
            self.store.update_status(repository_id, RepositoryStatus.ERROR, error=str(e))
            return

        self.store.replace_commits(repository_id, commits)
        self.store.update_status(repository_id, RepositoryStatus.COMPLETED)
        logger.info(f"Analyzed {len(commits)} commits for {self.repository.url}")


class IngestionService:
    """Entry point for triggering and polling local ingestions."""

    def __init__(
        self,
        store: Optional[RepositoryStore] = None,
        settings: Optional[Settings] = None,
        ingest: IngestFn = ingest_repository,
    ):
        self.store = store or MemoryStore()
        self.settings = settings or load_settings()
        self.ingest = ingest
        self._jobs: Dict[str, IngestionJob] = {}
        self._lock = threading.Lock()

    def trigger(self, url: str) -> Repository:
        """Validate ``url``, ensure a record exists and start ingestion in the background.

        Returns immediately with the record already marked ``processing``. A
        repository that is already being ingested is not ingested twice.
        """
        request = validate_request(AnalyzeRequest, {"url": url}, self.settings.allowed_hosts)
        ref = parse_repository_url(request.url)
        repository, created = self.store.get_or_create(ref)
        if created:
            logger.info(f"Created repository record {repository.id} for {ref.url}")

        with self._lock:
            job = self._jobs.get(repository.id)
            if job is not None and job.is_alive():
                logger.info(f"Ingestion already running for {ref.url}")
                return repository
            repository = self.store.update_status(repository.id, RepositoryStatus.PROCESSING)
            job = IngestionJob(repository, self.store, self.settings, self.ingest)
            self._jobs[repository.id] = job
            job.start()
        return repository

    def get(self, repository_id: str) -> Repository:
        repository = self.store.get(repository_id)
        if repository is None:
            raise RepositoryNotFound(f"Repository {repository_id} not found")
        return repository

    def status(self, repository_id: str) -> Dict[str, str]:
        return {"status": self.get(repository_id).status.value}

    def commits(self, repository_id: str, taxonomy: Taxonomy = Taxonomy.STRUCTURAL) -> List[dict]:
        self.get(repository_id)
        return [commit.to_dict(taxonomy) for commit in self.store.list_commits(repository_id)]

    def timeline(self, repository_id: str) -> dict:
        """Stored commits with insights recomputed on every call."""
        repository = self.get(repository_id)
        commits = self.store.list_commits(repository_id)
        meta = RepositoryMeta(
            name=repository.name, full_name=f"{repository.owner}/{repository.name}", html_url=repository.url
        )
        insights, onboarding = aggregate(
            commits,
            meta,
            taxonomy=Taxonomy.STRUCTURAL,
            recent_limit=self.settings.recent_activity,
            expert_count=self.settings.expert_count,
            focus_count=self.settings.focus_count,
        )
        return {
            "repository": repository.to_dict(),
            "commits": [commit.to_dict(Taxonomy.STRUCTURAL) for commit in commits],
            "insights": insights.to_dict(),
            "onboarding": onboarding.to_dict(),
        }

    def cancel(self, repository_id: str) -> bool:
        """Ask a running ingestion to stop; False if nothing is running."""
        with self._lock:
            job = self._jobs.get(repository_id)
        if job is None or not job.is_alive():
            return False
        job.cancel()
        return True

    def wait(self, repository_id: str, timeout: Optional[float] = None) -> Repository:
        """Block until the current job for ``repository_id`` finishes (or ``timeout``)."""
        with self._lock:
            job = self._jobs.get(repository_id)
        if job is not None:
            job.join(timeout)
        return self.get(repository_id)
