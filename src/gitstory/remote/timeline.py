"""Paged remote timeline: summaries, bounded hydration, classification, insights."""

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

from gitstory.config import Settings, load_settings
from gitstory.errors import GitStoryError, IngestionCancelled, UpstreamError
from gitstory.models.requests import CommitsQuery, parse_repository_url, validate_request
from gitstory.nodes.classifier import classify_all
from gitstory.nodes.git_log import parse_timestamp
from gitstory.nodes.insights import aggregate
from gitstory.remote.client import GitHubClient
from gitstory.types.base import Author, ChangeKind, CommitRecord, CommitStats, FileChange
from gitstory.types.classification import Taxonomy
from gitstory.types.repository import Pagination, RepositoryMeta, TimelinePage


def _author(item: Dict[str, Any]) -> Author:
    git_author = (item.get("commit") or {}).get("author") or {}
    account = item.get("author") or {}
    return Author(
        name=git_author.get("name") or account.get("login") or "unknown",
        email=git_author.get("email") or "",
        handle=account.get("login"),
        avatar_url=account.get("avatar_url"),
    )


def _timestamp(item: Dict[str, Any]):
    commit = item.get("commit") or {}
    raw = (commit.get("author") or {}).get("date") or (commit.get("committer") or {}).get("date")
    if not raw:
        raise UpstreamError(502, f"Commit {item.get('sha')} has no date")
    return parse_timestamp(raw)


def commit_from_summary(item: Dict[str, Any]) -> CommitRecord:
    """Build a summary-only record: no files and placeholder stats."""
    return CommitRecord(
        id=item["sha"],
        message=(item.get("commit") or {}).get("message") or "",
        author=_author(item),
        timestamp=_timestamp(item),
        file_changes=(),
        stats=CommitStats.unavailable(),
        source_url=item.get("html_url"),
        hydrated=False,
    )


def commit_from_detail(item: Dict[str, Any]) -> CommitRecord:
    """Build a fully hydrated record from a single-commit payload."""
    changes = tuple(
        FileChange(
            path=entry["filename"],
            lines_added=int(entry.get("additions") or 0),
            lines_deleted=int(entry.get("deletions") or 0),
            change_kind=ChangeKind.parse(entry.get("status")),
        )
        for entry in item.get("files") or []
    )
    return CommitRecord(
        id=item["sha"],
        message=(item.get("commit") or {}).get("message") or "",
        author=_author(item),
        timestamp=_timestamp(item),
        file_changes=changes,
        stats=CommitStats.from_file_changes(changes),
        source_url=item.get("html_url"),
        hydrated=True,
    )


def hydrate_commits(
    client: GitHubClient,
    owner: str,
    repo: str,
    summaries: Sequence[Dict[str, Any]],
    limit: int,
    max_workers: int = 10,
    cancel_event: Optional[threading.Event] = None,
) -> List[CommitRecord]:
    """Fetch per-file detail for the first ``limit`` commits concurrently.

    Results are matched back by sha. A failed detail fetch leaves that commit
    summary-only instead of failing the page.
    """
    records = [commit_from_summary(item) for item in summaries]
    targets = [record.id for record in records[: max(limit, 0)]]
    if not targets:
        return records

    hydrated: Dict[str, CommitRecord] = {}
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, len(targets)))) as pool:
        futures = {pool.submit(client.get_commit, owner, repo, sha): sha for sha in targets}
        for future in as_completed(futures):
            if cancel_event is not None and cancel_event.is_set():
                for pending in futures:
                    pending.cancel()
                raise IngestionCancelled("Commit hydration cancelled")

            sha = futures[future]
            try:
                detail = commit_from_detail(future.result())
            except (GitStoryError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Could not hydrate commit {sha[:7]}, keeping summary only: {e}")
                continue
            if detail.id != sha:
                logger.warning(f"Detail for {sha[:7]} came back as {detail.id[:7]}, keeping summary only")
                continue
            hydrated[sha] = detail

    logger.debug(f"Hydrated {len(hydrated)} of {len(targets)} commits")
    return [hydrated.get(record.id, record) for record in records]


def fetch_timeline_page(
    repository_id: str,
    source_url: str,
    page: int = 1,
    settings: Optional[Settings] = None,
    client: Optional[GitHubClient] = None,
    meta: Optional[RepositoryMeta] = None,
    cancel_event: Optional[threading.Event] = None,
) -> TimelinePage:
    """Fetch, hydrate, classify and summarize one page of a repository's commits.

    Insights and onboarding are computed over the returned page. Pass ``meta``
    from an earlier page to skip the metadata request.
    """
    settings = settings or load_settings()
    query = validate_request(
        CommitsQuery,
        {"repositoryId": repository_id, "sourceUrl": source_url, "page": page},
        settings.allowed_hosts,
    )
    ref = parse_repository_url(query.source_url)
    client = client or GitHubClient.from_settings(settings)

    logger.info(f"Fetching timeline page {query.page} for {ref.full_name}")
    if meta is None:
        meta = client.get_repository(ref.owner, ref.name)
    summaries, has_more = client.list_commits(ref.owner, ref.name, page=query.page, per_page=settings.per_page)

    if cancel_event is not None and cancel_event.is_set():
        raise IngestionCancelled("Timeline fetch cancelled")

    records = hydrate_commits(
        client,
        ref.owner,
        ref.name,
        summaries,
        limit=settings.hydrate_limit,
        max_workers=settings.hydrate_workers,
        cancel_event=cancel_event,
    )
    classified = classify_all(records)
    insights, onboarding = aggregate(
        classified,
        meta,
        taxonomy=Taxonomy.ONBOARDING,
        recent_limit=settings.recent_activity,
        expert_count=settings.expert_count,
        focus_count=settings.focus_count,
    )

    return TimelinePage(
        repository_id=query.repository_id,
        repository=meta,
        commits=classified,
        insights=insights,
        onboarding=onboarding,
        pagination=Pagination(page=query.page, per_page=settings.per_page, has_more=has_more),
    )
