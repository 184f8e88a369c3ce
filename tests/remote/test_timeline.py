"""Tests for the paged remote timeline."""

import threading
from unittest.mock import MagicMock

import pytest

from gitstory.config import Settings
from gitstory.errors import IngestionCancelled, InvalidInputError, UpstreamError
from gitstory.remote.client import GitHubClient
from gitstory.remote.timeline import commit_from_detail, commit_from_summary, fetch_timeline_page, hydrate_commits
from gitstory.types.repository import RepositoryMeta

META = RepositoryMeta(name="demo", full_name="octo/demo", language="Python")


def sha(i):
    return f"{i:040x}"


@pytest.fixture
def fake_client(commit_json):
    """A client stub serving ``count`` summaries; detail requests echo the sha."""

    def build(count=5, failing=(), has_more=False):
        client = MagicMock(spec=GitHubClient)
        client.get_repository.return_value = META
        summaries = [
            commit_json(sha(i), message=f"Add feature {i}", date=f"2024-01-{i + 1:02d}T00:00:00Z") for i in range(count)
        ]
        client.list_commits.return_value = (summaries, has_more)

        def get_commit(owner, repo, commit_sha):
            if commit_sha in failing:
                raise UpstreamError(500, "Server Error")
            index = int(commit_sha, 16)
            return commit_json(
                commit_sha,
                message=f"Add feature {index}",
                date=f"2024-01-{index + 1:02d}T00:00:00Z",
                files=[{"filename": "server/api/routes.py", "additions": 4, "deletions": 1, "status": "modified"}],
            )

        client.get_commit.side_effect = get_commit
        return client

    return build


def test_summary_record_is_not_hydrated(commit_json):
    record = commit_from_summary(commit_json(sha(1), message="Fix crash\n\nLong body"))

    assert not record.hydrated
    assert record.file_changes == ()
    assert record.stats.placeholder
    assert record.title == "Fix crash"
    assert record.author.handle == "alice"
    assert record.source_url.endswith(sha(1))


def test_detail_record_sums_file_stats(commit_json):
    record = commit_from_detail(
        commit_json(
            sha(1),
            files=[
                {"filename": "a.py", "additions": 3, "deletions": 1, "status": "added"},
                {"filename": "b.py", "additions": 2, "deletions": 5, "status": "mystery"},
            ],
        )
    )

    assert record.hydrated
    assert (record.stats.additions, record.stats.deletions, record.stats.total) == (5, 6, 11)
    assert [c.change_kind.value for c in record.file_changes] == ["added", "modified"]


def test_summary_without_date_is_rejected(commit_json):
    payload = commit_json(sha(1))
    del payload["commit"]["author"]["date"]

    with pytest.raises(UpstreamError):
        commit_from_summary(payload)


def test_hydration_is_bounded(fake_client):
    client = fake_client(count=15)
    summaries, _ = client.list_commits("octo", "demo")

    records = hydrate_commits(client, "octo", "demo", summaries, limit=10)

    assert client.get_commit.call_count == 10
    assert [r.hydrated for r in records] == [True] * 10 + [False] * 5
    assert [r.id for r in records] == [sha(i) for i in range(15)]


def test_failed_detail_degrades_to_summary(fake_client):
    client = fake_client(count=10, failing={sha(3)})
    summaries, _ = client.list_commits("octo", "demo")

    records = hydrate_commits(client, "octo", "demo", summaries, limit=10)

    assert len(records) == 10
    assert sum(r.hydrated for r in records) == 9
    degraded = records[3]
    assert degraded.id == sha(3)
    assert not degraded.hydrated
    assert degraded.stats.total == 0
    assert degraded.stats.placeholder


def test_hydration_honours_cancellation(fake_client):
    client = fake_client(count=3)
    summaries, _ = client.list_commits("octo", "demo")
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(IngestionCancelled):
        hydrate_commits(client, "octo", "demo", summaries, limit=3, cancel_event=cancel)


def test_fetch_page_shape(fake_client):
    client = fake_client(count=12)

    page = fetch_timeline_page("repo-1", "https://github.com/octo/demo", page=1, settings=Settings(), client=client)
    body = page.to_dict()

    client.list_commits.assert_called_once_with("octo", "demo", page=1, per_page=30)
    assert body["repository"]["id"] == "repo-1"
    assert body["repository"]["fullName"] == "octo/demo"
    assert body["pagination"] == {"page": 1, "perPage": 30, "hasMore": False}
    assert len(body["commits"]) == 12
    first = body["commits"][0]
    assert first["type"] == "feature"
    assert "api" in first["tags"]
    assert first["stats"]["total"] == 5
    assert body["commits"][11]["hydrated"] is False
    assert body["insights"]["totalCommits"] == 12
    assert body["onboarding"]["expertContacts"][0] == {
        "username": "alice",
        "expertise": ["feature", "api"],
        "commits": 12,
    }
    assert body["onboarding"]["focusAreas"] == [{"type": "feature", "count": 12, "percentage": 100}]


def test_fetch_page_reuses_metadata(fake_client):
    client = fake_client(count=2, has_more=True)

    page = fetch_timeline_page(
        "repo-1", "https://github.com/octo/demo", page=2, settings=Settings(), client=client, meta=META
    )

    client.get_repository.assert_not_called()
    assert page.pagination.has_more
    assert page.pagination.page == 2


@pytest.mark.parametrize(
    "repository_id, url, page",
    [
        ("", "https://github.com/octo/demo", 1),
        ("repo-1", "not a url", 1),
        ("repo-1", "https://gitlab.com/octo/demo", 1),
        ("repo-1", "https://github.com/octo/demo", 0),
    ],
)
def test_fetch_page_validates_before_any_request(fake_client, repository_id, url, page):
    client = fake_client()

    with pytest.raises(InvalidInputError):
        fetch_timeline_page(repository_id, url, page=page, settings=Settings(), client=client)

    client.list_commits.assert_not_called()
