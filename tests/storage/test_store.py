"""Tests for the in-memory repository store."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from gitstory.errors import InvalidStatusTransition, RepositoryNotFound
from gitstory.nodes.classifier import classify_all
from gitstory.storage.store import MemoryStore, check_transition
from gitstory.types.repository import RepositoryRef, RepositoryStatus

REF = RepositoryRef(host="github.com", owner="octo", name="demo")


@pytest.fixture
def store():
    return MemoryStore()


def test_get_or_create_returns_existing(store):
    first, created = store.get_or_create(REF)
    again, created_again = store.get_or_create(REF)

    assert created and not created_again
    assert again.id == first.id
    assert first.status is RepositoryStatus.PENDING
    assert store.get_by_url(REF.url) == first


def test_concurrent_get_or_create_makes_one_record(store):
    barrier = threading.Barrier(16)

    def create(_):
        barrier.wait()
        return store.get_or_create(REF)

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(create, range(16)))

    assert len({repository.id for repository, _ in results}) == 1
    assert sum(created for _, created in results) == 1


@pytest.mark.parametrize(
    "current, target",
    [
        (RepositoryStatus.PENDING, RepositoryStatus.PROCESSING),
        (RepositoryStatus.PROCESSING, RepositoryStatus.COMPLETED),
        (RepositoryStatus.PROCESSING, RepositoryStatus.ERROR),
        (RepositoryStatus.COMPLETED, RepositoryStatus.PROCESSING),
        (RepositoryStatus.ERROR, RepositoryStatus.PROCESSING),
    ],
)
def test_allowed_transitions(current, target):
    check_transition(current, target)


@pytest.mark.parametrize(
    "current, target",
    [
        (RepositoryStatus.PENDING, RepositoryStatus.COMPLETED),
        (RepositoryStatus.PENDING, RepositoryStatus.ERROR),
        (RepositoryStatus.PROCESSING, RepositoryStatus.PENDING),
        (RepositoryStatus.COMPLETED, RepositoryStatus.ERROR),
        (RepositoryStatus.PROCESSING, RepositoryStatus.PROCESSING),
    ],
)
def test_rejected_transitions(current, target):
    with pytest.raises(InvalidStatusTransition):
        check_transition(current, target)


def test_update_status_records_error(store):
    repository, _ = store.get_or_create(REF)
    store.update_status(repository.id, RepositoryStatus.PROCESSING)

    updated = store.update_status(repository.id, RepositoryStatus.ERROR, error="clone failed")

    assert store.get(repository.id) == updated
    assert updated.error == "clone failed"
    assert updated.to_dict()["status"] == "error"


def test_update_status_unknown_repository(store):
    with pytest.raises(RepositoryNotFound):
        store.update_status("nope", RepositoryStatus.PROCESSING)


def test_commits_are_replaced_and_listed_chronologically(store, make_commit):
    repository, _ = store.get_or_create(REF)
    newest_first = classify_all(
        [
            make_commit("c" * 40, "Fix crash", when="2024-01-03T00:00:00+00:00"),
            make_commit("b" * 40, "Add search", when="2024-01-02T00:00:00+00:00"),
            make_commit("a" * 40, "Initial commit", when="2024-01-01T00:00:00+00:00"),
        ]
    )

    store.replace_commits(repository.id, newest_first)
    assert [c.commit.id[0] for c in store.list_commits(repository.id)] == ["a", "b", "c"]

    store.replace_commits(repository.id, newest_first[:1])
    assert [c.commit.id[0] for c in store.list_commits(repository.id)] == ["c"]

    store.delete_commits(repository.id)
    assert store.list_commits(repository.id) == []


def test_replace_commits_requires_repository(store):
    with pytest.raises(RepositoryNotFound):
        store.replace_commits("nope", [])
