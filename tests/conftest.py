"""Shared fixtures: throwaway git repositories with a known history."""

from datetime import datetime
from pathlib import Path

import pytest
from git import Actor, Repo

from gitstory.types.base import Author, CommitRecord, CommitStats, FileChange

ALICE = Actor("Alice Example", "alice@example.com")
BOB = Actor("Bob Example", "bob@example.com")

# (message, {path: content}, author, unix time)
HISTORY = [
    ("Initial commit", {"README.md": "# demo\n"}, ALICE, 1672567200),
    ("Add user api", {"server/api/users.py": "def users():\n    return []\n"}, BOB, 1672653600),
    ("Fix login bug", {"server/api/users.py": "def users():\n    return ['a']\n"}, ALICE, 1672740000),
    ("Update docs for setup", {"docs/guide.md": "usage\n"}, ALICE, 1672826400),
]


def create_commit(repo: Repo, files: dict, message: str, author: Actor, when: int):
    """Helper function to create a commit with fixed author and dates."""
    root = Path(repo.working_dir)
    for rel, content in files.items():
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    repo.index.add(list(files))
    date = f"{when} +0000"
    return repo.index.commit(message, author=author, committer=author, author_date=date, commit_date=date)


@pytest.fixture
def sample_repo(tmp_path) -> Path:
    """A repository with four commits by two authors."""
    repo_path = tmp_path / "sample_repo"
    repo_path.mkdir()
    repo = Repo.init(repo_path)
    for message, files, author, when in HISTORY:
        create_commit(repo, files, message, author, when)
    return repo_path


@pytest.fixture
def sample_repo_url(sample_repo) -> str:
    """file:// URL so shallow clones work against the local repository."""
    return sample_repo.as_uri()


def _make_commit(
    sha: str,
    message: str,
    author: str = "alice",
    when: str = "2024-01-01T00:00:00+00:00",
    paths=(),
    handle=None,
) -> CommitRecord:
    """Build a commit record directly, without git."""
    changes = [FileChange(path=p, lines_added=1) for p in paths]
    return CommitRecord(
        id=sha,
        message=message,
        author=Author(name=author, email=f"{author}@example.com", handle=handle),
        timestamp=datetime.fromisoformat(when),
        file_changes=tuple(changes),
        stats=CommitStats.from_file_changes(changes),
    )


@pytest.fixture
def make_commit():
    """Factory for in-memory commit records."""
    return _make_commit
