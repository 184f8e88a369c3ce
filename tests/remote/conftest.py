"""Helpers for faking GitHub API responses."""

import json

import pytest
import requests


def _response(status=200, body=None, headers=None, url="https://api.github.com/test"):
    resp = requests.Response()
    resp.status_code = status
    resp._content = json.dumps(body if body is not None else {}).encode()
    resp.headers.update(headers or {})
    resp.url = url
    return resp


@pytest.fixture
def response():
    """Factory for real ``requests.Response`` objects with a JSON body."""
    return _response


def commit_payload(sha, message="Add feature", login="alice", date="2024-01-01T00:00:00Z", files=None):
    payload = {
        "sha": sha,
        "html_url": f"https://github.com/octo/demo/commit/{sha}",
        "commit": {"message": message, "author": {"name": login.title(), "email": f"{login}@example.com", "date": date}},
        "author": {"login": login, "avatar_url": f"https://avatars.example.com/{login}"},
    }
    if files is not None:
        payload["files"] = files
    return payload


@pytest.fixture
def commit_json():
    """Factory for GitHub commit payloads (summary, or detail when ``files`` is given)."""
    return commit_payload
