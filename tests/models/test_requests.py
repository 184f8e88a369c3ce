"""Tests for request validation."""

import pytest

from gitstory.errors import InvalidInputError
from gitstory.models.requests import AnalyzeRequest, CommitsQuery, parse_repository_url, validate_request


@pytest.mark.parametrize(
    "url, full_name",
    [
        ("https://github.com/octo/demo", "octo/demo"),
        ("https://github.com/octo/demo.git", "octo/demo"),
        ("https://github.com/octo/demo/", "octo/demo"),
        ("  https://GitHub.com/octo/my.repo_name  ", "octo/my.repo_name"),
    ],
)
def test_parse_repository_url(url, full_name):
    ref = parse_repository_url(url, ["github.com"])

    assert ref.full_name == full_name
    assert ref.host == "github.com"
    assert ref.url == f"https://github.com/{full_name}"


@pytest.mark.parametrize(
    "url",
    [
        None,
        "",
        "github.com/octo/demo",
        "http://github.com/octo/demo",
        "https://github.com/octo",
        "https://github.com/octo/demo/tree/main",
        "https://github.com/../demo",
        "https://github.com/octo/demo?x=1",
    ],
)
def test_malformed_urls(url):
    with pytest.raises(InvalidInputError):
        parse_repository_url(url)


def test_host_allowlist():
    with pytest.raises(InvalidInputError) as exc:
        parse_repository_url("https://gitlab.com/octo/demo", ["github.com"])

    assert "github.com" in exc.value.message
    assert parse_repository_url("https://gitlab.com/octo/demo").host == "gitlab.com"


def test_analyze_request_normalizes_url():
    request = validate_request(AnalyzeRequest, {"url": "https://github.com/octo/demo.git"}, ["github.com"])

    assert request.url == "https://github.com/octo/demo"


def test_missing_field_is_invalid_input():
    with pytest.raises(InvalidInputError) as exc:
        validate_request(AnalyzeRequest, {})

    assert exc.value.code == "invalid_input"
    assert "url" in exc.value.message


def test_commits_query_accepts_aliases_and_names():
    by_alias = validate_request(
        CommitsQuery, {"repositoryId": "r1", "sourceUrl": "https://github.com/octo/demo", "page": "2"}
    )
    by_name = validate_request(CommitsQuery, {"repository_id": "r1", "source_url": "https://github.com/octo/demo"})

    assert (by_alias.repository_id, by_alias.page) == ("r1", 2)
    assert by_name.page == 1


@pytest.mark.parametrize("page", [0, -1, "abc"])
def test_commits_query_rejects_bad_page(page):
    with pytest.raises(InvalidInputError):
        validate_request(CommitsQuery, {"repositoryId": "r1", "sourceUrl": "https://github.com/octo/demo", "page": page})
