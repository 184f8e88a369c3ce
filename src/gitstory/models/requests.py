"""Validated inputs for the ingestion trigger and the remote commit listing."""

import re
from typing import Any, Dict, Iterable, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from gitstory.errors import InvalidInputError
from gitstory.types.repository import RepositoryRef

M = TypeVar("M", bound=BaseModel)

_REPOSITORY_URL_RE = re.compile(
    r"^https://(?P<host>[A-Za-z0-9.-]+(?::\d+)?)/(?P<owner>[A-Za-z0-9_.-]+)/(?P<name>[A-Za-z0-9_.-]+?)(?:\.git)?/?$"
)


def parse_repository_url(url: str, allowed_hosts: Optional[Iterable[str]] = None) -> RepositoryRef:
    """Parse ``https://host/owner/repo`` (optionally ``.git``-suffixed).

    Raises InvalidInputError for any other shape, or for a host outside
    ``allowed_hosts`` when one is given.
    """
    match = _REPOSITORY_URL_RE.match((url or "").strip())
    if not match or match["name"] in (".", "..") or match["owner"] in (".", ".."):
        raise InvalidInputError(f"Invalid repository URL {url!r}: expected https://<host>/<owner>/<repo>")

    host = match["host"].lower()
    hosts = tuple(h.lower() for h in allowed_hosts or ())
    if hosts and host not in hosts:
        raise InvalidInputError(f"Only repositories hosted on {', '.join(hosts)} are supported, got {host}")
    return RepositoryRef(host=host, owner=match["owner"], name=match["name"])


def _check_url(value: str, info: ValidationInfo) -> str:
    hosts = (info.context or {}).get("allowed_hosts")
    return parse_repository_url(value, hosts).url


class AnalyzeRequest(BaseModel):
    """Body of an ingestion trigger: ``{"url": ...}``."""

    url: str = Field(..., description="Repository URL to ingest")

    @field_validator("url")
    @classmethod
    def validate_url(cls, value: str, info: ValidationInfo) -> str:
        return _check_url(value, info)


class CommitsQuery(BaseModel):
    """Query for one page of the remote timeline."""

    model_config = ConfigDict(populate_by_name=True)

    repository_id: str = Field(..., alias="repositoryId", min_length=1)
    source_url: str = Field(..., alias="sourceUrl")
    page: int = Field(1, ge=1)

    @field_validator("source_url")
    @classmethod
    def validate_url(cls, value: str, info: ValidationInfo) -> str:
        return _check_url(value, info)


def validate_request(model: Type[M], data: Dict[str, Any], allowed_hosts: Optional[Iterable[str]] = None) -> M:
    """Validate ``data`` into ``model``, reporting failures as InvalidInputError."""
    try:
        return model.model_validate(data, context={"allowed_hosts": tuple(allowed_hosts or ())})
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'request'}: {error['msg']}" for error in e.errors()
        )
        raise InvalidInputError(problems) from e
