"""Parser for ``git log --numstat`` output in gitstory's header format."""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from loguru import logger

from gitstory.errors import LogParseError
from gitstory.types.base import Author, ChangeKind, CommitRecord, CommitStats, FileChange

# ASCII unit separator: cannot occur in subjects, names or emails.
FIELD_SEPARATOR = "\x1f"
# hash, subject, author name, author email, strict ISO author date
LOG_FORMAT = "%x1f".join(["%H", "%s", "%an", "%ae", "%aI"])

_HEADER_RE = re.compile(r"^[0-9a-f]{7,64}\x1f")
_NUMSTAT_RE = re.compile(r"^(\d+|-)\t(\d+|-)\t(.+)$")
_BRACE_RENAME_RE = re.compile(r"\{([^{}]*) => ([^{}]*)\}")


@dataclass(frozen=True)
class NumstatEntry:
    """One ``insertions<TAB>deletions<TAB>filename`` line."""

    insertions: int
    deletions: int
    filename: str


def _count(raw: str) -> int:
    # Binary files report "-" instead of a line count.
    return 0 if raw == "-" else int(raw)


def parse_numstat_line(line: str) -> Optional[NumstatEntry]:
    """Parse a numstat line, or return None if the line is not one."""
    match = _NUMSTAT_RE.match(line.rstrip("\r\n"))
    if not match:
        return None
    insertions, deletions, filename = match.groups()
    return NumstatEntry(insertions=_count(insertions), deletions=_count(deletions), filename=filename)


def resolve_rename(filename: str) -> Tuple[str, bool]:
    """Turn numstat rename notation into the destination path.

    ``src/{old => new}/a.py`` becomes ``src/new/a.py`` and ``a.py => b.py``
    becomes ``b.py``.
    """
    if " => " not in filename:
        return filename, False
    if _BRACE_RENAME_RE.search(filename):
        resolved = _BRACE_RENAME_RE.sub(lambda m: m.group(2), filename)
        return re.sub(r"/{2,}", "/", resolved).lstrip("/"), True
    return filename.split(" => ", 1)[1], True


def parse_timestamp(raw: str) -> datetime:
    """Parse an ISO-8601 author date (``%aI`` or the looser ``%ai``)."""
    value = raw.strip()
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        try:
            parsed = datetime.strptime(value, "%Y-%m-%d %H:%M:%S %z")
        except ValueError as e:
            raise LogParseError(f"Unparseable commit date: {raw!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_header(line: str) -> bool:
    return bool(_HEADER_RE.match(line))


def parse_header(line: str) -> Tuple[str, str, str, str, datetime]:
    """Split a header into hash, subject, author name, email and date."""
    parts = line.rstrip("\r\n").split(FIELD_SEPARATOR)
    if len(parts) != 5:
        raise LogParseError(f"Commit header has {len(parts)} fields, expected 5: {line!r}")
    commit_hash, subject, name, email, date = parts
    return commit_hash, subject, name, email, parse_timestamp(date)


def _build_record(header: Tuple[str, str, str, str, datetime], entries: List[NumstatEntry]) -> CommitRecord:
    commit_hash, subject, name, email, timestamp = header
    changes = []
    for entry in entries:
        path, renamed = resolve_rename(entry.filename)
        changes.append(
            FileChange(
                path=path,
                lines_added=entry.insertions,
                lines_deleted=entry.deletions,
                change_kind=ChangeKind.RENAMED if renamed else ChangeKind.MODIFIED,
            )
        )
    return CommitRecord(
        id=commit_hash,
        message=subject,
        author=Author(name=name, email=email),
        timestamp=timestamp,
        file_changes=tuple(changes),
        stats=CommitStats.from_file_changes(changes),
        hydrated=True,
    )


def parse_git_log(text: str) -> List[CommitRecord]:
    """Parse the whole log into commit records, preserving git's order.

    A header with no numstat lines (an empty commit) still yields a record.
    """
    commits: List[CommitRecord] = []
    header = None
    entries: List[NumstatEntry] = []

    # Split on newlines only; subjects may hold other line-breaking control characters.
    for line in text.split("\n"):
        if not line.strip():
            continue
        if is_header(line):
            if header is not None:
                commits.append(_build_record(header, entries))
            header = parse_header(line)
            entries = []
            continue

        entry = parse_numstat_line(line)
        if entry is None or header is None:
            logger.debug(f"Skipping unrecognized log line: {line!r}")
            continue
        entries.append(entry)

    if header is not None:
        commits.append(_build_record(header, entries))

    return commits
