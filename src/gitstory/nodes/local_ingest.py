"""Local clone ingestion nodes: acquire, extract, parse and classify."""

import os
import subprocess
import threading
import time
from typing import Optional

from git import Git
from git.exc import GitCommandError
from loguru import logger

from gitstory.config import Settings
from gitstory.errors import IngestionCancelled, IngestionTimeout
from gitstory.nodes.classifier import classify_all
from gitstory.nodes.git_log import LOG_FORMAT, parse_git_log
from gitstory.types.state import IngestionState

POLL_INTERVAL = 0.2


def _stop(handle) -> None:
    """Kill a git child process and reap it."""
    handle.proc.kill()
    try:
        handle.proc.communicate(timeout=5)
    except subprocess.TimeoutExpired:
        logger.warning(f"git process {handle.proc.pid} did not exit after kill")


def run_git(git: Git, command: str, *args: str, timeout: float, cancel_event: Optional[threading.Event] = None) -> str:
    """Run one git subcommand with a hard timeout and cooperative cancellation.

    The child process is killed when the deadline passes or the cancel event
    is set, so nothing is left running behind a failed ingestion.
    """
    handle = getattr(git, command)(*args, as_process=True)
    deadline = time.monotonic() + timeout

    while True:
        try:
            stdout, stderr = handle.proc.communicate(timeout=POLL_INTERVAL)
            break
        except subprocess.TimeoutExpired:
            if cancel_event is not None and cancel_event.is_set():
                _stop(handle)
                raise IngestionCancelled(f"git {command} cancelled")
            if time.monotonic() >= deadline:
                _stop(handle)
                raise IngestionTimeout(f"git {command} timed out after {timeout:g}s")

    status = handle.proc.returncode
    if status != 0:
        raise GitCommandError(["git", command, *args], status, stderr, stdout)
    return stdout.decode("utf-8", errors="replace")


def _check_cancelled(cancel_event: Optional[threading.Event], step: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise IngestionCancelled(f"Ingestion cancelled before {step}")


def clone_node(state: IngestionState, settings: Settings, cancel_event: Optional[threading.Event] = None) -> IngestionState:
    """Shallow-clone the repository into the work directory."""
    if "repo_url" not in state or "workdir" not in state:
        raise ValueError("repo_url and workdir are required in IngestionState")

    logger.info("Executing Clone Node")
    _check_cancelled(cancel_event, "clone")

    clone_path = os.path.join(state["workdir"], "repo")
    run_git(
        Git(),
        "clone",
        "--depth",
        str(settings.clone_depth),
        "--single-branch",
        "--no-tags",
        "--quiet",
        "--",
        state["repo_url"],
        clone_path,
        timeout=settings.clone_timeout,
        cancel_event=cancel_event,
    )
    logger.debug(f"Cloned {state['repo_url']} into {clone_path}")
    return {**state, "clone_path": clone_path}


def log_node(state: IngestionState, settings: Settings, cancel_event: Optional[threading.Event] = None) -> IngestionState:
    """Extract the most recent non-merge commits with per-file line counts."""
    if not state.get("clone_path"):
        raise ValueError("clone_path is required in IngestionState")

    logger.info("Executing Log Node")
    _check_cancelled(cancel_event, "log extraction")

    raw_log = run_git(
        Git(state["clone_path"]),
        "log",
        f"--pretty=format:{LOG_FORMAT}",
        "--numstat",
        "--no-merges",
        "-n",
        str(settings.max_commits),
        timeout=settings.log_timeout,
        cancel_event=cancel_event,
    )
    return {**state, "raw_log": raw_log}


def parse_node(state: IngestionState) -> IngestionState:
    """Turn the raw log text into commit records."""
    logger.info("Executing Parse Node")
    commits = parse_git_log(state.get("raw_log", ""))
    logger.info(f"Discovered {len(commits)} commits")
    return {**state, "commits": commits, "commit_count": len(commits)}


def classify_node(state: IngestionState) -> IngestionState:
    """Attach a classification to every parsed commit."""
    logger.info("Executing Classify Node")
    classified = classify_all(state.get("commits", []))
    for item in classified:
        logger.debug(f"{item.commit.short_id} -> {item.classification.category.value}: {item.commit.title}")
    return {**state, "classified": classified}
