"""gitstory workflow integration using LangGraph for orchestration."""

import argparse
import json
import sys
import tempfile
import threading
from functools import partial
from typing import List, Optional

from git.exc import GitCommandError
from langgraph.graph import END, StateGraph
from loguru import logger

from gitstory.config import Settings, load_settings
from gitstory.errors import GitStoryError
from gitstory.models.requests import parse_repository_url
from gitstory.nodes.insights import aggregate
from gitstory.nodes.local_ingest import classify_node, clone_node, log_node, parse_node
from gitstory.remote.timeline import fetch_timeline_page
from gitstory.types.classification import ClassifiedCommit, Taxonomy
from gitstory.types.repository import RepositoryMeta
from gitstory.types.state import IngestionState


def create_ingestion_workflow(settings: Settings, cancel_event: Optional[threading.Event] = None):
    """Create the local ingestion graph: clone -> log -> parse -> classify."""
    workflow = StateGraph(IngestionState)

    # Add nodes
    workflow.add_node("clone_node", partial(clone_node, settings=settings, cancel_event=cancel_event))
    workflow.add_node("log_node", partial(log_node, settings=settings, cancel_event=cancel_event))
    workflow.add_node("parse_node", parse_node)
    workflow.add_node("classify_node", classify_node)

    workflow.set_entry_point("clone_node")

    # Define edges
    workflow.add_edge("clone_node", "log_node")
    workflow.add_edge("log_node", "parse_node")
    workflow.add_edge("parse_node", "classify_node")
    workflow.add_edge("classify_node", END)

    return workflow.compile()


def ingest_repository(
    url: str, settings: Optional[Settings] = None, cancel_event: Optional[threading.Event] = None
) -> List[ClassifiedCommit]:
    """Clone, extract and classify a repository's recent history.

    Returns commits most-recent-first. Any failure propagates and no partial
    result is returned; the temporary clone is removed on every exit path.
    """
    settings = settings or load_settings()
    app = create_ingestion_workflow(settings, cancel_event)

    with tempfile.TemporaryDirectory(prefix="gitstory-") as workdir:
        logger.info(f"Ingesting repository: {url}")
        final_state = app.invoke({"repo_url": url, "workdir": workdir})

    return final_state.get("classified", [])


def _run_local(url: str, settings: Settings) -> dict:
    ref = parse_repository_url(url, settings.allowed_hosts)
    classified = ingest_repository(ref.url, settings)
    meta = RepositoryMeta(name=ref.name, full_name=ref.full_name, html_url=ref.url)
    insights, onboarding = aggregate(
        classified,
        meta,
        taxonomy=Taxonomy.STRUCTURAL,
        recent_limit=settings.recent_activity,
        expert_count=settings.expert_count,
        focus_count=settings.focus_count,
    )
    return {
        "repository": meta.to_dict(ref.full_name),
        "commits": [commit.to_dict(Taxonomy.STRUCTURAL) for commit in classified],
        "insights": insights.to_dict(),
        "onboarding": onboarding.to_dict(),
    }


def _run_remote(url: str, page: int, settings: Settings) -> dict:
    ref = parse_repository_url(url, settings.allowed_hosts)
    return fetch_timeline_page(ref.full_name, url, page=page, settings=settings).to_dict()


def main():
    parser = argparse.ArgumentParser(description="Build an onboarding timeline from a repository's history")
    parser.add_argument("url", type=str, help="Repository URL, e.g. https://github.com/owner/repo")
    parser.add_argument("--remote", action="store_true", help="Use the GitHub REST API instead of a local clone")
    parser.add_argument("--page", type=int, default=1, help="Page of the remote timeline to fetch")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    args = parser.parse_args()

    if not args.verbose:
        logger.remove()
        logger.add(sys.stderr, level="INFO")

    try:
        settings = load_settings()
        if args.remote:
            result = _run_remote(args.url, args.page, settings)
        else:
            result = _run_local(args.url, settings)
    except GitStoryError as e:
        logger.error(f"{e.code}: {e.message}")
        remediation = getattr(e, "remediation", None)
        if remediation:
            logger.error(remediation)
        sys.exit(1)
    except GitCommandError as e:
        logger.error(f"git failed: {e}")
        sys.exit(1)

    json.dump(result, sys.stdout, indent=2)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
