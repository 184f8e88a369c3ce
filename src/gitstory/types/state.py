"""State passed between the local ingestion nodes."""

from typing import List, Optional, TypedDict

from .base import CommitRecord
from .classification import ClassifiedCommit


class IngestionState(TypedDict, total=False):
    """
    Shared state passed between nodes.
    Each node adds specific fields; total=False keeps every field optional
    for LangGraph.
    """

    # Input
    repo_url: str  # URL handed to git clone
    workdir: str  # Temporary directory the clone lands in

    # Clone Node Output
    clone_path: Optional[str]

    # Log Node Output
    raw_log: str

    # Parse Node Output
    commits: List[CommitRecord]
    commit_count: int

    # Classify Node Output
    classified: List[ClassifiedCommit]
