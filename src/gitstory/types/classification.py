"""Types for commit categorization and its taxonomy projections."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet

from .base import CommitRecord


class Category(str, Enum):
    """Canonical commit categories, listed in decision order."""

    INITIAL = "initial"
    ARCHITECTURE = "architecture"
    FEATURE = "feature"
    BUGFIX = "bugfix"
    DOCS = "docs"
    CONFIG = "config"
    TEST = "test"
    REFACTOR = "refactor"


class Importance(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Taxonomy(str, Enum):
    """Which label set a caller wants categories rendered in."""

    ONBOARDING = "onboarding"  # remote timeline: the canonical categories
    STRUCTURAL = "structural"  # local listing: five commit types


_STRUCTURAL_PROJECTION: Dict[Category, str] = {
    Category.INITIAL: "major-feature",
    Category.ARCHITECTURE: "architecture",
    Category.FEATURE: "major-feature",
    Category.BUGFIX: "bug-fix",
    Category.DOCS: "minor-feature",
    Category.CONFIG: "architecture",
    Category.TEST: "minor-feature",
    Category.REFACTOR: "refactor",
}

CATEGORY_LABELS: Dict[Category, str] = {
    Category.INITIAL: "Initial Commit",
    Category.ARCHITECTURE: "Architecture",
    Category.FEATURE: "New Feature",
    Category.BUGFIX: "Bug Fix",
    Category.DOCS: "Documentation",
    Category.CONFIG: "Configuration",
    Category.TEST: "Tests",
    Category.REFACTOR: "Refactor",
}

STRUCTURAL_LABELS: Dict[str, str] = {
    "major-feature": "Major Feature",
    "minor-feature": "Minor Feature",
    "bug-fix": "Bug Fix",
    "refactor": "Refactor",
    "architecture": "Architecture",
}


@dataclass(frozen=True)
class Classification:
    """Category, importance and tags derived for one commit.

    ``fallback`` is set when no rule matched and the category is the default.
    """

    category: Category
    importance: Importance
    tags: FrozenSet[str]
    fallback: bool = False

    def label(self, taxonomy: Taxonomy = Taxonomy.ONBOARDING) -> str:
        """Render the category in the requested taxonomy."""
        if taxonomy is Taxonomy.STRUCTURAL:
            if self.fallback:
                return "minor-feature"
            return _STRUCTURAL_PROJECTION[self.category]
        return self.category.value

    def display_label(self, taxonomy: Taxonomy = Taxonomy.ONBOARDING) -> str:
        """Human-readable name of ``label(taxonomy)``."""
        if taxonomy is Taxonomy.STRUCTURAL:
            return STRUCTURAL_LABELS[self.label(taxonomy)]
        return CATEGORY_LABELS[self.category]

    def to_dict(self, taxonomy: Taxonomy = Taxonomy.ONBOARDING) -> Dict[str, Any]:
        return {
            "type": self.label(taxonomy),
            "category": self.display_label(taxonomy),
            "importance": self.importance.value,
            "tags": sorted(self.tags),
        }


@dataclass(frozen=True)
class ClassifiedCommit:
    """A commit paired with its classification."""

    commit: CommitRecord
    classification: Classification

    def to_dict(self, taxonomy: Taxonomy = Taxonomy.ONBOARDING) -> Dict[str, Any]:
        return {**self.commit.to_dict(), **self.classification.to_dict(taxonomy)}
