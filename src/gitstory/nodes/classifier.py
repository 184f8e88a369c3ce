"""Rule-based commit categorization shared by both ingestion paths."""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Pattern, Sequence, Set, Tuple, TypedDict

from gitstory.types.base import CommitRecord
from gitstory.types.classification import Category, Classification, ClassifiedCommit, Importance


class CategoryConfig(TypedDict):
    """Keyword configuration for one category."""

    message_pattern: Pattern[str]
    path_keywords: Tuple[str, ...]
    tag: str
    importance: Importance


def _words(*alternatives: str) -> Pattern[str]:
    """Compile alternatives that only match whole words of a lower-cased message."""
    return re.compile(r"\b(?:" + "|".join(alternatives) + r")\b")


# Decision order: the first category whose rule matches wins.
COMMIT_CATEGORIES: Dict[Category, CategoryConfig] = {
    Category.INITIAL: {
        "message_pattern": _words(r"(?:initial|first) commit"),
        "path_keywords": (),
        "tag": "setup",
        "importance": Importance.HIGH,
    },
    Category.ARCHITECTURE: {
        "message_pattern": _words(r"migrat\w*", "architecture", "infrastructure", r"docker\w*", r"deploy\w*"),
        "path_keywords": ("docker", "config", "migration", "setup", "infra"),
        "tag": "architecture",
        "importance": Importance.HIGH,
    },
    Category.FEATURE: {
        "message_pattern": _words(
            r"feat(?:ure)?s?", r"add(?:s|ed|ing)?", r"implement\w*", r"launch\w*", r"release[sd]?", r"introduc\w*", "new"
        ),
        "path_keywords": (),
        "tag": "feature",
        "importance": Importance.HIGH,
    },
    Category.BUGFIX: {
        "message_pattern": _words(r"(?:hot)?fix\w*", r"bugs?", r"errors?", r"issues?", r"patch\w*", r"resolv\w*"),
        "path_keywords": (),
        "tag": "bugfix",
        "importance": Importance.MEDIUM,
    },
    Category.DOCS: {
        "message_pattern": _words(r"docs?", r"document\w*", r"readme\w*"),
        "path_keywords": ("readme",),
        "tag": "documentation",
        "importance": Importance.LOW,
    },
    Category.CONFIG: {
        "message_pattern": _words(r"config\w*"),
        "path_keywords": ("config",),
        "tag": "configuration",
        "importance": Importance.MEDIUM,
    },
    Category.TEST: {
        "message_pattern": _words(r"tests?", r"testing"),
        "path_keywords": ("test", "spec"),
        "tag": "testing",
        "importance": Importance.MEDIUM,
    },
    Category.REFACTOR: {
        "message_pattern": _words(
            r"refactor\w*", r"optimi[sz]\w*", r"improv\w*", r"clean\w*", r"restructur\w*", r"updat\w*", r"renam\w*"
        ),
        "path_keywords": (),
        "tag": "refactoring",
        "importance": Importance.LOW,
    },
}

MARKDOWN_EXTENSIONS = (".md", ".markdown", ".mdx")

MANIFEST_FILES = frozenset(
    {
        "package.json",
        "package-lock.json",
        "yarn.lock",
        "pnpm-lock.yaml",
        "tsconfig.json",
        "requirements.txt",
        "pyproject.toml",
        "setup.cfg",
        "pipfile",
        "cargo.toml",
        "go.mod",
        "gemfile",
        "pom.xml",
        "build.gradle",
        "composer.json",
    }
)

AREA_TAGS: Dict[str, Tuple[str, ...]] = {
    "api": ("api", "endpoint"),
    "ui": ("ui", "component"),
}

FALLBACK_CATEGORY = Category.FEATURE
FALLBACK_IMPORTANCE = Importance.LOW
FALLBACK_TAG = "general"


@dataclass(frozen=True)
class ClassificationRules:
    """Changed-file thresholds that promote a commit regardless of its message."""

    architecture_file_threshold: int = 15
    feature_file_threshold: int = 8
    categories: Optional[Dict[Category, CategoryConfig]] = None

    def config(self) -> Dict[Category, CategoryConfig]:
        return self.categories or COMMIT_CATEGORIES


DEFAULT_RULES = ClassificationRules()


def _normalize_paths(files: Iterable[Any]) -> List[str]:
    """Accept plain paths, FileChange-like objects or provider dicts."""
    paths = []
    for item in files or ():
        if item is None:
            continue
        if isinstance(item, str):
            path = item
        elif isinstance(item, dict):
            path = item.get("path") or item.get("filename") or ""
        else:
            path = getattr(item, "path", None) or getattr(item, "filename", None) or ""
        if path:
            paths.append(str(path).lower())
    return paths


def _basename(path: str) -> str:
    return path.rsplit("/", 1)[-1]


def _any_in(haystacks: Sequence[str], needles: Sequence[str]) -> bool:
    return any(needle in haystack for haystack in haystacks for needle in needles)


def _rule_matches(category: Category, config: CategoryConfig, message: str, paths: List[str], rules: ClassificationRules) -> bool:
    if config["message_pattern"].search(message):
        return True
    if _any_in(paths, config["path_keywords"]):
        return True

    if category is Category.ARCHITECTURE:
        return len(paths) > rules.architecture_file_threshold
    if category is Category.FEATURE:
        return len(paths) > rules.feature_file_threshold
    if category is Category.DOCS:
        return any(path.endswith(MARKDOWN_EXTENSIONS) for path in paths)
    if category is Category.CONFIG:
        return any(_basename(path) in MANIFEST_FILES for path in paths)
    return False


def matching_categories(message: str, files: Iterable[Any], rules: ClassificationRules = DEFAULT_RULES) -> List[Category]:
    """Return every category whose rule matches, in decision order."""
    message_lower = (message or "").lower()
    paths = _normalize_paths(files)
    return [
        category
        for category, config in rules.config().items()
        if _rule_matches(category, config, message_lower, paths, rules)
    ]


def _area_tags(paths: List[str]) -> Set[str]:
    return {tag for tag, needles in AREA_TAGS.items() if _any_in(paths, needles)}


def classify(message: str, files: Iterable[Any] = (), rules: ClassificationRules = DEFAULT_RULES) -> Classification:
    """Categorize a commit from its message and changed files.

    The winning category is the first matching rule; tags collect every rule
    that matched. A commit matching nothing falls back to a low-importance
    feature tagged ``general``.
    """
    files = list(files or ())
    matched = matching_categories(message, files, rules)
    config = rules.config()

    if not matched:
        return Classification(
            category=FALLBACK_CATEGORY,
            importance=FALLBACK_IMPORTANCE,
            tags=frozenset({FALLBACK_TAG}),
            fallback=True,
        )

    tags: Set[str] = {config[category]["tag"] for category in matched}
    if Category.FEATURE in matched:
        tags |= _area_tags(_normalize_paths(files))

    winner = matched[0]
    return Classification(category=winner, importance=config[winner]["importance"], tags=frozenset(tags))


def classify_commit(commit: CommitRecord, rules: ClassificationRules = DEFAULT_RULES) -> ClassifiedCommit:
    """Classify an ingested commit.

    Commits without file detail are classified from the message alone.
    """
    return ClassifiedCommit(commit=commit, classification=classify(commit.message, commit.file_changes, rules))


def classify_all(commits: Iterable[CommitRecord], rules: ClassificationRules = DEFAULT_RULES) -> List[ClassifiedCommit]:
    return [classify_commit(commit, rules) for commit in commits]
