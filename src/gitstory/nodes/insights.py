"""Insight aggregation over a set of classified commits.

Everything here is a pure function of its inputs: the same commits always
produce the same insights, whatever order they arrive in.
"""

from collections import Counter, defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from gitstory.types.classification import ClassifiedCommit, Taxonomy
from gitstory.types.insights import (
    ActivityEntry,
    ContributorProfile,
    ExpertContact,
    FocusArea,
    OnboardingNarrative,
    TimelineInsights,
)
from gitstory.types.repository import RepositoryMeta


def _chronological(commits: Iterable[ClassifiedCommit]) -> List[ClassifiedCommit]:
    return sorted(commits, key=lambda item: (item.commit.timestamp, item.commit.id))


def _ranked(counts: Dict[str, int]) -> List[Tuple[str, int]]:
    """Sort by count descending, then key ascending."""
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))


def percentage(count: int, total: int) -> int:
    """Share of ``total`` as a whole percent, rounding halves up; 0 for an empty total."""
    if total <= 0:
        return 0
    return (200 * count + total) // (2 * total)


def _contributor_profiles(commits: Sequence[ClassifiedCommit]) -> Dict[str, ContributorProfile]:
    names: Dict[str, str] = {}
    counts: Counter = Counter()
    tag_counts: Dict[str, Counter] = defaultdict(Counter)

    for item in commits:
        key = item.commit.author.identity
        names.setdefault(key, item.commit.author.name or key)
        counts[key] += 1
        tag_counts[key].update(item.classification.tags)

    return {
        key: ContributorProfile(
            identity=key,
            display_name=names[key],
            commit_count=count,
            tags=[tag for tag, _ in _ranked(dict(tag_counts[key]))],
        )
        for key, count in _ranked(dict(counts))
    }


def build_insights(
    commits: Iterable[ClassifiedCommit], taxonomy: Taxonomy = Taxonomy.ONBOARDING, recent_limit: int = 10
) -> TimelineInsights:
    """Compute timeline bounds, tallies, contributor profiles and recent activity."""
    ordered = _chronological(commits)

    category_counts = Counter(item.classification.label(taxonomy) for item in ordered)
    tag_frequency = Counter(tag for item in ordered for tag in item.classification.tags)
    profiles = _contributor_profiles(ordered)

    recent = [
        ActivityEntry(
            commit_id=item.commit.id,
            category=item.classification.label(taxonomy),
            timestamp=item.commit.timestamp,
            message=item.commit.message,
        )
        for item in reversed(ordered[-recent_limit:] if recent_limit > 0 else [])
    ]

    return TimelineInsights(
        total_commits=len(ordered),
        first_commit_time=ordered[0].commit.timestamp if ordered else None,
        last_commit_time=ordered[-1].commit.timestamp if ordered else None,
        distinct_contributor_count=len(profiles),
        category_counts=dict(_ranked(dict(category_counts))),
        contributor_profiles=profiles,
        tag_frequency=dict(_ranked(dict(tag_frequency))),
        recent_activity=recent,
    )


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}" if count == 1 else f"{count} {noun}s"


def _long_date(value) -> str:
    return f"{value:%B} {value.day}, {value.year}"


def project_story(meta: RepositoryMeta, insights: TimelineInsights) -> str:
    """Opening paragraph of the onboarding narrative.

    Without a known creation date the story is anchored on the oldest commit
    in the set instead.
    """
    commits = _plural(insights.total_commits, "commit")
    contributors = _plural(insights.distinct_contributor_count, "contributor")

    opening = None
    if meta.created_at is not None:
        opening = f"{meta.name} was created on {_long_date(meta.created_at)}"
    elif insights.first_commit_time is not None:
        opening = f"{meta.name} has history going back to {_long_date(insights.first_commit_time)}"

    if opening is not None:
        if meta.language:
            opening += f" and is written mostly in {meta.language}"
        return f"{opening}. This timeline covers {commits} from {contributors}."
    return f"This timeline of {meta.name} covers {commits} from {contributors}."


def build_onboarding(
    commits: Iterable[ClassifiedCommit],
    meta: RepositoryMeta,
    insights: Optional[TimelineInsights] = None,
    taxonomy: Taxonomy = Taxonomy.ONBOARDING,
    expert_count: int = 3,
    focus_count: int = 5,
) -> OnboardingNarrative:
    """Derive the project story, expert contacts and focus areas.

    Experts are ranked by commit count, ties broken by handle; focus areas by
    count, ties broken by category name.
    """
    insights = insights or build_insights(commits, taxonomy)

    experts = [
        ExpertContact(handle=profile.identity, expertise=profile.tags[:3], commit_count=profile.commit_count)
        for profile in sorted(insights.contributor_profiles.values(), key=lambda p: (-p.commit_count, p.identity))
    ][:expert_count]

    focus_areas = [
        FocusArea(category=category, count=count, percentage=percentage(count, insights.total_commits))
        for category, count in _ranked(insights.category_counts)[:focus_count]
    ]

    return OnboardingNarrative(
        project_story=project_story(meta, insights),
        expert_contacts=experts,
        focus_areas=focus_areas,
    )


def aggregate(
    commits: Iterable[ClassifiedCommit],
    meta: RepositoryMeta,
    taxonomy: Taxonomy = Taxonomy.ONBOARDING,
    recent_limit: int = 10,
    expert_count: int = 3,
    focus_count: int = 5,
) -> Tuple[TimelineInsights, OnboardingNarrative]:
    """Recompute insights and narrative from scratch for ``commits``."""
    commits = list(commits)
    insights = build_insights(commits, taxonomy, recent_limit)
    onboarding = build_onboarding(commits, meta, insights, taxonomy, expert_count, focus_count)
    return insights, onboarding
