"""
Weekly best report assembly.

Turns pre-fetched resources and posts into the report served by the API
and written to the weekly digest:

    window filter -> score -> top N per kind -> contributors -> stats

Pure: no I/O, inputs are never mutated.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, List

from src.models.scorable_item import ContentKind, ScorableItem, ScoredItem
from src.scoring import (
    DEFAULT_FORMULA,
    ContributorScore,
    filter_by_window,
    make_scorer,
    rank_contributors,
    rank_items,
)


@dataclass
class WeeklyStats:
    """
    Aggregate numbers for the window.

    Attributes:
        new_resources: Resources created in the window.
        new_posts: Posts created in the window.
        active_users: Distinct authors among those items.
        total_engagement: Sum of scores of the reported top items.
    """
    new_resources: int = 0
    new_posts: int = 0
    active_users: int = 0
    total_engagement: float = 0

    def to_dict(self) -> dict:
        return {
            "newResources": self.new_resources,
            "newPosts": self.new_posts,
            "activeUsers": self.active_users,
            "totalEngagement": self.total_engagement,
        }


@dataclass
class WeeklyBestReport:
    """The weekly best snapshot."""
    week_start: datetime
    week_end: datetime
    best_resources: List[ScoredItem] = field(default_factory=list)
    best_posts: List[ScoredItem] = field(default_factory=list)
    top_contributors: List[ContributorScore] = field(default_factory=list)
    stats: WeeklyStats = field(default_factory=WeeklyStats)
    resource_formula: str = DEFAULT_FORMULA
    post_formula: str = DEFAULT_FORMULA

    @property
    def is_empty(self) -> bool:
        return not self.best_resources and not self.best_posts

    def to_dict(self) -> dict:
        """JSON shape served by GET /api/weekly-best and stored by the cron job."""
        return {
            "weekStart": self.week_start.isoformat(),
            "weekEnd": self.week_end.isoformat(),
            "bestResources": [s.to_dict() for s in self.best_resources],
            "bestPosts": [s.to_dict() for s in self.best_posts],
            "topContributors": [c.to_dict() for c in self.top_contributors],
            "stats": self.stats.to_dict(),
            "formulas": {
                "resource": self.resource_formula,
                "post": self.post_formula,
            },
        }


def build_weekly_best(
    resources: Iterable[ScorableItem],
    posts: Iterable[ScorableItem],
    week_start: datetime,
    week_end: datetime,
    limit: int = 5,
    resource_formula: str = DEFAULT_FORMULA,
    post_formula: str = DEFAULT_FORMULA,
    contributor_limit: int = 5,
) -> WeeklyBestReport:
    """
    Build the weekly best report from already-fetched items.

    Args:
        resources: Candidate resources.
        posts: Candidate posts.
        week_start: Window start (inclusive).
        week_end: Window end (inclusive).
        limit: Top-N per kind.
        resource_formula: Formula used for every resource in this report.
        post_formula: Formula used for every post in this report.
        contributor_limit: Number of contributors to include.

    Returns:
        WeeklyBestReport.

    Raises:
        ValueError: On unknown formula names or negative limits.
    """
    if limit < 0:
        raise ValueError(f"limit must be >= 0, got {limit}")

    resource_scorer = make_scorer(ContentKind.RESOURCE, resource_formula)
    post_scorer = make_scorer(ContentKind.POST, post_formula)

    windowed_resources = filter_by_window(resources, week_start, week_end)
    windowed_posts = filter_by_window(posts, week_start, week_end)

    ranked_resources = rank_items(windowed_resources, resource_scorer)
    ranked_posts = rank_items(windowed_posts, post_scorer)

    best_resources = ranked_resources[:limit]
    best_posts = ranked_posts[:limit]

    # Contributors are credited for everything they published in the window
    contributors = rank_contributors(ranked_resources + ranked_posts, contributor_limit)

    authors = {
        item.author_id
        for item in windowed_resources + windowed_posts
        if item.author_id
    }

    stats = WeeklyStats(
        new_resources=len(windowed_resources),
        new_posts=len(windowed_posts),
        active_users=len(authors),
        total_engagement=sum(s.score for s in best_resources) + sum(s.score for s in best_posts),
    )

    return WeeklyBestReport(
        week_start=week_start,
        week_end=week_end,
        best_resources=best_resources,
        best_posts=best_posts,
        top_contributors=contributors,
        stats=stats,
        resource_formula=resource_formula,
        post_formula=post_formula,
    )
