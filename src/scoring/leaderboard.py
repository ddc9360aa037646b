"""
Contributor leaderboard for Weekly Best.

Aggregates scored items per author so the weekly report can show who
produced the most engaging content.
"""

from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional

from src.models.scorable_item import ScoredItem
from src.scoring.scorer import MAX_SCORE


@dataclass
class ContributorScore:
    """One row of the contributor leaderboard."""
    user_id: str
    username: Optional[str]
    contribution_count: int
    total_score: float

    def to_dict(self) -> dict:
        return asdict(self)


def rank_contributors(scored_items: Iterable[ScoredItem], n: int = 5) -> List[ContributorScore]:
    """
    Rank authors by the total score of their items.

    Ordering: total_score desc, contribution_count desc, user_id asc
    (compared as text, so numeric and string ids can mix).
    Items without an author_id are ignored.

    Args:
        scored_items: Items already scored by the caller.
        n: Number of contributors to return (>= 0).

    Returns:
        Up to n ContributorScore entries.

    Raises:
        ValueError: If n is negative.
    """
    if n < 0:
        raise ValueError(f"n must be >= 0, got {n}")

    totals: Dict[str, ContributorScore] = {}

    for scored in scored_items:
        author_id = scored.item.author_id
        if not author_id:
            continue

        entry = totals.get(author_id)
        if entry is None:
            entry = ContributorScore(
                user_id=author_id,
                username=scored.item.author_name,
                contribution_count=0,
                total_score=0,
            )
            totals[author_id] = entry

        entry.contribution_count += 1
        entry.total_score = min(entry.total_score + scored.score, MAX_SCORE)
        if entry.username is None:
            entry.username = scored.item.author_name

    ranked = sorted(
        totals.values(),
        key=lambda c: (-c.total_score, -c.contribution_count, str(c.user_id)),
    )
    return ranked[:n]
