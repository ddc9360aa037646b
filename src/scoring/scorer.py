"""
Engagement scoring and ranking logic for Weekly Best.

Provides pure, side-effect-free functions to:
1. Normalize raw counters (missing/negative/garbage -> 0)
2. Compute an engagement score for a resource or a post
3. Rank a list of items and keep the top N

All functions are deterministic and do not mutate input data.
"""

from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional
import math
import sys

from src.models.scorable_item import ContentKind, ScorableItem, ScoredItem
from src.scoring.formulas import DEFAULT_FORMULA, SIGNALS, get_formula


ScoreFn = Callable[[ScorableItem], float]

# Ceiling for counters and scores; keeps float arithmetic and JSON finite
MAX_SCORE: float = sys.float_info.max


# =============================================================================
# Result Data Structures
# =============================================================================

@dataclass
class ScoringResult:
    """
    Breakdown of an engagement score.

    Attributes:
        score: Final score (sum of components).
        kind: ContentKind that was scored.
        formula: Name of the formula used.
        components: Signal name -> weighted contribution.
    """
    score: float
    kind: str
    formula: str
    components: dict[str, float]


# =============================================================================
# Counter Normalization
# =============================================================================

def normalize_count(value: Any) -> float:
    """
    Coerce a raw counter to a non-negative number.

    None, negative values, NaN/infinity, booleans and anything that is not
    numeric become 0. Numeric strings are accepted since some drivers
    return aggregates as text. Integers too large for a float are capped
    at MAX_SCORE.

    Returns:
        The counter as int when integral, otherwise float.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return 0
    if not isinstance(value, (int, float)):
        return 0
    if isinstance(value, int) and value > MAX_SCORE:
        return MAX_SCORE
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        if value.is_integer():
            value = int(value)
    return value if value > 0 else 0


def normalize_ratings(ratings: Optional[Iterable[Any]]) -> list[float]:
    """
    Keep only usable rating values.

    Non-numeric, non-finite and negative entries are dropped rather than
    counted as zero, so they do not drag the average down.
    """
    if not ratings:
        return []

    cleaned = []
    for value in ratings:
        if value is None or isinstance(value, bool):
            continue
        try:
            number = float(value)
        except (TypeError, ValueError, OverflowError):
            continue
        if math.isfinite(number) and number >= 0:
            cleaned.append(number)
    return cleaned


def average_rating(ratings: Optional[Iterable[Any]]) -> float:
    """
    Average of the usable ratings, 0.0 when there are none.
    """
    values = normalize_ratings(ratings)
    if not values:
        return 0.0
    return sum(values) / len(values)


def _signals(item: ScorableItem) -> dict[str, float]:
    """Extract normalized signal values from an item."""
    ratings = normalize_ratings(item.ratings)
    rating_volume = (sum(ratings) / len(ratings)) * len(ratings) if ratings else 0.0

    return {
        "views": normalize_count(item.view_count),
        "votes": normalize_count(item.vote_count),
        "comments": normalize_count(item.comment_count),
        "bookmarks": normalize_count(item.bookmark_count),
        "rating_volume": rating_volume,
    }


# =============================================================================
# Scoring Functions
# =============================================================================

def explain_score(item: ScorableItem, formula: str = DEFAULT_FORMULA) -> ScoringResult:
    """
    Score an item and return the per-signal breakdown.

    Signals are summed in a fixed order so repeated calls on identical
    input produce bit-identical results.

    Args:
        item: The item to score.
        formula: Formula name for the item's kind.

    Returns:
        ScoringResult with final score and components.

    Raises:
        ValueError: If the formula is unknown for the item's kind.
    """
    components = _weighted(item, get_formula(item.kind, formula))

    return ScoringResult(
        score=sum(components.values()),
        kind=item.kind,
        formula=formula,
        components=components,
    )


def score_resource(item: ScorableItem, formula: str = DEFAULT_FORMULA) -> float:
    """
    Compute the engagement score of a resource.

    Formulas:
        primary: bookmark_count * 2 + average_rating * rating_count
        weekly:  view_count * 1 + vote_count * 10 + bookmark_count * 5

    Example:
        >>> item = ScorableItem(id="r1", kind="resource", bookmark_count=3,
        ...                     ratings=[4, 5], view_count=100)
        >>> score_resource(item)
        15.0

    Args:
        item: The item to score. Its kind is not checked, so a post can
            be scored with resource weights if a caller really wants to.
        formula: "primary" or "weekly".

    Returns:
        Non-negative score.
    """
    return _score_with(item, ContentKind.RESOURCE, formula)


def score_post(item: ScorableItem, formula: str = DEFAULT_FORMULA) -> float:
    """
    Compute the engagement score of a post.

    Formulas:
        primary: vote_count * 2 + comment_count * 3
        weekly:  view_count * 1 + vote_count * 10 + comment_count * 5 + bookmark_count * 5

    Args:
        item: The item to score.
        formula: "primary" or "weekly".

    Returns:
        Non-negative score.
    """
    return _score_with(item, ContentKind.POST, formula)


def _weighted(item: ScorableItem, weights: dict[str, float]) -> dict[str, float]:
    # Fixed signal order keeps the float sum reproducible
    signals = _signals(item)
    return {name: signals[name] * weights[name] for name in SIGNALS if name in weights}


def _score_with(item: ScorableItem, kind: str, formula: str) -> float:
    return sum(_weighted(item, get_formula(kind, formula)).values())


def score_item(
    item: ScorableItem,
    resource_formula: str = DEFAULT_FORMULA,
    post_formula: str = DEFAULT_FORMULA,
) -> float:
    """
    Score an item with the formula configured for its kind.
    """
    if item.kind == ContentKind.POST:
        return score_post(item, post_formula)
    return score_resource(item, resource_formula)


def make_scorer(kind: str, formula: str = DEFAULT_FORMULA) -> ScoreFn:
    """
    Bind a kind and formula into a score function for rank_top_n.

    The formula name is validated up front so a typo fails at the call
    site rather than on the first item.
    """
    get_formula(kind, formula)

    if kind == ContentKind.POST:
        return lambda item: score_post(item, formula)
    return lambda item: score_resource(item, formula)


# =============================================================================
# Ranking
# =============================================================================

def _safe_score(value: Any) -> float:
    """
    Guard against score functions that return None, NaN or out-of-range values.

    NaN and garbage become 0. Infinite and overflowing scores are clamped
    to the largest float so they still rank by sign.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except OverflowError:
        return MAX_SCORE if value > 0 else -MAX_SCORE
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number):
        return 0.0
    if math.isinf(number):
        return MAX_SCORE if number > 0 else -MAX_SCORE
    return number


def _rank_key(scored: ScoredItem) -> tuple:
    # Highest score first, then newest, then items without a date, then id
    created = scored.item.created_at
    return (
        -scored.score,
        created is None,
        -created.timestamp() if created is not None else 0.0,
        str(scored.item.id),
    )


def rank_items(items: Iterable[ScorableItem], score_fn: ScoreFn) -> List[ScoredItem]:
    """
    Score and sort all items, highest first.

    Ties are broken by newer created_at first; items without created_at
    follow dated ones; remaining ties fall back to id ascending.
    """
    scored = [ScoredItem(item=item, score=_safe_score(score_fn(item))) for item in items]
    scored.sort(key=_rank_key)
    return scored


def rank_top_n(items: Iterable[ScorableItem], n: int, score_fn: ScoreFn) -> List[ScoredItem]:
    """
    Score items and return the n highest.

    The input is not modified; a new list of ScoredItem is returned.
    If n exceeds the number of items, all items are returned sorted.

    Args:
        items: Candidate items.
        n: Number of items to keep (>= 0).
        score_fn: Function mapping an item to its score.

    Returns:
        List of length min(n, len(items)) with non-increasing scores.

    Raises:
        ValueError: If n is negative.
    """
    if n < 0:
        raise ValueError(f"n must be >= 0, got {n}")

    return rank_items(items, score_fn)[:n]
