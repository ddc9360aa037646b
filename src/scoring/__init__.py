"""
Scoring module.

Scores resources and posts by engagement and ranks them.
"""

from src.scoring.formulas import (
    RESOURCE_FORMULAS,
    POST_FORMULAS,
    DEFAULT_FORMULA,
    get_formula,
    get_formula_names,
    get_candidate_selection,
)

from src.scoring.scorer import (
    normalize_count,
    normalize_ratings,
    average_rating,
    explain_score,
    score_resource,
    score_post,
    score_item,
    make_scorer,
    rank_items,
    rank_top_n,
    MAX_SCORE,
    ScoringResult,
)

from src.scoring.window import (
    WINDOW_WEEK,
    WINDOW_ROLLING,
    WINDOW_MODES,
    week_bounds,
    rolling_window,
    resolve_window,
    filter_by_window,
)

from src.scoring.leaderboard import (
    ContributorScore,
    rank_contributors,
)

__all__ = [
    # Formula configuration
    "RESOURCE_FORMULAS",
    "POST_FORMULAS",
    "DEFAULT_FORMULA",
    "get_formula",
    "get_formula_names",
    "get_candidate_selection",
    # Scoring functions
    "normalize_count",
    "normalize_ratings",
    "average_rating",
    "explain_score",
    "score_resource",
    "score_post",
    "score_item",
    "make_scorer",
    "rank_items",
    "rank_top_n",
    "MAX_SCORE",
    "ScoringResult",
    # Windows
    "WINDOW_WEEK",
    "WINDOW_ROLLING",
    "WINDOW_MODES",
    "week_bounds",
    "rolling_window",
    "resolve_window",
    "filter_by_window",
    # Leaderboard
    "ContributorScore",
    "rank_contributors",
]
