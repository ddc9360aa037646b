"""
Engagement formula configuration for Weekly Best.

This file is the single source of truth for how raw counters turn into a
ranking score. Each formula is a mapping of signal name -> weight, and the
score is the weighted sum of the (normalized) signals.

Signals:
    views          - view_count
    votes          - vote_count
    comments       - comment_count
    bookmarks      - bookmark_count
    rating_volume  - average rating * number of ratings

Two variants exist per kind and they are NOT interchangeable:

    primary - served by the weekly best endpoint
              resource: bookmarks*2 + avg_rating*rating_count
              post:     votes*2 + comments*3
    weekly  - used by the weekly best service listing
              resource: views*1 + votes*10 + bookmarks*5
              post:     views*1 + votes*10 + comments*5 + bookmarks*5

Every call site names the formula it uses; nothing mixes the two.

CUSTOMIZATION:

To add a formula:
    1. Add a new key to RESOURCE_FORMULAS and/or POST_FORMULAS
    2. Use only the signal names listed above
    3. Add the name to the CLI/web choices if it should be selectable
"""

from src.models.scorable_item import ContentKind


# =============================================================================
# Signals
# =============================================================================

SIGNALS: tuple[str, ...] = ("views", "votes", "comments", "bookmarks", "rating_volume")

DEFAULT_FORMULA: str = "primary"


# =============================================================================
# Formula Tables
# =============================================================================

RESOURCE_FORMULAS: dict[str, dict[str, float]] = {
    # Bookmarks show durable intent to return; rating volume weighted by
    # quality keeps a single 5-star rating from beating many ratings
    "primary": {
        "bookmarks": 2,
        "rating_volume": 1,
    },
    # Views are the weakest signal, explicit votes the strongest
    "weekly": {
        "views": 1,
        "votes": 10,
        "bookmarks": 5,
    },
}

POST_FORMULAS: dict[str, dict[str, float]] = {
    "primary": {
        "votes": 2,
        "comments": 3,
    },
    "weekly": {
        "views": 1,
        "votes": 10,
        "comments": 5,
        "bookmarks": 5,
    },
}

_FORMULAS_BY_KIND: dict[str, dict[str, dict[str, float]]] = {
    ContentKind.RESOURCE: RESOURCE_FORMULAS,
    ContentKind.POST: POST_FORMULAS,
}


# =============================================================================
# Candidate Selection
# =============================================================================

# The weekly listing only considers featured resources and published posts,
# most viewed first. Formulas not listed here take the newest rows unfiltered.
CANDIDATE_FILTERS: dict[str, dict[str, dict[str, object]]] = {
    ContentKind.RESOURCE: {"weekly": {"is_featured": True}},
    ContentKind.POST: {"weekly": {"is_published": True}},
}

CANDIDATE_ORDER: dict[str, str] = {
    "primary": "created_at",
    "weekly": "view_count",
}

DEFAULT_CANDIDATE_ORDER: str = "created_at"


def get_formula(kind: str, name: str = DEFAULT_FORMULA) -> dict[str, float]:
    """
    Get the signal weights of a named formula.

    Args:
        kind: ContentKind the formula applies to.
        name: Formula name ("primary" or "weekly").

    Returns:
        Copy of the signal -> weight mapping.

    Raises:
        ValueError: If the kind or formula name is unknown.
    """
    formulas = _FORMULAS_BY_KIND.get(kind)
    if formulas is None:
        raise ValueError(f"Unknown content kind: {kind!r}")
    if name not in formulas:
        raise ValueError(
            f"Unknown {kind} formula {name!r}; expected one of {sorted(formulas)}"
        )
    return dict(formulas[name])


def get_formula_names(kind: str) -> list[str]:
    """
    Get the formula names available for a kind.

    Returns:
        Sorted list of formula names (empty for an unknown kind).
    """
    return sorted(_FORMULAS_BY_KIND.get(kind, {}))


def get_candidate_selection(kind: str, name: str = DEFAULT_FORMULA) -> tuple[dict[str, object], str]:
    """
    Get the row filters and ordering used to fetch candidates for a formula.

    Unknown names get the default selection; the formula lookup itself
    reports them when scoring starts.

    Returns:
        (equality filters, order_by column). The filters are a copy.
    """
    filters = CANDIDATE_FILTERS.get(kind, {}).get(name, {})
    return dict(filters), CANDIDATE_ORDER.get(name, DEFAULT_CANDIDATE_ORDER)
