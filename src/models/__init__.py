"""
Data models module.

Defines the scorable counter tuple and its scored counterpart.
"""

from src.models.scorable_item import (
    ContentKind,
    ScorableItem,
    ScoredItem,
    ensure_utc,
    parse_timestamp,
)

__all__ = [
    "ContentKind",
    "ScorableItem",
    "ScoredItem",
    "ensure_utc",
    "parse_timestamp",
]
