"""
Time window helpers for Weekly Best.

Two windows are supported:
- Calendar week: Monday 00:00 to Sunday 23:59:59.999999 (UTC)
- Rolling window: the last N days up to now

created_at only decides window membership and tie-breaks; it never
enters the score itself.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple

from src.models.scorable_item import ScorableItem, ensure_utc


WINDOW_WEEK = "week"
WINDOW_ROLLING = "rolling"
WINDOW_MODES = (WINDOW_WEEK, WINDOW_ROLLING)


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    return ensure_utc(now)


def week_bounds(now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """
    Start and end of the calendar week containing now.

    Weeks start on Monday.

    Args:
        now: Reference time (for testing). Defaults to current UTC time.

    Returns:
        Tuple of (week_start, week_end), both inclusive.
    """
    now = _now(now)
    start = (now - timedelta(days=now.weekday())).replace(
        hour=0, minute=0, second=0, microsecond=0
    )
    end = start + timedelta(days=7) - timedelta(microseconds=1)
    return start, end


def rolling_window(now: Optional[datetime] = None, days: int = 7) -> Tuple[datetime, datetime]:
    """
    The last `days` days up to now.

    Raises:
        ValueError: If days is less than 1.
    """
    if days < 1:
        raise ValueError(f"days must be at least 1, got {days}")
    now = _now(now)
    return now - timedelta(days=days), now


def resolve_window(
    mode: str = WINDOW_WEEK,
    now: Optional[datetime] = None,
    days: int = 7,
) -> Tuple[datetime, datetime]:
    """
    Resolve a window mode name to concrete bounds.

    Raises:
        ValueError: If mode is unknown.
    """
    if mode == WINDOW_WEEK:
        return week_bounds(now)
    if mode == WINDOW_ROLLING:
        return rolling_window(now, days)
    raise ValueError(f"Unknown window mode {mode!r}; expected one of {WINDOW_MODES}")


def filter_by_window(
    items: Iterable[ScorableItem],
    start: datetime,
    end: datetime,
) -> List[ScorableItem]:
    """
    Keep items created within [start, end].

    Items without created_at cannot be placed in a window and are dropped.
    Input order is preserved.
    """
    start = ensure_utc(start)
    end = ensure_utc(end)
    return [
        item for item in items
        if item.created_at is not None and start <= item.created_at <= end
    ]
