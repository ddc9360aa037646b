"""
Tests for time window helpers.
"""

import pytest
from datetime import datetime, timedelta, timezone

from src.models.scorable_item import ContentKind, ScorableItem
from src.scoring import (
    WINDOW_ROLLING,
    WINDOW_WEEK,
    filter_by_window,
    resolve_window,
    rolling_window,
    week_bounds,
)
from tests.test_config import EXPECTED

pytestmark = pytest.mark.scoring


class TestWeekBounds:
    """Tests for week_bounds."""

    def test_wednesday(self, now):
        start, end = week_bounds(now)
        assert start == EXPECTED["window"]["week_start"]
        assert end == EXPECTED["window"]["week_end"]

    def test_monday_midnight_starts_its_own_week(self):
        monday = datetime(2025, 3, 10, tzinfo=timezone.utc)
        assert week_bounds(monday)[0] == monday

    def test_sunday_belongs_to_previous_monday(self):
        sunday = datetime(2025, 3, 16, 23, 0, tzinfo=timezone.utc)
        assert week_bounds(sunday)[0] == datetime(2025, 3, 10, tzinfo=timezone.utc)

    def test_offset_input_is_converted_first(self):
        """Monday 01:00 in UTC+9 is still Sunday in UTC."""
        kst = timezone(timedelta(hours=9))
        start, _ = week_bounds(datetime(2025, 3, 10, 1, 0, tzinfo=kst))
        assert start == datetime(2025, 3, 3, tzinfo=timezone.utc)

    def test_bounds_are_utc(self, now):
        start, end = week_bounds(now)
        assert start.tzinfo == timezone.utc
        assert end.tzinfo == timezone.utc

    def test_default_is_current_week(self):
        start, end = week_bounds()
        assert start <= datetime.now(timezone.utc) <= end


class TestRollingWindow:
    """Tests for rolling_window."""

    def test_seven_days(self, now):
        start, end = rolling_window(now, 7)
        assert end == now
        assert end - start == timedelta(days=7)

    def test_days_must_be_positive(self, now):
        with pytest.raises(ValueError):
            rolling_window(now, 0)


class TestResolveWindow:
    """Tests for resolve_window."""

    def test_week(self, now):
        assert resolve_window(WINDOW_WEEK, now) == week_bounds(now)

    def test_rolling(self, now):
        assert resolve_window(WINDOW_ROLLING, now, 3) == rolling_window(now, 3)

    def test_unknown_mode(self, now):
        with pytest.raises(ValueError, match="Unknown window mode"):
            resolve_window("month", now)


class TestFilterByWindow:
    """Tests for filter_by_window."""

    def item(self, id, created_at):
        return ScorableItem(id=id, kind=ContentKind.POST, created_at=created_at)

    def test_bounds_inclusive(self, now):
        start, end = week_bounds(now)
        items = [
            self.item("at_start", start),
            self.item("at_end", end),
            self.item("before", start - timedelta(microseconds=1)),
            self.item("after", end + timedelta(microseconds=1)),
        ]

        kept = filter_by_window(items, start, end)
        assert [i.id for i in kept] == ["at_start", "at_end"]

    def test_undated_items_dropped(self, now):
        start, end = week_bounds(now)
        assert filter_by_window([self.item("x", None)], start, end) == []

    def test_naive_bounds_accepted(self, now):
        kept = filter_by_window(
            [self.item("x", datetime(2025, 3, 11, tzinfo=timezone.utc))],
            datetime(2025, 3, 10),
            datetime(2025, 3, 12),
        )
        assert len(kept) == 1
