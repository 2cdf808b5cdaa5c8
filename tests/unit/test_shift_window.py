"""Recurring shift window arithmetic and template validation."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

import pytest

from levelboard.db.models import ListVariant, RecurringShift, Weekday
from levelboard.shifts.recurring_service import create_template, shift_window


def _template(start_hour: int, duration: int) -> RecurringShift:
    return RecurringShift(
        list_variant=ListVariant.CLASSIC.value,
        user_id=uuid.uuid4(),
        weekday=Weekday.MONDAY.value,
        start_hour=start_hour,
        duration=duration,
        target_count=10,
    )


class TestShiftWindow:
    def test_window_is_utc_on_the_given_day(self):
        start, end = shift_window(_template(9, 4), date(2026, 10, 19))
        assert start == datetime(2026, 10, 19, 9, tzinfo=timezone.utc)
        assert end == datetime(2026, 10, 19, 13, tzinfo=timezone.utc)

    def test_window_may_cross_midnight(self):
        start, end = shift_window(_template(22, 6), date(2026, 10, 19))
        assert start.date() == date(2026, 10, 19)
        assert end == datetime(2026, 10, 20, 4, tzinfo=timezone.utc)


class TestWeekday:
    def test_from_index_matches_date_weekday(self):
        # 2026-10-19 is a Monday
        assert Weekday.from_index(date(2026, 10, 19).weekday()) is Weekday.MONDAY
        assert Weekday.from_index(date(2026, 10, 25).weekday()) is Weekday.SUNDAY


class TestTemplateValidation:
    """Validation runs before anything touches the session."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("start_hour", "duration", "target", "message"),
        [
            (24, 4, 10, "start_hour"),
            (-1, 4, 10, "start_hour"),
            (9, 0, 10, "duration"),
            (9, 4, 0, "target_count"),
        ],
    )
    async def test_rejects_out_of_range(self, start_hour, duration, target, message):
        with pytest.raises(ValueError, match=message):
            await create_template(
                None, ListVariant.CLASSIC, uuid.uuid4(), Weekday.MONDAY, start_hour, duration, target,
            )
