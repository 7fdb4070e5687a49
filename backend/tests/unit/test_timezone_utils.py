# backend/tests/unit/test_timezone_utils.py
from datetime import date, datetime, time, timezone

import pytest

from activityhub.core.timezone_utils import (
    business_day_of,
    get_business_timezone,
    local_slot_to_utc,
    sunday_based_weekday,
)

NEW_YORK = get_business_timezone("America/New_York")


class TestLocalSlotToUtc:
    def test_standard_time(self):
        assert local_slot_to_utc(date(2026, 1, 15), time(9, 0), NEW_YORK) == datetime(
            2026, 1, 15, 14, 0, tzinfo=timezone.utc
        )

    def test_daylight_time(self):
        assert local_slot_to_utc(date(2026, 7, 15), time(9, 0), NEW_YORK) == datetime(
            2026, 7, 15, 13, 0, tzinfo=timezone.utc
        )

    def test_nonexistent_time_on_spring_forward(self):
        # 02:30 does not exist on 2026-03-08; it lands an hour later on the wall clock
        assert local_slot_to_utc(date(2026, 3, 8), time(2, 30), NEW_YORK) == datetime(
            2026, 3, 8, 7, 30, tzinfo=timezone.utc
        )

    def test_ambiguous_time_on_fall_back_takes_standard_time(self):
        assert local_slot_to_utc(date(2026, 11, 1), time(1, 30), NEW_YORK) == datetime(
            2026, 11, 1, 6, 30, tzinfo=timezone.utc
        )

    def test_defaults_to_configured_timezone(self):
        assert local_slot_to_utc(date(2026, 3, 10), time(9, 0)) == datetime(
            2026, 3, 10, 9, 0, tzinfo=timezone.utc
        )


def test_business_day_of_crosses_midnight():
    johannesburg = get_business_timezone("Africa/Johannesburg")
    moment = datetime(2026, 3, 4, 23, 0, tzinfo=timezone.utc)
    assert business_day_of(moment, johannesburg) == date(2026, 3, 5)
    assert business_day_of(datetime(2026, 3, 4, 23, 0), johannesburg) == date(2026, 3, 5)


@pytest.mark.parametrize(
    "day, expected",
    [(date(2026, 3, 8), 0), (date(2026, 3, 9), 1), (date(2026, 3, 4), 3), (date(2026, 3, 14), 6)],
)
def test_sunday_based_weekday(day, expected):
    assert sunday_based_weekday(day) == expected
