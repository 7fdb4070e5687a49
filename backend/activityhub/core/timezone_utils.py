"""
Business timezone helpers.

Recurring slot times ("09:00") are wall-clock times in
``settings.business_timezone``; everything persisted is UTC.
"""

from datetime import date, datetime, time
from typing import Optional

import pytz
from pytz.tzinfo import BaseTzInfo

from .config import settings


def get_business_timezone(name: Optional[str] = None) -> BaseTzInfo:
    return pytz.timezone(name or settings.business_timezone)


def local_slot_to_utc(day: date, slot_time: time, tz: Optional[BaseTzInfo] = None) -> datetime:
    """
    Convert a local wall-clock slot on ``day`` to an aware UTC datetime.

    pytz's ``localize`` resolves DST: an ambiguous time takes standard time and a
    non-existent time is shifted forward by the DST gap.
    """
    zone = tz or get_business_timezone()
    local = zone.normalize(zone.localize(datetime.combine(day, slot_time), is_dst=False))
    return local.astimezone(pytz.UTC)


def business_day_of(moment: datetime, tz: Optional[BaseTzInfo] = None) -> date:
    """Calendar day of ``moment`` in the business timezone."""
    zone = tz or get_business_timezone()
    if moment.tzinfo is None:
        moment = pytz.UTC.localize(moment)
    return moment.astimezone(zone).date()


def sunday_based_weekday(day: date) -> int:
    """Weekday index with 0 = Sunday ... 6 = Saturday."""
    return (day.weekday() + 1) % 7
