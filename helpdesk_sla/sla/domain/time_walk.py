"""
Business-Time Walk
==================

Pure date arithmetic for walking calendar days against business-hours
windows and holiday exclusions. No I/O.

All wall-clock reasoning (calendar day, day of week, minute of day, window
bounds) happens in the operational timezone passed in by the caller.
Durations are measured and added on absolute (UTC) time so that DST
transitions in the operational timezone never distort minute counts.
Naive datetimes are taken to be wall-clock times in the operational
timezone.
"""

from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterable, Optional, Sequence, Tuple

from helpdesk_sla.sla.domain.entities import (
    BusinessHoursWindow,
    HolidayEntry,
    TIME_STRING_PATTERN,
)


class TimeWalk:
    """
    Pure functions for business-time calculations.

    Stateless utility class: the SLA calculator composes these with the
    cached calendar configuration.
    """

    @staticmethod
    def parse_time_string(time_str: str) -> int:
        """
        Convert an "HH:MM" wall-clock string to minutes since midnight.

        Raises:
            ValueError: If the string is not a valid 24-hour time
        """
        if not TIME_STRING_PATTERN.match(time_str):
            raise ValueError(f"time must be HH:MM (24-hour format), got {time_str!r}")
        hours, minutes = time_str.split(":")
        return int(hours) * 60 + int(minutes)

    @staticmethod
    def to_local(moment: datetime, tz: tzinfo) -> datetime:
        """Express a datetime in the operational timezone."""
        if moment.tzinfo is None:
            return moment.replace(tzinfo=tz)
        return moment.astimezone(tz)

    @staticmethod
    def local_date(moment: datetime, tz: tzinfo) -> date:
        """Calendar day of a moment in the operational timezone."""
        return TimeWalk.to_local(moment, tz).date()

    @staticmethod
    def day_of_week(moment: datetime, tz: tzinfo) -> int:
        """Day of week with Sunday=0 .. Saturday=6."""
        return (TimeWalk.local_date(moment, tz).weekday() + 1) % 7

    @staticmethod
    def minute_of_day(moment: datetime, tz: tzinfo) -> int:
        """Wall-clock minutes since local midnight (seconds ignored)."""
        local = TimeWalk.to_local(moment, tz)
        return local.hour * 60 + local.minute

    @staticmethod
    def is_same_day(d1: datetime, d2: datetime, tz: tzinfo) -> bool:
        """Compare calendar days in the operational timezone."""
        return TimeWalk.local_date(d1, tz) == TimeWalk.local_date(d2, tz)

    @staticmethod
    def is_holiday(holidays: Iterable[HolidayEntry], moment: datetime, tz: tzinfo) -> bool:
        """True iff any holiday falls on the moment's local calendar day."""
        day = TimeWalk.local_date(moment, tz)
        return any(holiday.date == day for holiday in holidays)

    @staticmethod
    def at_minute_of_day(day: date, minutes: int, tz: tzinfo) -> datetime:
        """Instant on a local calendar day at the given minute offset."""
        return datetime(day.year, day.month, day.day, minutes // 60, minutes % 60, tzinfo=tz)

    @staticmethod
    def business_window_bounds(
        moment: datetime,
        start_minutes: int,
        end_minutes: int,
        tz: tzinfo
    ) -> Tuple[datetime, datetime]:
        """
        Construct the business window on the moment's local calendar day.

        Returns:
            Tuple of (window_start, window_end)
        """
        day = TimeWalk.local_date(moment, tz)
        return (
            TimeWalk.at_minute_of_day(day, start_minutes, tz),
            TimeWalk.at_minute_of_day(day, end_minutes, tz),
        )

    @staticmethod
    def start_of_next_day(moment: datetime, tz: tzinfo) -> datetime:
        """Local midnight of the calendar day after the moment."""
        next_day = TimeWalk.local_date(moment, tz) + timedelta(days=1)
        return TimeWalk.at_minute_of_day(next_day, 0, tz)

    @staticmethod
    def minutes_between(start: datetime, end: datetime) -> float:
        """Elapsed minutes on absolute time (negative if end precedes start)."""
        delta = end.astimezone(timezone.utc) - start.astimezone(timezone.utc)
        return delta.total_seconds() / 60

    @staticmethod
    def utc(moment: datetime) -> datetime:
        """
        Absolute instant of an aware datetime.

        Aware datetimes sharing one tzinfo compare by wall clock, which
        misorders the repeated hour of a DST fall-back. Compare these instead.
        """
        return moment.astimezone(timezone.utc)

    @staticmethod
    def add_minutes(moment: datetime, minutes: float, tz: tzinfo) -> datetime:
        """Add minutes on absolute time, returning a local datetime."""
        utc = TimeWalk.to_local(moment, tz).astimezone(timezone.utc)
        return (utc + timedelta(minutes=minutes)).astimezone(tz)

    @staticmethod
    def window_for_day(
        windows: Sequence[BusinessHoursWindow],
        day_of_week: int
    ) -> Optional[BusinessHoursWindow]:
        """First configured window for the day of week, if any."""
        for window in windows:
            if window.day_of_week == day_of_week:
                return window
        return None

    @staticmethod
    def is_open_window(window: Optional[BusinessHoursWindow]) -> bool:
        """True if the window opens for a positive span of time."""
        return window is not None and (
            TimeWalk.parse_time_string(window.start_time) < TimeWalk.parse_time_string(window.end_time)
        )

    @staticmethod
    def has_usable_window(windows: Sequence[BusinessHoursWindow]) -> bool:
        """
        True if some day of the week offers business time.

        Only the window window_for_day() picks for each day counts, so a
        shadowed window cannot make an otherwise closed week look open.
        """
        return any(
            TimeWalk.is_open_window(TimeWalk.window_for_day(windows, day))
            for day in range(7)
        )
