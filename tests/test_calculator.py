"""
Tests for the SLA calculator facade.

Calendar: Mon-Fri 08:00-17:00 Asia/Jakarta, clock fixed at Monday
2025-07-07 07:00 (see conftest).
"""

import asyncio
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from helpdesk_sla.core import NoBusinessHoursConfiguredException, ValidationException
from helpdesk_sla.sla.application import SLACalculator
from helpdesk_sla.sla.domain import BusinessHoursWindow, HolidayEntry, SLACalculationOptions
from tests.conftest import FakeClock, InMemoryCalendarRepository, jkt, weekday_windows

WALL_CLOCK = SLACalculationOptions(timezone="Asia/Jakarta", business_hours_only=False)


class TestDueDateScenarios:
    """Reference scenarios for the due-date walk."""

    @pytest.mark.asyncio
    async def test_full_business_day_from_monday_morning(self, calculator):
        result = await calculator.calculate_sla_due_date(jkt(2025, 7, 7, 9), 480)

        assert result.due_date == jkt(2025, 7, 7, 17)
        assert result.holidays_skipped == ()

    @pytest.mark.asyncio
    async def test_friday_afternoon_rolls_over_weekend(self, calculator):
        result = await calculator.calculate_sla_due_date(jkt(2025, 7, 11, 16), 120)

        assert result.due_date == jkt(2025, 7, 14, 9)
        # Weekend days have no window; they are not holidays
        assert result.holidays_skipped == ()

    @pytest.mark.asyncio
    async def test_holiday_is_skipped_and_reported(self, calculator, repository):
        repository.holidays.append(HolidayEntry(date=date(2025, 7, 9), name="Company day"))

        result = await calculator.calculate_sla_due_date(jkt(2025, 7, 8, 16), 120)

        # 60 minutes on Tuesday, none on Wednesday, 60 on Thursday
        assert result.due_date == jkt(2025, 7, 10, 9)
        assert result.holidays_skipped == ("2025-07-09",)

    @pytest.mark.asyncio
    async def test_wall_clock_mode_ignores_calendar(self, calculator, repository):
        repository.holidays.append(HolidayEntry(date=date(2025, 7, 12)))
        start = jkt(2025, 7, 11, 16)

        result = await calculator.calculate_sla_due_date(start, 120, WALL_CLOCK)

        assert result.due_date == start + timedelta(minutes=120)
        assert result.holidays_skipped == ()
        assert result.is_currently_in_business_hours is True
        assert result.next_business_hour_start is None

    @pytest.mark.asyncio
    async def test_wall_clock_mode_needs_no_business_hours(self, clock):
        calculator = SLACalculator(InMemoryCalendarRepository(), clock=clock)
        start = jkt(2025, 7, 7, 9)

        result = await calculator.calculate_sla_due_date(start, 30, WALL_CLOCK)

        assert result.due_date == jkt(2025, 7, 7, 9, 30)


class TestDueDateWalk:
    """Edge cases of the due-date walk."""

    @pytest.mark.asyncio
    async def test_start_before_window_begins_at_open(self, calculator):
        result = await calculator.calculate_sla_due_date(jkt(2025, 7, 7, 6), 60)
        assert result.due_date == jkt(2025, 7, 7, 9)

    @pytest.mark.asyncio
    async def test_start_after_close_moves_to_next_day(self, calculator):
        result = await calculator.calculate_sla_due_date(jkt(2025, 7, 7, 18), 60)
        assert result.due_date == jkt(2025, 7, 8, 9)

    @pytest.mark.asyncio
    async def test_start_on_weekend(self, calculator):
        result = await calculator.calculate_sla_due_date(jkt(2025, 7, 12, 10), 30)
        assert result.due_date == jkt(2025, 7, 14, 8, 30)

    @pytest.mark.asyncio
    async def test_zero_minutes_lands_on_next_business_instant(self, calculator):
        assert (await calculator.calculate_sla_due_date(jkt(2025, 7, 7, 10), 0)).due_date == jkt(2025, 7, 7, 10)
        assert (await calculator.calculate_sla_due_date(jkt(2025, 7, 7, 18), 0)).due_date == jkt(2025, 7, 8, 8)

    @pytest.mark.asyncio
    async def test_budget_exactly_exhausted_at_close(self, calculator):
        result = await calculator.calculate_sla_due_date(jkt(2025, 7, 7, 8), 540)
        assert result.due_date == jkt(2025, 7, 7, 17)

    @pytest.mark.asyncio
    async def test_multi_week_budget(self, calculator):
        # Ten full business days from Monday open ends Friday close a week later
        result = await calculator.calculate_sla_due_date(jkt(2025, 7, 7, 8), 540 * 10)
        assert result.due_date == jkt(2025, 7, 18, 17)

    @pytest.mark.asyncio
    async def test_naive_start_is_operational_wall_clock(self, calculator):
        result = await calculator.calculate_sla_due_date(datetime(2025, 7, 7, 9), 480)
        assert result.due_date == jkt(2025, 7, 7, 17)

    @pytest.mark.asyncio
    async def test_department_scope_uses_its_own_windows(self, calculator, repository):
        repository.business_hours.extend(weekday_windows("10:00", "12:00", department_id=1))
        options = SLACalculationOptions(department_id=1, timezone="Asia/Jakarta")

        result = await calculator.calculate_sla_due_date(jkt(2025, 7, 7, 9), 180, options)

        # 120 minutes on Monday, 60 more on Tuesday
        assert result.due_date == jkt(2025, 7, 8, 11)

    @pytest.mark.asyncio
    async def test_department_holiday_applies_only_to_department(self, calculator, repository):
        repository.business_hours.extend(weekday_windows(department_id=1))
        repository.holidays.append(HolidayEntry(date=date(2025, 7, 8), department_id=1))
        dept = SLACalculationOptions(department_id=1, timezone="Asia/Jakarta")

        scoped = await calculator.calculate_sla_due_date(jkt(2025, 7, 7, 17), 60, dept)
        unscoped = await calculator.calculate_sla_due_date(jkt(2025, 7, 7, 17), 60)

        assert scoped.due_date == jkt(2025, 7, 9, 9)
        assert scoped.holidays_skipped == ("2025-07-08",)
        assert unscoped.due_date == jkt(2025, 7, 8, 9)

    @pytest.mark.asyncio
    async def test_daylight_saving_zone(self):
        new_york = ZoneInfo("America/New_York")
        repository = InMemoryCalendarRepository()
        repository.business_hours.extend(weekday_windows(timezone="America/New_York"))
        calculator = SLACalculator(
            repository,
            default_timezone="America/New_York",
            clock=FakeClock(datetime(2025, 3, 6, 12, 0, tzinfo=new_york))
        )

        # Friday before the spring-forward Sunday
        result = await calculator.calculate_sla_due_date(
            datetime(2025, 3, 7, 16, 0, tzinfo=new_york), 120
        )

        assert result.due_date == datetime(2025, 3, 10, 9, 0, tzinfo=new_york)

    @pytest.mark.asyncio
    async def test_repeated_hour_of_fall_back(self):
        # 05:30Z is 01:30 EDT and 06:10Z is 01:10 EST on 2025-11-02
        repository = InMemoryCalendarRepository()
        repository.business_hours.append(
            BusinessHoursWindow(day_of_week=0, start_time="00:00", end_time="23:59", timezone="America/New_York")
        )
        calculator = SLACalculator(
            repository,
            default_timezone="America/New_York",
            clock=FakeClock(datetime(2025, 11, 1, 12, 0, tzinfo=timezone.utc))
        )
        start = datetime(2025, 11, 2, 5, 30, tzinfo=timezone.utc)
        end = datetime(2025, 11, 2, 6, 10, tzinfo=timezone.utc)
        wall_clock = SLACalculationOptions(timezone="America/New_York", business_hours_only=False)

        assert await calculator.calculate_business_minutes_between(start, end, wall_clock) == 40
        assert await calculator.calculate_business_minutes_between(start, end) == 40
        assert await calculator.calculate_business_minutes_between(end, start, wall_clock) == 0

    @pytest.mark.asyncio
    async def test_negative_minutes_rejected(self, calculator):
        with pytest.raises(ValidationException):
            await calculator.calculate_sla_due_date(jkt(2025, 7, 7, 9), -1)


class TestNoBusinessHours:
    """Test the fatal missing-configuration path."""

    @pytest.mark.asyncio
    async def test_scope_without_windows_raises(self, calculator):
        options = SLACalculationOptions(department_id=99, timezone="Asia/Jakarta")

        with pytest.raises(NoBusinessHoursConfiguredException) as exc_info:
            await calculator.calculate_sla_due_date(jkt(2025, 7, 7, 9), 60, options)

        assert exc_info.value.department_id == 99
        assert exc_info.value.message == "No business hours configuration found"

    @pytest.mark.asyncio
    async def test_zero_length_windows_raise(self, clock):
        repository = InMemoryCalendarRepository()
        repository.business_hours.append(
            BusinessHoursWindow(day_of_week=1, start_time="09:00", end_time="09:00")
        )
        calculator = SLACalculator(repository, clock=clock)

        with pytest.raises(NoBusinessHoursConfiguredException):
            await calculator.calculate_sla_due_date(jkt(2025, 7, 7, 9), 60)

    @pytest.mark.asyncio
    async def test_shadowed_open_window_does_not_count(self, clock):
        # Only the first window of a day is used, so Monday stays closed
        repository = InMemoryCalendarRepository()
        repository.business_hours.extend([
            BusinessHoursWindow(day_of_week=1, start_time="09:00", end_time="09:00"),
            BusinessHoursWindow(day_of_week=1, start_time="08:00", end_time="17:00"),
        ])
        calculator = SLACalculator(repository, clock=clock)

        with pytest.raises(NoBusinessHoursConfiguredException):
            await asyncio.wait_for(calculator.calculate_sla_due_date(jkt(2025, 7, 7, 9), 60), timeout=3)

    @pytest.mark.asyncio
    async def test_other_operations_degrade_without_windows(self, clock):
        calculator = SLACalculator(InMemoryCalendarRepository(), clock=clock)

        assert await calculator.calculate_business_minutes_between(jkt(2025, 7, 7, 9), jkt(2025, 7, 8, 9)) == 0
        assert await calculator.is_currently_in_business_hours(jkt(2025, 7, 7, 9)) is False
        assert await calculator.get_next_business_hour_start(jkt(2025, 7, 7, 9)) is None


class TestDueDateProperties:
    """Ordering and stability properties of due dates."""

    @pytest.mark.asyncio
    async def test_idempotent(self, calculator, repository):
        repository.holidays.append(HolidayEntry(date=date(2025, 7, 9)))
        first = await calculator.calculate_sla_due_date(jkt(2025, 7, 8, 11), 1000)
        second = await calculator.calculate_sla_due_date(jkt(2025, 7, 8, 11), 1000)

        assert first.due_date == second.due_date
        assert first.holidays_skipped == second.holidays_skipped

    @pytest.mark.asyncio
    async def test_monotonic_in_budget(self, calculator, repository):
        repository.holidays.append(HolidayEntry(date=date(2025, 7, 9)))
        start = jkt(2025, 7, 8, 15, 30)

        due_dates = [
            (await calculator.calculate_sla_due_date(start, minutes)).due_date
            for minutes in (0, 1, 90, 91, 540, 1000, 2500, 6000)
        ]

        assert due_dates == sorted(due_dates)

    @pytest.mark.asyncio
    async def test_holiday_pushes_due_date_past_wall_clock(self, calculator, repository):
        repository.holidays.append(HolidayEntry(date=date(2025, 7, 8)))
        start = jkt(2025, 7, 7, 16)

        naive = await calculator.calculate_sla_due_date(start, 1440, WALL_CLOCK)
        business = await calculator.calculate_sla_due_date(start, 1440)

        assert business.due_date > naive.due_date
        assert "2025-07-08" in business.holidays_skipped

    @pytest.mark.asyncio
    async def test_remaining_minutes_never_negative(self, calculator):
        # Due 2025-07-01 10:00, long before the clock's now
        result = await calculator.calculate_sla_due_date(jkt(2025, 7, 1, 9), 60)

        assert result.is_overdue is True
        assert result.business_minutes_remaining == 0
        assert result.total_minutes_remaining == 0


class TestResultFields:
    """Test the now-relative fields of the result."""

    @pytest.mark.asyncio
    async def test_fields_relative_to_clock(self, calculator):
        # Clock: Monday 07:00, due Monday 17:00
        result = await calculator.calculate_sla_due_date(jkt(2025, 7, 7, 9), 480)

        assert result.is_overdue is False
        assert result.total_minutes_remaining == 600
        assert result.business_minutes_remaining == 540
        assert result.is_currently_in_business_hours is False
        assert result.next_business_hour_start == jkt(2025, 7, 7, 8)

    @pytest.mark.asyncio
    async def test_to_dict_uses_iso_strings(self, calculator):
        result = await calculator.calculate_sla_due_date(jkt(2025, 7, 7, 9), 480)
        data = result.to_dict()

        assert data["due_date"] == "2025-07-07T17:00:00+07:00"
        assert data["holidays_skipped"] == []


class TestBusinessMinutesBetween:
    """Test elapsed business minutes."""

    @pytest.mark.asyncio
    async def test_within_one_day(self, calculator):
        assert await calculator.calculate_business_minutes_between(jkt(2025, 7, 7, 9), jkt(2025, 7, 7, 17)) == 480

    @pytest.mark.asyncio
    async def test_clips_to_window(self, calculator):
        assert await calculator.calculate_business_minutes_between(jkt(2025, 7, 7, 6), jkt(2025, 7, 7, 20)) == 540

    @pytest.mark.asyncio
    async def test_over_weekend(self, calculator):
        assert await calculator.calculate_business_minutes_between(jkt(2025, 7, 11, 16), jkt(2025, 7, 14, 9)) == 120

    @pytest.mark.asyncio
    async def test_excludes_holidays(self, calculator, repository):
        repository.holidays.append(HolidayEntry(date=date(2025, 7, 8)))
        assert await calculator.calculate_business_minutes_between(jkt(2025, 7, 7, 8), jkt(2025, 7, 9, 17)) == 1080

    @pytest.mark.asyncio
    async def test_reversed_or_equal_range_is_zero(self, calculator):
        assert await calculator.calculate_business_minutes_between(jkt(2025, 7, 7, 17), jkt(2025, 7, 7, 9)) == 0
        assert await calculator.calculate_business_minutes_between(jkt(2025, 7, 7, 9), jkt(2025, 7, 7, 9)) == 0

    @pytest.mark.asyncio
    async def test_wall_clock_mode(self, calculator):
        minutes = await calculator.calculate_business_minutes_between(
            jkt(2025, 7, 11, 16), jkt(2025, 7, 14, 9), WALL_CLOCK
        )
        assert minutes == 65 * 60

    @pytest.mark.asyncio
    async def test_agrees_with_due_date(self, calculator, repository):
        repository.holidays.append(HolidayEntry(date=date(2025, 7, 9)))
        start = jkt(2025, 7, 8, 10, 15)

        result = await calculator.calculate_sla_due_date(start, 1234)

        assert await calculator.calculate_business_minutes_between(start, result.due_date) == 1234


class TestBusinessHoursCheck:
    """Test the in-business-hours predicate."""

    @pytest.mark.asyncio
    async def test_window_start_inclusive_end_exclusive(self, calculator):
        assert await calculator.is_currently_in_business_hours(jkt(2025, 7, 7, 8)) is True
        assert await calculator.is_currently_in_business_hours(jkt(2025, 7, 7, 16, 59)) is True
        assert await calculator.is_currently_in_business_hours(jkt(2025, 7, 7, 17)) is False
        assert await calculator.is_currently_in_business_hours(jkt(2025, 7, 7, 7, 59)) is False

    @pytest.mark.asyncio
    async def test_weekend_and_holiday(self, calculator, repository):
        repository.holidays.append(HolidayEntry(date=date(2025, 7, 8)))
        assert await calculator.is_currently_in_business_hours(jkt(2025, 7, 12, 10)) is False
        assert await calculator.is_currently_in_business_hours(jkt(2025, 7, 8, 10)) is False

    @pytest.mark.asyncio
    async def test_defaults_to_now(self, calculator, clock):
        assert await calculator.is_currently_in_business_hours() is False
        clock.advance(hours=2)
        assert await calculator.is_currently_in_business_hours() is True


class TestNextBusinessHourStart:
    """Test the next-window search."""

    @pytest.mark.asyncio
    async def test_later_today(self, calculator):
        assert await calculator.get_next_business_hour_start(jkt(2025, 7, 7, 7)) == jkt(2025, 7, 7, 8)

    @pytest.mark.asyncio
    async def test_strictly_after_from_date(self, calculator):
        assert await calculator.get_next_business_hour_start(jkt(2025, 7, 7, 8)) == jkt(2025, 7, 8, 8)
        assert await calculator.get_next_business_hour_start(jkt(2025, 7, 7, 12)) == jkt(2025, 7, 8, 8)

    @pytest.mark.asyncio
    async def test_over_weekend_and_holiday(self, calculator, repository):
        repository.holidays.append(HolidayEntry(date=date(2025, 7, 14)))
        assert await calculator.get_next_business_hour_start(jkt(2025, 7, 11, 18)) == jkt(2025, 7, 15, 8)

    @pytest.mark.asyncio
    async def test_none_beyond_lookahead(self, calculator, repository, clock):
        for offset in range(12):
            repository.holidays.append(HolidayEntry(date=date(2025, 7, 7) + timedelta(days=offset)))

        # Monday 2025-07-21 is the fifteenth day counting from the 7th
        assert await calculator.get_next_business_hour_start(jkt(2025, 7, 7, 7)) is None

        longer = SLACalculator(repository, lookahead_days=15, default_timezone="Asia/Jakarta", clock=clock)
        assert await longer.get_next_business_hour_start(jkt(2025, 7, 7, 7)) == jkt(2025, 7, 21, 8)

    @pytest.mark.asyncio
    async def test_zero_lookahead_is_kept(self, repository, clock):
        calculator = SLACalculator(repository, lookahead_days=0, default_timezone="Asia/Jakarta", clock=clock)
        assert await calculator.get_next_business_hour_start(jkt(2025, 7, 7, 7)) is None
