"""
SLA Application Services
=========================

Application services orchestrate business logic and coordinate between
domain objects and repositories.

Following SOLID principles:
- Single Responsibility: the calculator computes, the admin service writes
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from helpdesk_sla.config import settings
from helpdesk_sla.core import NoBusinessHoursConfiguredException, ValidationException
from helpdesk_sla.sla.domain import (
    BusinessHoursWindow,
    HolidayEntry,
    SLACalculationOptions,
    SLACalculationResult,
    TimeWalk,
)
from helpdesk_sla.sla.application.cache import CalendarConfigCache
from helpdesk_sla.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IBusinessCalendarRepository(ABC):
    """Read access to business-hours and holiday configuration."""

    @abstractmethod
    async def fetch_active_business_hours(
        self,
        department_id: Optional[int],
        unit_id: Optional[int]
    ) -> List[BusinessHoursWindow]:
        """Active windows whose scope exactly matches (department_id, unit_id)."""

    @abstractmethod
    async def fetch_active_holidays(
        self,
        department_id: Optional[int],
        unit_id: Optional[int],
        start: date,
        end: date
    ) -> List[HolidayEntry]:
        """Active department, unit and global holidays dated within [start, end]."""


class IBusinessCalendarAdminRepository(IBusinessCalendarRepository):
    """Administrative writes on business-hours and holiday configuration."""

    @abstractmethod
    async def create_business_hours(self, window: BusinessHoursWindow) -> BusinessHoursWindow:
        """Create a window; rejects a second active window for the same scope and day."""

    @abstractmethod
    async def create_business_hours_bulk(self, windows: List[BusinessHoursWindow]) -> int:
        """Create windows, skipping days that already have an active window."""

    @abstractmethod
    async def list_business_hours(
        self,
        department_id: Optional[int] = None,
        unit_id: Optional[int] = None
    ) -> List[BusinessHoursWindow]:
        """List active windows, optionally filtered by scope."""

    @abstractmethod
    async def get_business_hours(self, window_id: int) -> BusinessHoursWindow:
        """A window by id, active or not."""

    @abstractmethod
    async def update_business_hours(self, window_id: int, changes: Dict[str, Any]) -> BusinessHoursWindow:
        """Apply field changes; rejects moving or reactivating onto a day the scope already has."""

    @abstractmethod
    async def deactivate_business_hours(self, window_id: int) -> None:
        """Mark a window inactive."""

    @abstractmethod
    async def create_holiday(self, holiday: HolidayEntry) -> HolidayEntry:
        """Create a holiday entry."""

    @abstractmethod
    async def create_holidays_bulk(self, holidays: List[HolidayEntry]) -> int:
        """Create several holiday entries."""

    @abstractmethod
    async def get_holiday(self, holiday_id: int) -> HolidayEntry:
        """A holiday by id, active or not."""

    @abstractmethod
    async def update_holiday(self, holiday_id: int, changes: Dict[str, Any]) -> HolidayEntry:
        """Apply field changes to a holiday."""

    @abstractmethod
    async def list_holidays(
        self,
        department_id: Optional[int] = None,
        unit_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None
    ) -> List[HolidayEntry]:
        """List active holidays, optionally filtered by scope and date range."""

    @abstractmethod
    async def deactivate_holiday(self, holiday_id: int) -> None:
        """Mark a holiday inactive."""


# ========== Application Services ==========

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SLACalculator:
    """
    Business-time SLA calculator.

    Constructed once by the host application and shared by every caller;
    the instance owns the calendar configuration cache, so sharing it is
    what makes the cache effective.
    """

    def __init__(
        self,
        repository: IBusinessCalendarRepository,
        cache_ttl_seconds: Optional[float] = None,
        lookahead_days: Optional[int] = None,
        default_timezone: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self._clock = clock or utc_now
        self._lookahead_days = (
            settings.next_business_hour_lookahead_days if lookahead_days is None else lookahead_days
        )
        self._default_timezone = default_timezone or settings.sla_timezone
        self._cache = CalendarConfigCache(
            repository,
            settings.sla_cache_ttl_seconds if cache_ttl_seconds is None else cache_ttl_seconds,
            self._clock
        )

    @property
    def cache(self) -> CalendarConfigCache:
        return self._cache

    @property
    def default_timezone(self) -> str:
        return self._default_timezone

    def now(self) -> datetime:
        """Current instant according to the calculator's clock."""
        return self._clock()

    def _resolve(self, options: Optional[SLACalculationOptions]) -> SLACalculationOptions:
        if options is None:
            return SLACalculationOptions(timezone=self._default_timezone)
        return options

    async def calculate_sla_due_date(
        self,
        start_date: datetime,
        sla_minutes: float,
        options: Optional[SLACalculationOptions] = None
    ) -> SLACalculationResult:
        """
        Calculate the SLA due date for a ticket.

        In business-hours mode the SLA budget is consumed only inside the
        configured windows of the scope, skipping holidays and days without
        a window. Otherwise the budget is plain wall-clock minutes.

        Args:
            start_date: When the SLA clock starts (ticket creation)
            sla_minutes: SLA budget in minutes
            options: Scope, timezone and calculation mode

        Returns:
            SLACalculationResult with due date and remaining-time figures

        Raises:
            ValidationException: If sla_minutes is negative
            NoBusinessHoursConfiguredException: If the scope has no usable window
        """
        if sla_minutes < 0:
            raise ValidationException(
                "sla_minutes must not be negative",
                {"sla_minutes": sla_minutes}
            )

        opts = self._resolve(options)
        tz = opts.tz
        start = TimeWalk.to_local(start_date, tz)

        if not opts.business_hours_only:
            return self._wall_clock_result(start, sla_minutes, opts)

        windows = await self._cache.get_business_hours(opts.department_id, opts.unit_id)
        holidays = await self._cache.get_holidays(opts.department_id, opts.unit_id, tz)

        if not TimeWalk.has_usable_window(windows):
            raise NoBusinessHoursConfiguredException(opts.department_id, opts.unit_id)

        current = start
        remaining = float(sla_minutes)
        holidays_skipped: List[str] = []

        while True:
            if TimeWalk.is_holiday(holidays, current, tz):
                holidays_skipped.append(TimeWalk.local_date(current, tz).isoformat())
                current = TimeWalk.start_of_next_day(current, tz)
                continue

            window = TimeWalk.window_for_day(windows, TimeWalk.day_of_week(current, tz))
            if window is None:
                current = TimeWalk.start_of_next_day(current, tz)
                continue

            start_minutes = TimeWalk.parse_time_string(window.start_time)
            end_minutes = TimeWalk.parse_time_string(window.end_time)
            window_start, window_end = TimeWalk.business_window_bounds(
                current, start_minutes, end_minutes, tz
            )

            if TimeWalk.is_same_day(current, start, tz):
                current_minutes = TimeWalk.minute_of_day(current, tz)
                if current_minutes < start_minutes:
                    slice_start = window_start
                elif current_minutes >= end_minutes:
                    current = TimeWalk.start_of_next_day(current, tz)
                    continue
                else:
                    slice_start = current
            else:
                slice_start = window_start

            available = max(0.0, TimeWalk.minutes_between(slice_start, window_end))

            if remaining <= available:
                due_date = TimeWalk.add_minutes(slice_start, remaining, tz)
                logger.debug(
                    "SLA due date calculated",
                    extra={
                        "department_id": opts.department_id,
                        "unit_id": opts.unit_id,
                        "sla_minutes": sla_minutes,
                        "due_date": due_date.isoformat(),
                        "holidays_skipped": len(holidays_skipped),
                    }
                )
                return await self._business_hours_result(due_date, holidays_skipped, opts)

            remaining -= available
            current = TimeWalk.start_of_next_day(current, tz)

    def _wall_clock_result(
        self,
        start: datetime,
        sla_minutes: float,
        opts: SLACalculationOptions
    ) -> SLACalculationResult:
        due_date = TimeWalk.add_minutes(start, sla_minutes, opts.tz)
        now = self.now()
        remaining = max(0.0, TimeWalk.minutes_between(now, due_date))

        return SLACalculationResult(
            due_date=due_date,
            business_minutes_remaining=remaining,
            total_minutes_remaining=remaining,
            is_overdue=TimeWalk.utc(now) > TimeWalk.utc(due_date),
            is_currently_in_business_hours=True,
            holidays_skipped=(),
        )

    async def _business_hours_result(
        self,
        due_date: datetime,
        holidays_skipped: List[str],
        opts: SLACalculationOptions
    ) -> SLACalculationResult:
        now = self.now()
        business_remaining = await self.calculate_business_minutes_between(now, due_date, opts)

        return SLACalculationResult(
            due_date=due_date,
            business_minutes_remaining=max(0.0, business_remaining),
            total_minutes_remaining=max(0.0, TimeWalk.minutes_between(now, due_date)),
            is_overdue=TimeWalk.utc(now) > TimeWalk.utc(due_date),
            is_currently_in_business_hours=await self.is_currently_in_business_hours(now, opts),
            holidays_skipped=tuple(holidays_skipped),
            next_business_hour_start=await self.get_next_business_hour_start(now, opts),
        )

    async def calculate_business_minutes_between(
        self,
        from_date: datetime,
        to_date: datetime,
        options: Optional[SLACalculationOptions] = None
    ) -> float:
        """
        Business minutes elapsed between two instants.

        Returns 0 when from_date is not before to_date, and also when the
        scope has no business hours configured.
        """
        opts = self._resolve(options)
        tz = opts.tz
        start = TimeWalk.to_local(from_date, tz)
        end = TimeWalk.to_local(to_date, tz)

        if TimeWalk.utc(start) >= TimeWalk.utc(end):
            return 0.0

        if not opts.business_hours_only:
            return TimeWalk.minutes_between(start, end)

        windows = await self._cache.get_business_hours(opts.department_id, opts.unit_id)
        holidays = await self._cache.get_holidays(opts.department_id, opts.unit_id, tz)

        if not windows:
            return 0.0

        total = 0.0
        current = start

        while TimeWalk.utc(current) < TimeWalk.utc(end):
            if TimeWalk.is_holiday(holidays, current, tz):
                current = TimeWalk.start_of_next_day(current, tz)
                continue

            window = TimeWalk.window_for_day(windows, TimeWalk.day_of_week(current, tz))
            if window is None:
                current = TimeWalk.start_of_next_day(current, tz)
                continue

            window_start, window_end = TimeWalk.business_window_bounds(
                current,
                TimeWalk.parse_time_string(window.start_time),
                TimeWalk.parse_time_string(window.end_time),
                tz
            )

            day_start = window_start
            if TimeWalk.is_same_day(current, start, tz):
                day_start = max(current, window_start, key=TimeWalk.utc)
            day_end = window_end
            if TimeWalk.is_same_day(current, end, tz):
                day_end = min(end, window_end, key=TimeWalk.utc)

            total += max(0.0, TimeWalk.minutes_between(day_start, day_end))

            current = TimeWalk.start_of_next_day(current, tz)

        return total

    async def is_currently_in_business_hours(
        self,
        check_date: Optional[datetime] = None,
        options: Optional[SLACalculationOptions] = None
    ) -> bool:
        """
        Check whether an instant falls inside the scope's business hours.

        The window start is inclusive and the window end exclusive. Holidays
        and days without a window are never business hours.
        """
        opts = self._resolve(options)
        tz = opts.tz
        moment = TimeWalk.to_local(check_date or self.now(), tz)

        windows = await self._cache.get_business_hours(opts.department_id, opts.unit_id)
        holidays = await self._cache.get_holidays(opts.department_id, opts.unit_id, tz)

        if TimeWalk.is_holiday(holidays, moment, tz):
            return False

        window = TimeWalk.window_for_day(windows, TimeWalk.day_of_week(moment, tz))
        if window is None:
            return False

        minute = TimeWalk.minute_of_day(moment, tz)
        return (
            TimeWalk.parse_time_string(window.start_time)
            <= minute
            < TimeWalk.parse_time_string(window.end_time)
        )

    async def get_next_business_hour_start(
        self,
        from_date: Optional[datetime] = None,
        options: Optional[SLACalculationOptions] = None
    ) -> Optional[datetime]:
        """
        Start of the next business-hours window strictly after from_date.

        Searches the look-ahead horizon (14 days by default, counting
        from_date's own day) and returns None when nothing opens within it.
        """
        opts = self._resolve(options)
        tz = opts.tz
        origin = TimeWalk.to_local(from_date or self.now(), tz)

        windows = await self._cache.get_business_hours(opts.department_id, opts.unit_id)
        holidays = await self._cache.get_holidays(opts.department_id, opts.unit_id, tz)

        current = origin
        for _ in range(self._lookahead_days):
            if not TimeWalk.is_holiday(holidays, current, tz):
                window = TimeWalk.window_for_day(windows, TimeWalk.day_of_week(current, tz))
                if window is not None:
                    window_start, _ = TimeWalk.business_window_bounds(
                        current,
                        TimeWalk.parse_time_string(window.start_time),
                        TimeWalk.parse_time_string(window.end_time),
                        tz
                    )
                    if TimeWalk.utc(window_start) > TimeWalk.utc(origin):
                        return window_start

            current = TimeWalk.start_of_next_day(current, tz)

        return None

    def clear_cache(self) -> None:
        """Drop cached business hours and holidays for every scope."""
        self._cache.clear()


class BusinessCalendarAdminService:
    """
    Service for administrative edits of the business calendar.

    Every successful write clears the calculator's cache so the next
    calculation sees the new configuration.
    """

    def __init__(
        self,
        repository: IBusinessCalendarAdminRepository,
        calculator: SLACalculator
    ):
        self._repository = repository
        self._calculator = calculator

    async def create_business_hours(self, window: BusinessHoursWindow) -> BusinessHoursWindow:
        created = await self._repository.create_business_hours(window)
        self._calculator.clear_cache()
        logger.info(
            "Business hours created",
            extra={
                "department_id": created.department_id,
                "unit_id": created.unit_id,
                "day_of_week": created.day_of_week,
            }
        )
        return created

    async def create_weekly_schedule(self, windows: List[BusinessHoursWindow]) -> int:
        created = await self._repository.create_business_hours_bulk(windows)
        self._calculator.clear_cache()
        logger.info("Weekly business hours created", extra={"created": created})
        return created

    async def list_business_hours(
        self,
        department_id: Optional[int] = None,
        unit_id: Optional[int] = None
    ) -> List[BusinessHoursWindow]:
        return await self._repository.list_business_hours(department_id, unit_id)

    async def get_business_hours(self, window_id: int) -> BusinessHoursWindow:
        return await self._repository.get_business_hours(window_id)

    async def update_business_hours(self, window_id: int, changes: Dict[str, Any]) -> BusinessHoursWindow:
        """
        Edit a window.

        Times not in changes keep their stored values, and the resulting
        window must still open before it closes.

        Raises:
            ResourceNotFoundException: If the window does not exist
            ValidationException: If the start time would not precede the end time
            ConflictException: If the scope already has an active window on the new day
        """
        current = await self._repository.get_business_hours(window_id)
        start_time = changes.get("start_time", current.start_time)
        end_time = changes.get("end_time", current.end_time)
        if TimeWalk.parse_time_string(start_time) >= TimeWalk.parse_time_string(end_time):
            raise ValidationException(
                "Start time must be before end time",
                {"start_time": start_time, "end_time": end_time}
            )

        updated = await self._repository.update_business_hours(window_id, changes)
        self._calculator.clear_cache()
        logger.info(
            "Business hours updated",
            extra={"business_hours_id": window_id, "changed_fields": sorted(changes)}
        )
        return updated

    async def deactivate_business_hours(self, window_id: int) -> None:
        await self._repository.deactivate_business_hours(window_id)
        self._calculator.clear_cache()
        logger.info("Business hours deactivated", extra={"business_hours_id": window_id})

    async def create_holiday(self, holiday: HolidayEntry) -> HolidayEntry:
        created = await self._repository.create_holiday(holiday)
        self._calculator.clear_cache()
        logger.info(
            "Holiday created",
            extra={"holiday_date": created.date.isoformat(), "holiday_name": created.name}
        )
        return created

    async def create_holidays_bulk(self, holidays: List[HolidayEntry]) -> int:
        created = await self._repository.create_holidays_bulk(holidays)
        self._calculator.clear_cache()
        logger.info("Holidays created", extra={"created": created})
        return created

    async def get_holiday(self, holiday_id: int) -> HolidayEntry:
        return await self._repository.get_holiday(holiday_id)

    async def update_holiday(self, holiday_id: int, changes: Dict[str, Any]) -> HolidayEntry:
        current = await self._repository.get_holiday(holiday_id)
        if changes.get("is_recurring", current.is_recurring) and not changes.get(
            "recurrence_rule", current.recurrence_rule
        ):
            raise ValidationException(
                "Recurrence rule is required for recurring holidays",
                {"holiday_id": holiday_id}
            )

        updated = await self._repository.update_holiday(holiday_id, changes)
        self._calculator.clear_cache()
        logger.info(
            "Holiday updated",
            extra={"holiday_id": holiday_id, "changed_fields": sorted(changes)}
        )
        return updated

    async def holidays_on(
        self,
        day: date,
        department_id: Optional[int] = None,
        unit_id: Optional[int] = None
    ) -> List[HolidayEntry]:
        """Active holidays on one calendar day that apply to the scope."""
        return await self._repository.fetch_active_holidays(department_id, unit_id, day, day)

    async def list_holidays(
        self,
        department_id: Optional[int] = None,
        unit_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None
    ) -> List[HolidayEntry]:
        return await self._repository.list_holidays(department_id, unit_id, start, end)

    async def deactivate_holiday(self, holiday_id: int) -> None:
        await self._repository.deactivate_holiday(holiday_id)
        self._calculator.clear_cache()
        logger.info("Holiday deactivated", extra={"holiday_id": holiday_id})
