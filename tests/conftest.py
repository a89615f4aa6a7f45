"""
Shared fixtures: an in-memory business calendar, a controllable clock and
a calculator wired to both.
"""

from datetime import date, datetime, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

import pytest

from helpdesk_sla.core import ConflictException, ResourceNotFoundException
from helpdesk_sla.sla.application import (
    BusinessCalendarAdminService,
    IBusinessCalendarAdminRepository,
    SLACalculator,
)
from helpdesk_sla.sla.domain import BusinessHoursWindow, HolidayEntry

JAKARTA = ZoneInfo("Asia/Jakarta")

# Monday, before business hours open
NOW = datetime(2025, 7, 7, 7, 0, tzinfo=JAKARTA)


def jkt(year, month, day, hour=0, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=JAKARTA)


def weekday_windows(
    start: str = "08:00",
    end: str = "17:00",
    department_id: Optional[int] = None,
    unit_id: Optional[int] = None,
    timezone: str = "Asia/Jakarta"
) -> List[BusinessHoursWindow]:
    return [
        BusinessHoursWindow(
            day_of_week=day,
            start_time=start,
            end_time=end,
            department_id=department_id,
            unit_id=unit_id,
            timezone=timezone
        )
        for day in range(1, 6)
    ]


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, now: datetime):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class InMemoryCalendarRepository(IBusinessCalendarAdminRepository):
    """Calendar store that counts fetches and can be told to fail."""

    def __init__(self):
        self.business_hours: List[BusinessHoursWindow] = []
        self.holidays: List[HolidayEntry] = []
        self.business_hours_fetches = 0
        self.holiday_fetches = 0
        self.last_holiday_range = None
        self.fail_next = False
        self._next_id = 1

    def _maybe_fail(self) -> None:
        if self.fail_next:
            self.fail_next = False
            raise RuntimeError("calendar store unavailable")

    def _assign_id(self, item) -> None:
        item.id = self._next_id
        self._next_id += 1

    async def fetch_active_business_hours(self, department_id, unit_id):
        self.business_hours_fetches += 1
        self._maybe_fail()
        return [
            w for w in self.business_hours
            if w.is_active and w.scope == (department_id, unit_id)
        ]

    async def fetch_active_holidays(self, department_id, unit_id, start: date, end: date):
        self.holiday_fetches += 1
        self.last_holiday_range = (start, end)
        self._maybe_fail()
        return [
            h for h in self.holidays
            if h.is_active and start <= h.date <= end and h.applies_to(department_id, unit_id)
        ]

    async def create_business_hours(self, window):
        for existing in self.business_hours:
            if existing.is_active and existing.scope == window.scope and existing.day_of_week == window.day_of_week:
                raise ConflictException("Business hours already exist for this day and scope")
        self._assign_id(window)
        self.business_hours.append(window)
        return window

    async def create_business_hours_bulk(self, windows):
        created = 0
        for window in windows:
            try:
                await self.create_business_hours(window)
            except ConflictException:
                continue
            created += 1
        return created

    async def list_business_hours(self, department_id=None, unit_id=None):
        return [
            w for w in self.business_hours
            if w.is_active
            and (department_id is None or w.department_id == department_id)
            and (unit_id is None or w.unit_id == unit_id)
        ]

    def _find(self, items, item_id, resource_type):
        for item in items:
            if item.id == item_id:
                return item
        raise ResourceNotFoundException(resource_type, str(item_id))

    async def get_business_hours(self, window_id):
        return self._find(self.business_hours, window_id, "Business hours")

    async def update_business_hours(self, window_id, changes):
        window = self._find(self.business_hours, window_id, "Business hours")
        day_of_week = changes.get("day_of_week", window.day_of_week)
        if changes.get("is_active", window.is_active):
            for other in self.business_hours:
                if (
                    other is not window and other.is_active
                    and other.scope == window.scope and other.day_of_week == day_of_week
                ):
                    raise ConflictException("Business hours already exist for this day and scope")
        for field, value in changes.items():
            setattr(window, field, value)
        return window

    async def deactivate_business_hours(self, window_id):
        self._find(self.business_hours, window_id, "Business hours").is_active = False

    async def create_holiday(self, holiday):
        self._assign_id(holiday)
        self.holidays.append(holiday)
        return holiday

    async def create_holidays_bulk(self, holidays):
        for holiday in holidays:
            await self.create_holiday(holiday)
        return len(holidays)

    async def get_holiday(self, holiday_id):
        return self._find(self.holidays, holiday_id, "Holiday")

    async def update_holiday(self, holiday_id, changes):
        holiday = self._find(self.holidays, holiday_id, "Holiday")
        for field, value in changes.items():
            setattr(holiday, field, value)
        return holiday

    async def list_holidays(self, department_id=None, unit_id=None, start=None, end=None):
        return [
            h for h in self.holidays
            if h.is_active
            and (department_id is None or h.department_id == department_id)
            and (unit_id is None or h.unit_id == unit_id)
            and (start is None or h.date >= start)
            and (end is None or h.date <= end)
        ]

    async def deactivate_holiday(self, holiday_id):
        self._find(self.holidays, holiday_id, "Holiday").is_active = False


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def repository():
    """Mon-Fri 08:00-17:00 for the unscoped calendar, no holidays."""
    repo = InMemoryCalendarRepository()
    repo.business_hours.extend(weekday_windows())
    return repo


@pytest.fixture
def calculator(repository, clock):
    return SLACalculator(
        repository,
        cache_ttl_seconds=1800,
        lookahead_days=14,
        default_timezone="Asia/Jakarta",
        clock=clock
    )


@pytest.fixture
def admin_service(repository, calculator):
    return BusinessCalendarAdminService(repository, calculator)
