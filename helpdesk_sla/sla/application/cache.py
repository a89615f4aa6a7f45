"""
Calendar Configuration Cache
=============================

Time-bounded, read-through memoization of business-hours windows and
holiday entries per organizational scope.

The cache has no invalidation hook tied to writes; administrative edits
must call clear() (the calculator's clear_cache()).
"""

from datetime import date, datetime, tzinfo
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Generic, List, Optional, TypeVar

from helpdesk_sla.config import CacheKind
from helpdesk_sla.sla.domain import BusinessHoursWindow, HolidayEntry, TimeWalk
from helpdesk_sla.shared.infrastructure.logging import get_logger

if TYPE_CHECKING:
    from helpdesk_sla.sla.application.services import IBusinessCalendarRepository

logger = get_logger(__name__)

T = TypeVar("T")


class ReadThroughCache(Generic[T]):
    """
    Generic read-through cache with per-key absolute expiry.

    A read at or past expiry is a miss: the value is fetched again and the
    expiry refreshed. A failed fetch propagates and leaves nothing cached.
    Concurrent misses on one key may both fetch; the last write wins.
    """

    def __init__(self, time_func: Callable[[], float]):
        self._time = time_func
        self._values: Dict[str, T] = {}
        self._expiry: Dict[str, float] = {}

    async def get(
        self,
        key: str,
        ttl_seconds: float,
        fetch: Callable[[], Awaitable[T]]
    ) -> T:
        """Return the cached value for key, fetching it on miss or expiry."""
        if key in self._values and self._expiry.get(key, 0.0) > self._time():
            logger.debug("Calendar cache hit", extra={"cache_key": key})
            return self._values[key]

        logger.debug("Calendar cache miss", extra={"cache_key": key})
        value = await fetch()
        self._values[key] = value
        self._expiry[key] = self._time() + ttl_seconds
        return value

    def clear(self) -> None:
        """Drop every entry and expiry."""
        self._values.clear()
        self._expiry.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)


def scope_key(kind: str, department_id: Optional[int], unit_id: Optional[int]) -> str:
    """Build a cache key of the form "{kind}_{department_id|null}_{unit_id|null}"."""
    dept = "null" if department_id is None else str(department_id)
    unit = "null" if unit_id is None else str(unit_id)
    return f"{kind}_{dept}_{unit}"


def one_year_after(day: date) -> date:
    """Same month and day next year (Feb 29 falls back to Feb 28)."""
    try:
        return day.replace(year=day.year + 1)
    except ValueError:
        return day.replace(year=day.year + 1, day=28)


class CalendarConfigCache:
    """
    Read-through cache of the two calendar lookups the calculator needs.

    Business hours are fetched for the exact (department, unit) pair.
    Holidays are fetched for the department, the unit and the global scope,
    limited to dates from today through one year ahead.
    """

    def __init__(
        self,
        repository: "IBusinessCalendarRepository",
        ttl_seconds: float,
        clock: Callable[[], datetime]
    ):
        self._repository = repository
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: ReadThroughCache[list] = ReadThroughCache(
            lambda: self._clock().timestamp()
        )

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    async def get_business_hours(
        self,
        department_id: Optional[int] = None,
        unit_id: Optional[int] = None
    ) -> List[BusinessHoursWindow]:
        """Active windows for the exact scope, ordered by day of week."""

        async def fetch() -> List[BusinessHoursWindow]:
            windows = await self._repository.fetch_active_business_hours(department_id, unit_id)
            return sorted(windows, key=lambda w: w.day_of_week)

        return await self._cache.get(
            scope_key(CacheKind.BUSINESS_HOURS, department_id, unit_id),
            self._ttl_seconds,
            fetch
        )

    async def get_holidays(
        self,
        department_id: Optional[int],
        unit_id: Optional[int],
        tz: tzinfo
    ) -> List[HolidayEntry]:
        """
        Active holidays applying to the scope within the one-year horizon.

        "Today" depends on the timezone, so the timezone is part of the key.
        """

        async def fetch() -> List[HolidayEntry]:
            today = TimeWalk.local_date(self._clock(), tz)
            return await self._repository.fetch_active_holidays(
                department_id, unit_id, today, one_year_after(today)
            )

        return await self._cache.get(
            f"{scope_key(CacheKind.HOLIDAYS, department_id, unit_id)}_{getattr(tz, 'key', tz)}",
            self._ttl_seconds,
            fetch
        )

    def clear(self) -> None:
        """Drop all cached business hours and holidays."""
        self._cache.clear()
        logger.info("Calendar configuration cache cleared")
