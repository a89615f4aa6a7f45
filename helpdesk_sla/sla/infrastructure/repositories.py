"""
SLA Infrastructure Repositories
=================================

Concrete implementations of the business calendar repository interfaces.

- SQLAlchemyBusinessCalendarRepository: async SQLAlchemy, read and admin writes
- YAMLBusinessCalendarRepository: read-only calendar loaded from a YAML file
"""

import threading
from contextlib import AbstractAsyncContextManager
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml
from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from helpdesk_sla.config import DEFAULT_TIMEZONE
from helpdesk_sla.core import (
    ConfigurationException,
    ConflictException,
    ResourceNotFoundException,
)
from helpdesk_sla.sla.application import (
    IBusinessCalendarAdminRepository,
    IBusinessCalendarRepository,
)
from helpdesk_sla.sla.domain import BusinessHoursWindow, HolidayEntry, TimeWalk
from helpdesk_sla.sla.infrastructure.models import BusinessHoursConfigModel, HolidayCalendarModel
from helpdesk_sla.shared.infrastructure.logging import get_logger, log_latency

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def _scope_condition(column, value: Optional[int]):
    """Equality that treats None as IS NULL."""
    return column.is_(None) if value is None else column == value


class SQLAlchemyBusinessCalendarRepository(IBusinessCalendarAdminRepository):
    """
    SQLAlchemy implementation of the business calendar repository.

    Opens a short-lived session per call through session_factory, since the
    calculator is long-lived and reads through its cache outside any request.
    """

    def __init__(self, session_factory: SessionFactory):
        self._session_factory = session_factory

    # ========== Reads used by the calculator ==========

    async def fetch_active_business_hours(
        self,
        department_id: Optional[int],
        unit_id: Optional[int]
    ) -> List[BusinessHoursWindow]:
        stmt = (
            select(BusinessHoursConfigModel)
            .where(
                and_(
                    _scope_condition(BusinessHoursConfigModel.department_id, department_id),
                    _scope_condition(BusinessHoursConfigModel.unit_id, unit_id),
                    BusinessHoursConfigModel.is_active.is_(True),
                )
            )
            .order_by(BusinessHoursConfigModel.day_of_week.asc(), BusinessHoursConfigModel.id.asc())
        )

        with log_latency(logger, "fetch_active_business_hours", department_id=department_id, unit_id=unit_id):
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [model.to_domain() for model in result.scalars().all()]

    async def fetch_active_holidays(
        self,
        department_id: Optional[int],
        unit_id: Optional[int],
        start: date,
        end: date
    ) -> List[HolidayEntry]:
        scope = or_(
            and_(
                _scope_condition(HolidayCalendarModel.department_id, department_id),
                HolidayCalendarModel.unit_id.is_(None),
            ),
            and_(
                _scope_condition(HolidayCalendarModel.unit_id, unit_id),
                HolidayCalendarModel.department_id.is_(None),
            ),
            and_(
                HolidayCalendarModel.department_id.is_(None),
                HolidayCalendarModel.unit_id.is_(None),
            ),
        )
        stmt = (
            select(HolidayCalendarModel)
            .where(
                and_(
                    scope,
                    HolidayCalendarModel.is_active.is_(True),
                    HolidayCalendarModel.date >= start,
                    HolidayCalendarModel.date <= end,
                )
            )
            .order_by(HolidayCalendarModel.date.asc())
        )

        with log_latency(logger, "fetch_active_holidays", department_id=department_id, unit_id=unit_id):
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [model.to_domain() for model in result.scalars().all()]

    # ========== Administrative writes ==========

    async def _active_days(
        self,
        session: AsyncSession,
        department_id: Optional[int],
        unit_id: Optional[int]
    ) -> set:
        stmt = select(BusinessHoursConfigModel.day_of_week).where(
            and_(
                _scope_condition(BusinessHoursConfigModel.department_id, department_id),
                _scope_condition(BusinessHoursConfigModel.unit_id, unit_id),
                BusinessHoursConfigModel.is_active.is_(True),
            )
        )
        result = await session.execute(stmt)
        return set(result.scalars().all())

    @staticmethod
    def _window_model(window: BusinessHoursWindow) -> BusinessHoursConfigModel:
        return BusinessHoursConfigModel(
            department_id=window.department_id,
            unit_id=window.unit_id,
            day_of_week=window.day_of_week,
            start_time=window.start_time,
            end_time=window.end_time,
            timezone=window.timezone,
            is_active=window.is_active
        )

    async def create_business_hours(self, window: BusinessHoursWindow) -> BusinessHoursWindow:
        async with self._session_factory() as session:
            if window.is_active and window.day_of_week in await self._active_days(
                session, window.department_id, window.unit_id
            ):
                raise ConflictException(
                    "Business hours already exist for this day and scope",
                    {
                        "department_id": window.department_id,
                        "unit_id": window.unit_id,
                        "day_of_week": window.day_of_week,
                    }
                )

            model = self._window_model(window)
            session.add(model)
            await session.flush()
            return model.to_domain()

    async def create_business_hours_bulk(self, windows: List[BusinessHoursWindow]) -> int:
        created = 0
        async with self._session_factory() as session:
            taken: Dict[tuple, set] = {}
            for window in windows:
                if window.scope not in taken:
                    taken[window.scope] = await self._active_days(
                        session, window.department_id, window.unit_id
                    )
                if window.day_of_week in taken[window.scope]:
                    continue

                session.add(self._window_model(window))
                taken[window.scope].add(window.day_of_week)
                created += 1

            await session.flush()
        return created

    async def list_business_hours(
        self,
        department_id: Optional[int] = None,
        unit_id: Optional[int] = None
    ) -> List[BusinessHoursWindow]:
        conditions = [BusinessHoursConfigModel.is_active.is_(True)]
        if department_id is not None:
            conditions.append(BusinessHoursConfigModel.department_id == department_id)
        if unit_id is not None:
            conditions.append(BusinessHoursConfigModel.unit_id == unit_id)

        stmt = (
            select(BusinessHoursConfigModel)
            .where(and_(*conditions))
            .order_by(
                BusinessHoursConfigModel.department_id,
                BusinessHoursConfigModel.unit_id,
                BusinessHoursConfigModel.day_of_week,
            )
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [model.to_domain() for model in result.scalars().all()]

    async def _window_or_404(self, session: AsyncSession, window_id: int) -> BusinessHoursConfigModel:
        model = await session.get(BusinessHoursConfigModel, window_id)
        if model is None:
            raise ResourceNotFoundException("Business hours", str(window_id))
        return model

    async def get_business_hours(self, window_id: int) -> BusinessHoursWindow:
        async with self._session_factory() as session:
            return (await self._window_or_404(session, window_id)).to_domain()

    async def update_business_hours(self, window_id: int, changes: Dict[str, Any]) -> BusinessHoursWindow:
        async with self._session_factory() as session:
            model = await self._window_or_404(session, window_id)

            day_of_week = changes.get("day_of_week", model.day_of_week)
            will_be_active = changes.get("is_active", model.is_active)
            # The row itself only counts against a day it already holds
            if will_be_active and (day_of_week != model.day_of_week or not model.is_active):
                if day_of_week in await self._active_days(session, model.department_id, model.unit_id):
                    raise ConflictException(
                        "Business hours already exist for this day and scope",
                        {
                            "department_id": model.department_id,
                            "unit_id": model.unit_id,
                            "day_of_week": day_of_week,
                        }
                    )

            for field, value in changes.items():
                setattr(model, field, value)
            await session.flush()
            return model.to_domain()

    async def deactivate_business_hours(self, window_id: int) -> None:
        async with self._session_factory() as session:
            model = await self._window_or_404(session, window_id)
            model.is_active = False
            await session.flush()

    @staticmethod
    def _holiday_model(holiday: HolidayEntry) -> HolidayCalendarModel:
        return HolidayCalendarModel(
            name=holiday.name,
            date=holiday.date,
            description=holiday.description,
            is_recurring=holiday.is_recurring,
            recurrence_rule=holiday.recurrence_rule,
            department_id=holiday.department_id,
            unit_id=holiday.unit_id,
            is_active=holiday.is_active
        )

    async def _holiday_or_404(self, session: AsyncSession, holiday_id: int) -> HolidayCalendarModel:
        model = await session.get(HolidayCalendarModel, holiday_id)
        if model is None:
            raise ResourceNotFoundException("Holiday", str(holiday_id))
        return model

    async def create_holiday(self, holiday: HolidayEntry) -> HolidayEntry:
        async with self._session_factory() as session:
            model = self._holiday_model(holiday)
            session.add(model)
            await session.flush()
            return model.to_domain()

    async def create_holidays_bulk(self, holidays: List[HolidayEntry]) -> int:
        async with self._session_factory() as session:
            session.add_all([self._holiday_model(holiday) for holiday in holidays])
            await session.flush()
        return len(holidays)

    async def get_holiday(self, holiday_id: int) -> HolidayEntry:
        async with self._session_factory() as session:
            return (await self._holiday_or_404(session, holiday_id)).to_domain()

    async def update_holiday(self, holiday_id: int, changes: Dict[str, Any]) -> HolidayEntry:
        async with self._session_factory() as session:
            model = await self._holiday_or_404(session, holiday_id)
            for field, value in changes.items():
                setattr(model, field, value)
            await session.flush()
            return model.to_domain()

    async def list_holidays(
        self,
        department_id: Optional[int] = None,
        unit_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None
    ) -> List[HolidayEntry]:
        conditions = [HolidayCalendarModel.is_active.is_(True)]
        if department_id is not None:
            conditions.append(HolidayCalendarModel.department_id == department_id)
        if unit_id is not None:
            conditions.append(HolidayCalendarModel.unit_id == unit_id)
        if start is not None:
            conditions.append(HolidayCalendarModel.date >= start)
        if end is not None:
            conditions.append(HolidayCalendarModel.date <= end)

        stmt = select(HolidayCalendarModel).where(and_(*conditions)).order_by(HolidayCalendarModel.date.asc())
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return [model.to_domain() for model in result.scalars().all()]

    async def deactivate_holiday(self, holiday_id: int) -> None:
        async with self._session_factory() as session:
            model = await self._holiday_or_404(session, holiday_id)
            model.is_active = False
            await session.flush()


def _time_value(value: Any) -> str:
    """
    Normalize a YAML time value to "HH:MM".

    YAML 1.1 reads unquoted 17:00 as the base-60 integer 1020.
    """
    if isinstance(value, int):
        return f"{value // 60:02d}:{value % 60:02d}"
    return str(value)


def _date_value(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


class YAMLBusinessCalendarRepository(IBusinessCalendarRepository):
    """
    Business calendar loaded from a YAML file.

    Expected layout:

        timezone: Asia/Jakarta
        business_hours:
          - {department_id: 1, day_of_week: 1, start_time: "08:00", end_time: "17:00"}
        holidays:
          - {name: Independence Day, date: 2025-08-17}

    A missing file yields an empty calendar. reload() swaps the whole
    calendar atomically, so readers see either the old or the new one.
    """

    def __init__(self, config_path: Path):
        self._config_path = Path(config_path)
        self._lock = threading.Lock()
        self._business_hours: List[BusinessHoursWindow] = []
        self._holidays: List[HolidayEntry] = []
        self._load()

    @property
    def config_path(self) -> Path:
        return self._config_path

    def _load(self) -> None:
        """Load the calendar from the YAML file."""
        if not self._config_path.exists():
            logger.warning(f"Business calendar file not found: {self._config_path}, using empty calendar")
            business_hours: List[BusinessHoursWindow] = []
            holidays: List[HolidayEntry] = []
        else:
            with open(self._config_path, "r") as f:
                data = yaml.safe_load(f) or {}
            business_hours, holidays = self._parse(data)

        with self._lock:
            self._business_hours = business_hours
            self._holidays = holidays

        logger.info(
            "Business calendar loaded",
            extra={
                "config_path": str(self._config_path),
                "business_hours_count": len(business_hours),
                "holiday_count": len(holidays),
            }
        )

    def _parse(self, data: Dict[str, Any]):
        default_tz = data.get("timezone", DEFAULT_TIMEZONE)
        try:
            business_hours = [
                BusinessHoursWindow(
                    day_of_week=int(item["day_of_week"]),
                    start_time=_time_value(item["start_time"]),
                    end_time=_time_value(item["end_time"]),
                    is_active=item.get("is_active", True),
                    department_id=item.get("department_id"),
                    unit_id=item.get("unit_id"),
                    timezone=item.get("timezone", default_tz),
                    id=index
                )
                for index, item in enumerate(data.get("business_hours") or [], start=1)
            ]
            holidays = [
                HolidayEntry(
                    date=_date_value(item["date"]),
                    is_active=item.get("is_active", True),
                    department_id=item.get("department_id"),
                    unit_id=item.get("unit_id"),
                    name=item.get("name", ""),
                    description=item.get("description"),
                    is_recurring=item.get("is_recurring", False),
                    recurrence_rule=item.get("recurrence_rule"),
                    id=index
                )
                for index, item in enumerate(data.get("holidays") or [], start=1)
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationException(
                f"Invalid business calendar file: {e}",
                {"config_path": str(self._config_path)}
            ) from e

        self._check_windows(business_hours)
        return business_hours, holidays

    def _check_windows(self, windows: List[BusinessHoursWindow]) -> None:
        """Apply the admin write rules: start before end, one active window per scope and day."""
        seen = set()
        for window in windows:
            details = {
                "config_path": str(self._config_path),
                "department_id": window.department_id,
                "unit_id": window.unit_id,
                "day_of_week": window.day_of_week,
            }
            if not TimeWalk.is_open_window(window):
                raise ConfigurationException(
                    f"Invalid business calendar file: start time {window.start_time} "
                    f"is not before end time {window.end_time}",
                    details
                )
            if not window.is_active:
                continue
            key = (window.scope, window.day_of_week)
            if key in seen:
                raise ConfigurationException(
                    "Invalid business calendar file: more than one active window for this day and scope",
                    details
                )
            seen.add(key)

    def reload(self) -> None:
        """Reload the calendar from file."""
        self._load()

    async def fetch_active_business_hours(
        self,
        department_id: Optional[int],
        unit_id: Optional[int]
    ) -> List[BusinessHoursWindow]:
        with self._lock:
            windows = list(self._business_hours)
        return sorted(
            (
                w for w in windows
                if w.is_active and w.scope == (department_id, unit_id)
            ),
            key=lambda w: w.day_of_week
        )

    async def fetch_active_holidays(
        self,
        department_id: Optional[int],
        unit_id: Optional[int],
        start: date,
        end: date
    ) -> List[HolidayEntry]:
        with self._lock:
            holidays = list(self._holidays)
        return sorted(
            (
                h for h in holidays
                if h.is_active and start <= h.date <= end and h.applies_to(department_id, unit_id)
            ),
            key=lambda h: h.date
        )
