"""
SLA Infrastructure Models
==========================

SQLAlchemy ORM models for the business calendar.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import date as calendar_date, datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from helpdesk_sla.config import DEFAULT_TIMEZONE
from helpdesk_sla.infrastructure.database import Base
from helpdesk_sla.sla.domain import BusinessHoursWindow, HolidayEntry


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BusinessHoursConfigModel(Base):
    """
    Database model for a business-hours window.

    Maps to the 'business_hours_config' table. One active row per
    (department_id, unit_id, day_of_week) is enforced by the repository,
    since NULL scope columns defeat a plain unique constraint.
    """
    __tablename__ = "business_hours_config"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Scope
    department_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    unit_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)

    # Window
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)  # 0 = Sunday
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)  # HH:MM
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default=DEFAULT_TIMEZONE)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utc_now, onupdate=_utc_now)

    __table_args__ = (
        Index("ix_business_hours_scope_day", "department_id", "unit_id", "day_of_week"),
    )

    def to_domain(self) -> BusinessHoursWindow:
        return BusinessHoursWindow(
            id=self.id,
            day_of_week=self.day_of_week,
            start_time=self.start_time,
            end_time=self.end_time,
            is_active=self.is_active,
            department_id=self.department_id,
            unit_id=self.unit_id,
            timezone=self.timezone
        )


class HolidayCalendarModel(Base):
    """
    Database model for a holiday entry.

    Maps to the 'holiday_calendar' table. Both scope columns NULL means a
    global holiday.
    """
    __tablename__ = "holiday_calendar"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[calendar_date] = mapped_column(Date, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Recurrence (RRULE text, e.g. FREQ=YEARLY)
    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    recurrence_rule: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Scope
    department_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    unit_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utc_now, onupdate=_utc_now)

    def to_domain(self) -> HolidayEntry:
        return HolidayEntry(
            id=self.id,
            date=self.date,
            is_active=self.is_active,
            department_id=self.department_id,
            unit_id=self.unit_id,
            name=self.name,
            description=self.description,
            is_recurring=self.is_recurring,
            recurrence_rule=self.recurrence_rule
        )
