"""
SLA Value Objects
==================

Immutable value objects for the SLA domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

from dataclasses import dataclass, field
from datetime import datetime
from functools import cached_property
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from helpdesk_sla.config import DEFAULT_TIMEZONE


@dataclass(frozen=True)
class SLACalculationOptions:
    """
    Per-call options for the SLA calculator.

    When business_hours_only is False every calculation degenerates to plain
    wall-clock minute arithmetic and no calendar lookups are made.
    """
    department_id: Optional[int] = None
    unit_id: Optional[int] = None
    timezone: str = DEFAULT_TIMEZONE
    business_hours_only: bool = True

    def __post_init__(self):
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone: {self.timezone}")

    @cached_property
    def tz(self) -> ZoneInfo:
        """Operational timezone as a tzinfo."""
        return ZoneInfo(self.timezone)


@dataclass(frozen=True)
class SLACalculationResult:
    """
    Outcome of a due-date calculation.

    Remaining-minute figures are measured against "now" at calculation time
    and are never negative.
    """
    due_date: datetime
    business_minutes_remaining: float
    total_minutes_remaining: float
    is_overdue: bool
    is_currently_in_business_hours: bool
    holidays_skipped: Tuple[str, ...] = field(default_factory=tuple)
    next_business_hour_start: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "due_date": self.due_date.isoformat(),
            "business_minutes_remaining": self.business_minutes_remaining,
            "total_minutes_remaining": self.total_minutes_remaining,
            "is_overdue": self.is_overdue,
            "is_currently_in_business_hours": self.is_currently_in_business_hours,
            "holidays_skipped": list(self.holidays_skipped),
            "next_business_hour_start": (
                self.next_business_hour_start.isoformat()
                if self.next_business_hour_start else None
            ),
        }
