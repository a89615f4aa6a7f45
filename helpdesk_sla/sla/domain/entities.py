"""
SLA Domain Entities
====================

Pure Python domain entities for the business calendar.

Following Domain-Driven Design principles, these entities contain
business rules and are free of infrastructure concerns. The calculator
only ever reads them; they are created and edited by administrators.
"""

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from helpdesk_sla.config import DEFAULT_TIMEZONE

TIME_STRING_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")


@dataclass
class BusinessHoursWindow:
    """
    Open interval of one weekday for one organizational scope.

    start_time/end_time are "HH:MM" wall-clock strings interpreted in the
    operational timezone. day_of_week uses Sunday=0 .. Saturday=6.
    """

    day_of_week: int
    start_time: str
    end_time: str
    is_active: bool = True

    # Scope (exact match; both None is the unscoped configuration)
    department_id: Optional[int] = None
    unit_id: Optional[int] = None

    timezone: str = DEFAULT_TIMEZONE
    id: Optional[int] = None

    def __post_init__(self):
        """Validate window on initialization."""
        if not 0 <= self.day_of_week <= 6:
            raise ValueError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")

        for value in (self.start_time, self.end_time):
            if not TIME_STRING_PATTERN.match(value):
                raise ValueError(f"time must be HH:MM (24-hour format), got {value!r}")

    @property
    def scope(self) -> tuple[Optional[int], Optional[int]]:
        """The (department_id, unit_id) pair this window belongs to."""
        return self.department_id, self.unit_id


@dataclass
class HolidayEntry:
    """
    A calendar date on which no business time accrues.

    Scope is a department, a unit, or global (both None).
    """

    date: date
    is_active: bool = True
    department_id: Optional[int] = None
    unit_id: Optional[int] = None

    name: str = ""
    description: Optional[str] = None
    is_recurring: bool = False
    recurrence_rule: Optional[str] = None
    id: Optional[int] = None

    @property
    def is_global(self) -> bool:
        """Check if holiday applies to every department and unit."""
        return self.department_id is None and self.unit_id is None

    def applies_to(self, department_id: Optional[int], unit_id: Optional[int]) -> bool:
        """
        Check if holiday applies to a lookup scope.

        Matches department-scoped entries (unit unset), unit-scoped entries
        (department unset) and global entries.
        """
        if self.is_global:
            return True
        if self.unit_id is None and self.department_id == department_id:
            return True
        if self.department_id is None and self.unit_id == unit_id:
            return True
        return False
