"""
SLA Domain Layer
================

Domain layer for the SLA business-time engine.

Contains:
- Entities: Business-hours windows and holiday entries
- Value Objects: Calculation options and results (immutable)
- Domain Services: Stateless business-time arithmetic (TimeWalk)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from helpdesk_sla.sla.domain.entities import BusinessHoursWindow, HolidayEntry
from helpdesk_sla.sla.domain.value_objects import (
    SLACalculationOptions,
    SLACalculationResult,
)
from helpdesk_sla.sla.domain.time_walk import TimeWalk

__all__ = [
    # Entities
    "BusinessHoursWindow",
    "HolidayEntry",
    # Value Objects
    "SLACalculationOptions",
    "SLACalculationResult",
    # Domain Services
    "TimeWalk",
]
