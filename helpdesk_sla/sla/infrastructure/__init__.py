"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for the business calendar:
- Models: SQLAlchemy ORM models
- Repositories: Database and YAML-file calendar sources
- External: YAML calendar file watcher
"""

from helpdesk_sla.sla.infrastructure.models import BusinessHoursConfigModel, HolidayCalendarModel
from helpdesk_sla.sla.infrastructure.repositories import (
    SQLAlchemyBusinessCalendarRepository,
    YAMLBusinessCalendarRepository,
)
from helpdesk_sla.sla.infrastructure.external import CalendarConfigWatcher

__all__ = [
    "BusinessHoursConfigModel",
    "HolidayCalendarModel",
    "SQLAlchemyBusinessCalendarRepository",
    "YAMLBusinessCalendarRepository",
    "CalendarConfigWatcher",
]
