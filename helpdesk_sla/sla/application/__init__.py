"""
SLA Application Layer
======================

Application layer for the SLA business-time engine.

Contains:
- Services: The SLA calculator facade and the calendar admin service
- Cache: Read-through cache of calendar configuration
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from helpdesk_sla.sla.application.dto import (
    CalculationScopeDTO,
    SLADueDateRequest,
    BusinessMinutesRequest,
    BusinessHoursCreateDTO,
    WeeklyScheduleDTO,
    BusinessHoursUpdateDTO,
    HolidayCreateDTO,
    HolidayUpdateDTO,
    HolidayBulkCreateDTO,
    SLADueDateResponse,
    BusinessMinutesResponse,
    BusinessHoursResponse,
    BusinessHoursCheckResponse,
    NextBusinessHourResponse,
    HolidayResponse,
    BulkCreateResponse,
    HolidayCheckResponse,
)
from helpdesk_sla.sla.application.cache import (
    ReadThroughCache,
    CalendarConfigCache,
    scope_key,
)
from helpdesk_sla.sla.application.services import (
    SLACalculator,
    BusinessCalendarAdminService,
    IBusinessCalendarRepository,
    IBusinessCalendarAdminRepository,
)

__all__ = [
    # DTOs
    "CalculationScopeDTO",
    "SLADueDateRequest",
    "BusinessMinutesRequest",
    "BusinessHoursCreateDTO",
    "WeeklyScheduleDTO",
    "BusinessHoursUpdateDTO",
    "HolidayCreateDTO",
    "HolidayUpdateDTO",
    "HolidayBulkCreateDTO",
    "SLADueDateResponse",
    "BusinessMinutesResponse",
    "BusinessHoursResponse",
    "BusinessHoursCheckResponse",
    "NextBusinessHourResponse",
    "HolidayResponse",
    "BulkCreateResponse",
    "HolidayCheckResponse",
    # Cache
    "ReadThroughCache",
    "CalendarConfigCache",
    "scope_key",
    # Services
    "SLACalculator",
    "BusinessCalendarAdminService",
    # Repository Interfaces
    "IBusinessCalendarRepository",
    "IBusinessCalendarAdminRepository",
]
