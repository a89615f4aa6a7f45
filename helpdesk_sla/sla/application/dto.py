"""
SLA Application DTOs
=====================

Data Transfer Objects for the SLA API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses, and carry the write-time rules of the
business calendar (time format, window order, one active window per scope
and day is checked by the repository).
"""

from datetime import date as calendar_date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from helpdesk_sla.config import DEFAULT_TIMEZONE, WEEKDAYS, DayOfWeek
from helpdesk_sla.sla.domain import (
    BusinessHoursWindow,
    HolidayEntry,
    SLACalculationOptions,
    SLACalculationResult,
    TimeWalk,
)
from helpdesk_sla.sla.domain.entities import TIME_STRING_PATTERN


def _validate_time_string(v: Optional[str]) -> Optional[str]:
    if v is not None and not TIME_STRING_PATTERN.match(v):
        raise ValueError("Time format must be HH:mm (24-hour format)")
    return v


def _validate_recurrence_rule(v: Optional[str]) -> Optional[str]:
    if v is not None and not (v.startswith("FREQ=") and len(v) > 5):
        raise ValueError("Invalid recurrence rule format")
    return v


# ========== Request DTOs ==========

class CalculationScopeDTO(BaseModel):
    """Scope and mode shared by calculation requests."""
    department_id: Optional[int] = Field(None, description="Department scope")
    unit_id: Optional[int] = Field(None, description="Unit scope")
    timezone: Optional[str] = Field(None, description="IANA timezone (defaults to the service timezone)")
    business_hours_only: bool = Field(default=True, description="Count only business time")

    def to_options(self, default_timezone: str) -> SLACalculationOptions:
        """Convert to calculator options."""
        return SLACalculationOptions(
            department_id=self.department_id,
            unit_id=self.unit_id,
            timezone=self.timezone or default_timezone,
            business_hours_only=self.business_hours_only
        )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            SLACalculationOptions(timezone=v)
        return v


class SLADueDateRequest(CalculationScopeDTO):
    """Request model for a due-date calculation."""
    start_date: datetime = Field(..., description="When the SLA clock starts")
    sla_minutes: int = Field(..., ge=0, description="SLA budget in minutes")


class BusinessMinutesRequest(CalculationScopeDTO):
    """Request model for elapsed business minutes between two instants."""
    from_date: datetime
    to_date: datetime


class BusinessHoursCreateDTO(BaseModel):
    """DTO for creating a single business-hours window."""
    department_id: Optional[int] = None
    unit_id: Optional[int] = None
    day_of_week: int = Field(..., ge=0, le=6, description="0 (Sunday) .. 6 (Saturday)")
    start_time: str = Field(..., description="HH:mm")
    end_time: str = Field(..., description="HH:mm")
    timezone: str = Field(default=DEFAULT_TIMEZONE)
    is_active: bool = True

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, v: str) -> str:
        return _validate_time_string(v)

    @model_validator(mode="after")
    def validate_window(self) -> "BusinessHoursCreateDTO":
        """Start before end, and exactly one of department/unit."""
        if TimeWalk.parse_time_string(self.start_time) >= TimeWalk.parse_time_string(self.end_time):
            raise ValueError("Start time must be before end time")
        if (self.department_id is None) == (self.unit_id is None):
            raise ValueError("Either department_id or unit_id must be provided, but not both")
        return self

    def to_domain(self) -> BusinessHoursWindow:
        return BusinessHoursWindow(
            day_of_week=self.day_of_week,
            start_time=self.start_time,
            end_time=self.end_time,
            is_active=self.is_active,
            department_id=self.department_id,
            unit_id=self.unit_id,
            timezone=self.timezone
        )


class WeeklyScheduleDTO(BaseModel):
    """
    DTO for creating business hours for a whole week.

    Monday-Friday always get the weekday window; Saturday and Sunday get a
    window only when both of their times are given.
    """
    department_id: Optional[int] = None
    unit_id: Optional[int] = None
    weekday_start: str = "09:00"
    weekday_end: str = "17:00"
    saturday_start: Optional[str] = "09:00"
    saturday_end: Optional[str] = "12:00"
    sunday_start: Optional[str] = None
    sunday_end: Optional[str] = None
    timezone: str = Field(default=DEFAULT_TIMEZONE)

    @field_validator(
        "weekday_start", "weekday_end", "saturday_start",
        "saturday_end", "sunday_start", "sunday_end"
    )
    @classmethod
    def validate_time_format(cls, v: Optional[str]) -> Optional[str]:
        return _validate_time_string(v)

    @model_validator(mode="after")
    def validate_scope(self) -> "WeeklyScheduleDTO":
        if (self.department_id is None) == (self.unit_id is None):
            raise ValueError("Either department_id or unit_id must be provided, but not both")
        for start, end in (
            (self.weekday_start, self.weekday_end),
            (self.saturday_start, self.saturday_end),
            (self.sunday_start, self.sunday_end),
        ):
            if start and end and TimeWalk.parse_time_string(start) >= TimeWalk.parse_time_string(end):
                raise ValueError("Start time must be before end time")
        return self

    def to_domain(self) -> List[BusinessHoursWindow]:
        days = [(day, self.weekday_start, self.weekday_end) for day in WEEKDAYS]
        if self.saturday_start and self.saturday_end:
            days.append((DayOfWeek.SATURDAY, self.saturday_start, self.saturday_end))
        if self.sunday_start and self.sunday_end:
            days.append((DayOfWeek.SUNDAY, self.sunday_start, self.sunday_end))

        return [
            BusinessHoursWindow(
                day_of_week=day,
                start_time=start,
                end_time=end,
                department_id=self.department_id,
                unit_id=self.unit_id,
                timezone=self.timezone
            )
            for day, start, end in days
        ]


class BusinessHoursUpdateDTO(BaseModel):
    """
    DTO for editing a business-hours window.

    Only the fields sent are changed. The scope of a window is fixed; the
    start-before-end rule is checked against the stored times by the
    admin service.
    """
    day_of_week: Optional[int] = Field(None, ge=0, le=6)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    timezone: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, v: Optional[str]) -> Optional[str]:
        return _validate_time_string(v)

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class HolidayCreateDTO(BaseModel):
    """DTO for creating a holiday; leave both scope ids empty for a global holiday."""
    name: str = Field(..., min_length=1)
    date: calendar_date
    description: Optional[str] = None
    is_recurring: bool = False
    recurrence_rule: Optional[str] = None
    department_id: Optional[int] = None
    unit_id: Optional[int] = None
    is_active: bool = True

    @field_validator("recurrence_rule")
    @classmethod
    def validate_rule_format(cls, v: Optional[str]) -> Optional[str]:
        return _validate_recurrence_rule(v)

    @model_validator(mode="after")
    def validate_recurrence(self) -> "HolidayCreateDTO":
        if self.is_recurring and not self.recurrence_rule:
            raise ValueError("Recurrence rule is required for recurring holidays")
        return self

    def to_domain(self) -> HolidayEntry:
        return HolidayEntry(
            date=self.date,
            is_active=self.is_active,
            department_id=self.department_id,
            unit_id=self.unit_id,
            name=self.name,
            description=self.description,
            is_recurring=self.is_recurring,
            recurrence_rule=self.recurrence_rule
        )


class HolidayUpdateDTO(BaseModel):
    """DTO for editing a holiday; only the fields sent are changed."""
    name: Optional[str] = Field(None, min_length=1)
    date: Optional[calendar_date] = None
    description: Optional[str] = None
    is_recurring: Optional[bool] = None
    recurrence_rule: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("recurrence_rule")
    @classmethod
    def validate_rule_format(cls, v: Optional[str]) -> Optional[str]:
        return _validate_recurrence_rule(v)

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class HolidayBulkCreateDTO(BaseModel):
    """DTO for creating several holidays at once, e.g. a national calendar."""
    holidays: List[HolidayCreateDTO] = Field(..., min_length=1)

    def to_domain(self) -> List[HolidayEntry]:
        return [holiday.to_domain() for holiday in self.holidays]


# ========== Response DTOs ==========

class SLADueDateResponse(BaseModel):
    """Response model for a due-date calculation."""
    due_date: datetime
    business_minutes_remaining: float = Field(..., ge=0)
    total_minutes_remaining: float = Field(..., ge=0)
    is_overdue: bool
    is_currently_in_business_hours: bool
    holidays_skipped: List[str] = Field(default_factory=list, description="ISO dates skipped")
    next_business_hour_start: Optional[datetime] = None

    @classmethod
    def from_domain(cls, result: SLACalculationResult) -> "SLADueDateResponse":
        return cls(
            due_date=result.due_date,
            business_minutes_remaining=result.business_minutes_remaining,
            total_minutes_remaining=result.total_minutes_remaining,
            is_overdue=result.is_overdue,
            is_currently_in_business_hours=result.is_currently_in_business_hours,
            holidays_skipped=list(result.holidays_skipped),
            next_business_hour_start=result.next_business_hour_start
        )


class BusinessMinutesResponse(BaseModel):
    from_date: datetime
    to_date: datetime
    business_minutes: float


class BusinessHoursResponse(BaseModel):
    """Response model for a business-hours window."""
    id: Optional[int] = None
    department_id: Optional[int] = None
    unit_id: Optional[int] = None
    day_of_week: int
    start_time: str
    end_time: str
    timezone: str
    is_active: bool

    @classmethod
    def from_domain(cls, window: BusinessHoursWindow) -> "BusinessHoursResponse":
        return cls(
            id=window.id,
            department_id=window.department_id,
            unit_id=window.unit_id,
            day_of_week=window.day_of_week,
            start_time=window.start_time,
            end_time=window.end_time,
            timezone=window.timezone,
            is_active=window.is_active
        )


class BusinessHoursCheckResponse(BaseModel):
    check_date: datetime
    is_business_hours: bool
    day_of_week: int


class NextBusinessHourResponse(BaseModel):
    from_date: datetime
    next_business_hour_start: Optional[datetime] = Field(
        None, description="Null when nothing opens within the look-ahead horizon"
    )


class HolidayResponse(BaseModel):
    """Response model for a holiday entry."""
    id: Optional[int] = None
    name: str
    date: calendar_date
    description: Optional[str] = None
    is_recurring: bool
    recurrence_rule: Optional[str] = None
    department_id: Optional[int] = None
    unit_id: Optional[int] = None
    is_active: bool

    @classmethod
    def from_domain(cls, holiday: HolidayEntry) -> "HolidayResponse":
        return cls(
            id=holiday.id,
            name=holiday.name,
            date=holiday.date,
            description=holiday.description,
            is_recurring=holiday.is_recurring,
            recurrence_rule=holiday.recurrence_rule,
            department_id=holiday.department_id,
            unit_id=holiday.unit_id,
            is_active=holiday.is_active
        )


class BulkCreateResponse(BaseModel):
    created: int = Field(..., description="Number of entries created (existing business-hours days are skipped)")


class HolidayCheckResponse(BaseModel):
    """Whether a calendar day is a holiday for a scope, with the matching entries."""
    check_date: calendar_date
    is_holiday: bool
    holidays: List[HolidayResponse] = Field(default_factory=list)
