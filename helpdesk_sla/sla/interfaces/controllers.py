"""
SLA Controllers (API Routes)
=============================

FastAPI routes for SLA business-time calculations and business calendar
administration.

Controllers are thin - they delegate to application services.
"""

from datetime import date, datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from helpdesk_sla.core import ValidationException
from helpdesk_sla.sla.application import (
    SLACalculator,
    BusinessCalendarAdminService,
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
from helpdesk_sla.sla.domain import SLACalculationOptions, TimeWalk
from helpdesk_sla.shared.infrastructure.logging import get_context_logger

router = APIRouter(prefix="/sla", tags=["SLA"])


# ========== Example payloads for Swagger ==========

DUE_DATE_RESPONSE_EXAMPLE = {
    "due_date": "2025-07-08T09:00:00+07:00",
    "business_minutes_remaining": 480.0,
    "total_minutes_remaining": 1440.0,
    "is_overdue": False,
    "is_currently_in_business_hours": True,
    "holidays_skipped": [],
    "next_business_hour_start": "2025-07-08T08:00:00+07:00"
}


# ========== Dependencies ==========

def get_calculator(request: Request) -> SLACalculator:
    """The application-wide calculator (one instance, one cache)."""
    return request.app.state.sla_calculator


def get_admin_service(request: Request) -> BusinessCalendarAdminService:
    """Calendar admin service; only the database calendar source supports writes."""
    admin_service = getattr(request.app.state, "calendar_admin_service", None)
    if admin_service is None:
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail="Business calendar administration requires the database calendar source"
        )
    return admin_service


def get_query_options(
    department_id: Optional[int] = Query(None, description="Department scope"),
    unit_id: Optional[int] = Query(None, description="Unit scope"),
    timezone: Optional[str] = Query(None, description="IANA timezone"),
    calculator: SLACalculator = Depends(get_calculator)
) -> SLACalculationOptions:
    try:
        return SLACalculationOptions(
            department_id=department_id,
            unit_id=unit_id,
            timezone=timezone or calculator.default_timezone
        )
    except ValueError as e:
        raise ValidationException(str(e), {"timezone": timezone}) from e


# ========== Calculations ==========

@router.post(
    "/due-date",
    response_model=SLADueDateResponse,
    summary="Calculate an SLA due date",
    description="""
    Calculate when an SLA budget runs out.

    With `business_hours_only` (default) the budget is consumed only inside
    the scope's business-hours windows, skipping holidays and closed days.
    Otherwise the budget is plain wall-clock minutes.

    Returns 422 when the scope has no business hours configured.
    """,
    responses={
        200: {
            "description": "Due date calculated",
            "content": {"application/json": {"example": DUE_DATE_RESPONSE_EXAMPLE}}
        },
        422: {"description": "No business hours configured for the scope"}
    }
)
async def calculate_due_date(
    body: SLADueDateRequest,
    calculator: SLACalculator = Depends(get_calculator)
):
    result = await calculator.calculate_sla_due_date(
        body.start_date,
        body.sla_minutes,
        body.to_options(calculator.default_timezone)
    )
    return SLADueDateResponse.from_domain(result)


@router.post(
    "/business-minutes",
    response_model=BusinessMinutesResponse,
    summary="Business minutes between two instants"
)
async def calculate_business_minutes(
    body: BusinessMinutesRequest,
    calculator: SLACalculator = Depends(get_calculator)
):
    minutes = await calculator.calculate_business_minutes_between(
        body.from_date,
        body.to_date,
        body.to_options(calculator.default_timezone)
    )
    return BusinessMinutesResponse(
        from_date=body.from_date,
        to_date=body.to_date,
        business_minutes=minutes
    )


@router.get(
    "/business-hours/check",
    response_model=BusinessHoursCheckResponse,
    summary="Check whether an instant is inside business hours"
)
async def check_business_hours(
    check_date: Optional[datetime] = Query(None, description="Defaults to now"),
    options: SLACalculationOptions = Depends(get_query_options),
    calculator: SLACalculator = Depends(get_calculator)
):
    moment = check_date or calculator.now()
    return BusinessHoursCheckResponse(
        check_date=moment,
        is_business_hours=await calculator.is_currently_in_business_hours(moment, options),
        day_of_week=TimeWalk.day_of_week(moment, options.tz)
    )


@router.get(
    "/business-hours/next-start",
    response_model=NextBusinessHourResponse,
    summary="Start of the next business-hours window"
)
async def next_business_hour_start(
    from_date: Optional[datetime] = Query(None, description="Defaults to now"),
    options: SLACalculationOptions = Depends(get_query_options),
    calculator: SLACalculator = Depends(get_calculator)
):
    origin = from_date or calculator.now()
    return NextBusinessHourResponse(
        from_date=origin,
        next_business_hour_start=await calculator.get_next_business_hour_start(origin, options)
    )


@router.post(
    "/cache/clear",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Drop cached business calendar configuration"
)
async def clear_cache(request: Request, calculator: SLACalculator = Depends(get_calculator)):
    calculator.clear_cache()
    get_context_logger(__name__, getattr(request.state, "correlation_id", None)).info(
        "Calendar cache cleared on request"
    )


# ========== Business hours administration ==========

@router.get(
    "/business-hours",
    response_model=List[BusinessHoursResponse],
    summary="List active business-hours windows"
)
async def list_business_hours(
    department_id: Optional[int] = Query(None),
    unit_id: Optional[int] = Query(None),
    admin: BusinessCalendarAdminService = Depends(get_admin_service)
):
    windows = await admin.list_business_hours(department_id, unit_id)
    return [BusinessHoursResponse.from_domain(w) for w in windows]


@router.post(
    "/business-hours",
    response_model=BusinessHoursResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a business-hours window",
    responses={409: {"description": "The scope already has a window on that day"}}
)
async def create_business_hours(
    body: BusinessHoursCreateDTO,
    admin: BusinessCalendarAdminService = Depends(get_admin_service)
):
    window = await admin.create_business_hours(body.to_domain())
    return BusinessHoursResponse.from_domain(window)


@router.post(
    "/business-hours/bulk",
    response_model=BulkCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a weekly schedule",
    description="Days that already have an active window are skipped."
)
async def create_weekly_schedule(
    body: WeeklyScheduleDTO,
    admin: BusinessCalendarAdminService = Depends(get_admin_service)
):
    created = await admin.create_weekly_schedule(body.to_domain())
    return BulkCreateResponse(created=created)


@router.get(
    "/business-hours/{window_id}",
    response_model=BusinessHoursResponse,
    summary="Get a business-hours window"
)
async def get_business_hours(
    window_id: int,
    admin: BusinessCalendarAdminService = Depends(get_admin_service)
):
    return BusinessHoursResponse.from_domain(await admin.get_business_hours(window_id))


@router.put(
    "/business-hours/{window_id}",
    response_model=BusinessHoursResponse,
    summary="Update a business-hours window",
    description="Only the fields sent are changed. The window keeps its scope.",
    responses={
        400: {"description": "The start time would not precede the end time"},
        409: {"description": "The scope already has a window on the new day"}
    }
)
async def update_business_hours(
    window_id: int,
    body: BusinessHoursUpdateDTO,
    admin: BusinessCalendarAdminService = Depends(get_admin_service)
):
    window = await admin.update_business_hours(window_id, body.changes())
    return BusinessHoursResponse.from_domain(window)


@router.delete(
    "/business-hours/{window_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate a business-hours window"
)
async def delete_business_hours(
    window_id: int,
    admin: BusinessCalendarAdminService = Depends(get_admin_service)
):
    await admin.deactivate_business_hours(window_id)


# ========== Holiday administration ==========

@router.get(
    "/holidays",
    response_model=List[HolidayResponse],
    summary="List active holidays"
)
async def list_holidays(
    department_id: Optional[int] = Query(None),
    unit_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    admin: BusinessCalendarAdminService = Depends(get_admin_service)
):
    holidays = await admin.list_holidays(department_id, unit_id, start_date, end_date)
    return [HolidayResponse.from_domain(h) for h in holidays]


@router.post(
    "/holidays",
    response_model=HolidayResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a holiday"
)
async def create_holiday(
    body: HolidayCreateDTO,
    admin: BusinessCalendarAdminService = Depends(get_admin_service)
):
    holiday = await admin.create_holiday(body.to_domain())
    return HolidayResponse.from_domain(holiday)


@router.post(
    "/holidays/bulk",
    response_model=BulkCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create several holidays"
)
async def create_holidays_bulk(
    body: HolidayBulkCreateDTO,
    admin: BusinessCalendarAdminService = Depends(get_admin_service)
):
    return BulkCreateResponse(created=await admin.create_holidays_bulk(body.to_domain()))


@router.get(
    "/holidays/check/{check_date}",
    response_model=HolidayCheckResponse,
    summary="Check whether a day is a holiday for a scope",
    description="Department, unit and global holidays all count."
)
async def check_holiday(
    check_date: date,
    department_id: Optional[int] = Query(None),
    unit_id: Optional[int] = Query(None),
    admin: BusinessCalendarAdminService = Depends(get_admin_service)
):
    holidays = await admin.holidays_on(check_date, department_id, unit_id)
    return HolidayCheckResponse(
        check_date=check_date,
        is_holiday=bool(holidays),
        holidays=[HolidayResponse.from_domain(h) for h in holidays]
    )


@router.get(
    "/holidays/{holiday_id}",
    response_model=HolidayResponse,
    summary="Get a holiday"
)
async def get_holiday(
    holiday_id: int,
    admin: BusinessCalendarAdminService = Depends(get_admin_service)
):
    return HolidayResponse.from_domain(await admin.get_holiday(holiday_id))


@router.put(
    "/holidays/{holiday_id}",
    response_model=HolidayResponse,
    summary="Update a holiday",
    description="Only the fields sent are changed."
)
async def update_holiday(
    holiday_id: int,
    body: HolidayUpdateDTO,
    admin: BusinessCalendarAdminService = Depends(get_admin_service)
):
    return HolidayResponse.from_domain(await admin.update_holiday(holiday_id, body.changes()))


@router.delete(
    "/holidays/{holiday_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate a holiday"
)
async def delete_holiday(
    holiday_id: int,
    admin: BusinessCalendarAdminService = Depends(get_admin_service)
):
    await admin.deactivate_holiday(holiday_id)


# Export router for inclusion in main app
sla_router = router
