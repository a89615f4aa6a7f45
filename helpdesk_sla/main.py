"""
Helpdesk SLA - Main Application
================================

Business-time SLA service for a helpdesk.

Modules:
- SLA: Due dates, elapsed business minutes and business-hours checks
  against per-department/unit business hours and holidays

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Calculator, calendar cache, admin service and DTOs
- Domain: Entities, value objects and the business-time walk
- Infrastructure: Database and YAML calendar sources, file watcher
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Configuration and Core
from helpdesk_sla.config import CalendarSource, settings
from helpdesk_sla.core import ApplicationException

# Infrastructure
from helpdesk_sla.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    init_database,
)
from helpdesk_sla.sla.infrastructure import (
    CalendarConfigWatcher,
    SQLAlchemyBusinessCalendarRepository,
    YAMLBusinessCalendarRepository,
)
from helpdesk_sla.sla.application import BusinessCalendarAdminService, SLACalculator

# Module Routers
from helpdesk_sla.sla.interfaces import sla_router

# Middleware
from helpdesk_sla.shared.api.middleware import (
    CorrelationIDMiddleware,
    MetricsMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)

# Logging
from helpdesk_sla.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Open the business calendar source (database or YAML file)
    3. Create the single shared SLA calculator
    4. Start the calendar file watcher (YAML source)

    SHUTDOWN:
    1. Stop the file watcher
    2. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Helpdesk SLA Service", extra={
        "version": settings.app_version,
        "environment": settings.environment,
        "calendar_source": settings.calendar_source
    })

    app.state.settings = settings
    watcher = None

    if settings.calendar_source == CalendarSource.YAML:
        logger.info("Loading business calendar", extra={"config_path": str(settings.calendar_config_path)})
        repository = YAMLBusinessCalendarRepository(settings.calendar_config_path)
        calculator = SLACalculator(repository)
        admin_service = None

        if settings.watch_calendar_config:
            watcher = CalendarConfigWatcher(repository, calculator)
            watcher.start_watching()
    else:
        logger.info("Initializing database")
        init_database()

        # Create tables (for development - use Alembic in production)
        logger.info("Creating database tables")
        try:
            await create_tables()
        except Exception as e:
            logger.warning(f"Database not available - running in degraded mode: {e}")

        repository = SQLAlchemyBusinessCalendarRepository(get_session_context)
        calculator = SLACalculator(repository)
        admin_service = BusinessCalendarAdminService(repository, calculator)

    # Store services in app state for dependency injection
    app.state.sla_calculator = calculator
    app.state.calendar_admin_service = admin_service
    app.state.calendar_watcher = watcher

    logger.info("Helpdesk SLA Service started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Helpdesk SLA Service")

    if watcher:
        watcher.stop_watching()

    if settings.calendar_source == CalendarSource.DATABASE:
        await close_database()

    logger.info("Helpdesk SLA Service shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Helpdesk SLA API",
    description="""
    ## Business-time SLA calculations for helpdesk tickets

    **Endpoints:**
    - `POST /sla/due-date` - SLA due date from a start time and a minute budget
    - `POST /sla/business-minutes` - Business minutes between two instants
    - `GET /sla/business-hours/check` - Is an instant inside business hours
    - `GET /sla/business-hours/next-start` - Start of the next business-hours window
    - `POST /sla/cache/clear` - Drop cached calendar configuration

    **Administration (database calendar source):**
    - `GET/POST /sla/business-hours`, `POST /sla/business-hours/bulk`, `DELETE /sla/business-hours/{id}`
    - `GET/POST /sla/holidays`, `DELETE /sla/holidays/{id}`

    Business hours are wall-clock windows per department or unit, interpreted
    in the operational timezone. Holidays may be department, unit or global.
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(CorrelationIDMiddleware)
app.add_middleware(MetricsMiddleware)
app.add_middleware(LoggingMiddleware)
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(sla_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"], responses={
    200: {
        "description": "Service is healthy",
        "content": {
            "application/json": {
                "example": {
                    "status": "healthy",
                    "version": "1.0.0",
                    "environment": "development",
                    "checks": {
                        "calendar_source": "database",
                        "sla_calculator": "ready",
                        "calendar_watcher": "stopped"
                    }
                }
            }
        }
    }
})
async def health_check(request: Request):
    """
    Health check endpoint for load balancers and orchestrators.

    Reports the calendar source, calculator readiness and watcher state.
    """
    watcher = getattr(request.app.state, "calendar_watcher", None)
    checks = {
        "calendar_source": settings.calendar_source,
        "sla_calculator": "ready" if getattr(request.app.state, "sla_calculator", None) else "not_initialized",
        "calendar_watcher": "running" if watcher and watcher.is_watching else "stopped"
    }

    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Helpdesk SLA Service",
        "version": settings.app_version,
        "architecture": "Clean Architecture",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "sla": {
                "prefix": "/sla",
                "endpoints": [
                    "POST /sla/due-date - Calculate SLA due date",
                    "POST /sla/business-minutes - Business minutes between two instants",
                    "GET /sla/business-hours/check - Check business hours",
                    "GET /sla/business-hours/next-start - Next business-hours window",
                    "POST /sla/cache/clear - Clear calendar cache"
                ]
            }
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "helpdesk_sla.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
