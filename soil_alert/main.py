import logging
from contextlib import asynccontextmanager
from zoneinfo import ZoneInfo

from fastapi import FastAPI, Response, Request, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from soil_alert.config import settings
from soil_alert.errors import PersistenceError, ValidationError
from soil_alert.storage import SessionLocal, init_db, check_db_health, get_db, get_contact, upsert_contact
from soil_alert.logging_utils import setup_logging, RequestLoggingMiddleware, attach_log_data
from soil_alert.metrics import get_metrics, get_metrics_content_type
from soil_alert.notifier import SmsNotifier
from soil_alert.scheduler import DailyScheduler
from soil_alert.sensor import SensorClient
from soil_alert.workflow import AlertWorkflow
from soil_alert.schemas import (
    CheckOutcome,
    CheckResult,
    ContactResponse,
    ErrorResponse,
    FarmerNumberRequest,
    FarmerNumberUpdateResponse,
    HealthResponse,
    TriggerSmsResponse,
)


# Setup structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def build_workflow() -> AlertWorkflow:
    """Wire the alert workflow to the configured sensor API and Twilio account."""
    return AlertWorkflow(
        sensor=SensorClient(settings.SENSOR_API_URL, timeout=settings.HTTP_TIMEOUT_SECONDS),
        notifier=SmsNotifier(
            settings.TWILIO_ACCOUNT_SID,
            settings.TWILIO_AUTH_TOKEN,
            settings.TWILIO_PHONE_NUMBER,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        ),
        session_factory=SessionLocal,
        threshold=settings.MOISTURE_THRESHOLD,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    - Startup: Initialize database, wire the workflow, start the daily scheduler
    - Shutdown: Stop the scheduler
    """
    init_db()
    app.state.workflow = build_workflow()

    scheduler = None
    if settings.SCHEDULER_ENABLED:
        scheduler = DailyScheduler(
            app.state.workflow,
            at=settings.DAILY_CHECK_TIME,
            run_on_startup=settings.RUN_CHECK_ON_STARTUP,
            tz=ZoneInfo(settings.TIMEZONE) if settings.TIMEZONE else None,
        )
        scheduler.start()

    yield

    if scheduler is not None:
        await scheduler.stop()


app = FastAPI(
    title="Soil Moisture SMS Alert API",
    description="Sends an SMS to the registered farmer when soil moisture runs low",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)


def get_workflow(request: Request) -> AlertWorkflow:
    """Dependency returning the workflow wired at startup."""
    return request.app.state.workflow


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/", response_class=PlainTextResponse)
async def home() -> str:
    """Home route for a quick liveness check."""
    return "Soil moisture SMS alert service running..."


@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """
    Liveness probe - always returns 200 once the app is running.
    """
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
def health_ready(response: Response) -> HealthResponse:
    """
    Readiness probe - returns 200 only if the DB is reachable and the
    farmers table exists, 503 (Service Unavailable) otherwise.
    """
    if not check_db_health():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not_ready",
            reason="Database not reachable or schema not applied"
        )

    return HealthResponse(status="ready")


# =============================================================================
# Farmer Contact Routes
# =============================================================================

@app.post(
    "/api/farmer-number",
    response_model=FarmerNumberUpdateResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid phone number"},
        500: {"model": ErrorResponse, "description": "Contact could not be stored"},
    }
)
def update_farmer_number(
    body: FarmerNumberRequest,
    db: Session = Depends(get_db)
) -> FarmerNumberUpdateResponse:
    """
    Create or replace the farmer who receives SMS alerts.

    The country code is prepended when missing; the result must be
    10 digits with an optional country-code prefix.
    """
    if not body.phone_number:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="phoneNumber is required"
        )

    try:
        contact = upsert_contact(db, name=body.name, phone_number=body.phone_number)
    except ValidationError as e:
        logger.warning(f"Rejected farmer number: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PersistenceError as e:
        logger.error(f"Error updating farmer number: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update farmer number"
        )

    return FarmerNumberUpdateResponse(name=contact.name, phone_number=contact.phone_number)


@app.get(
    "/api/farmer-number",
    response_model=ContactResponse,
    responses={404: {"model": ErrorResponse, "description": "No farmer registered"}},
)
def read_farmer_number(db: Session = Depends(get_db)) -> ContactResponse:
    """Return the stored farmer contact."""
    try:
        contact = get_contact(db)
    except PersistenceError as e:
        logger.error(f"Error fetching farmer number: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve farmer number"
        )

    if contact is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Farmer number is not set")

    return ContactResponse.model_validate(contact)


# =============================================================================
# Alert Routes
# =============================================================================

@app.get(
    "/api/trigger-sms",
    response_model=TriggerSmsResponse,
    responses={
        404: {"model": ErrorResponse, "description": "No farmer registered"},
        500: {"model": ErrorResponse, "description": "Sensor or contact store unavailable"},
    }
)
def trigger_sms(
    request: Request,
    workflow: AlertWorkflow = Depends(get_workflow)
) -> TriggerSmsResponse:
    """
    Send the current soil moisture to the farmer, bypassing the threshold.

    SMS delivery failures are reported with delivered=false rather than
    an error status.
    """
    result = workflow.trigger_manual()
    attach_log_data(request, outcome=result.outcome.value)

    if result.outcome == CheckOutcome.NO_CONTACT:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Farmer number is not set")
    if result.outcome == CheckOutcome.FETCH_FAILED:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch soil moisture data"
        )
    if result.outcome == CheckOutcome.STORE_FAILED:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve farmer number"
        )

    delivered = result.outcome == CheckOutcome.MANUAL_SENT
    message = (
        "Manual SMS sent successfully with current soil moisture"
        if delivered else "Manual SMS could not be delivered"
    )
    return TriggerSmsResponse(
        message=message,
        delivered=delivered,
        reading=result.reading,
        message_sid=result.message_sid,
    )


@app.post("/api/check", response_model=CheckResult)
def run_check(
    request: Request,
    workflow: AlertWorkflow = Depends(get_workflow)
) -> CheckResult:
    """
    Run the threshold check now, exactly as the daily schedule does.

    Always 200: the outcome field reports what happened.
    """
    result = workflow.run_check(trigger="api")
    attach_log_data(request, outcome=result.outcome.value)
    return result


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """
    Expose Prometheus-style metrics.

    Returns metrics in Prometheus text exposition format including:
    - http_requests_total: Total HTTP requests by method, path, status
    - request_latency_seconds: Request latency histogram
    - alert_checks_total: Workflow runs by trigger and outcome
    - sms_messages_total: SMS send attempts by result
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
