import logging
from contextlib import asynccontextmanager
from typing import Annotated, Any, Dict, List

from fastapi import FastAPI, Response, Request, Depends, HTTPException, status, Query
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session

from copilot_analytics.config import settings
from copilot_analytics.storage import (
    init_db,
    check_db_health,
    get_db,
    get_appointments,
    get_contacts,
    get_messages,
    load_snapshot,
)
from copilot_analytics.logging_utils import setup_logging, RequestLoggingMiddleware, log_report_data
from copilot_analytics.metrics import get_metrics, get_metrics_content_type
from copilot_analytics.reports import (
    ReportNotFound,
    RowSet,
    get_pipeline,
    run_report,
    run_reports,
    validate_report_names,
)
from copilot_analytics.schemas import (
    AppointmentResponse,
    ContactResponse,
    ErrorResponse,
    HealthResponse,
    MessageResponse,
)


# Setup structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    - Startup: Register models and create missing tables
    """
    init_db()
    yield


app = FastAPI(
    title="Copilot Analytics API",
    description="Read-only analytics over assistant chat logs and appointments",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_methods=["GET"],
    allow_headers=["*"],
)


def serialize_rows(rows: RowSet) -> List[Dict[str, Any]]:
    """One JSON object per row, camelCase keys in field order."""
    return [row.model_dump(mode="json", by_alias=True) for row in rows]


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """Liveness probe - always returns 200 once the app is running."""
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
async def health_ready(response: Response) -> HealthResponse:
    """
    Readiness probe - returns 200 only if the DB is reachable and both
    source tables exist. Otherwise returns 503 (Service Unavailable).
    """
    if not check_db_health():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not_ready",
            reason="Database not reachable or schema not applied"
        )

    return HealthResponse(status="ready")


# =============================================================================
# Listing Routes
# =============================================================================

@app.get("/api/appointments", response_model=List[AppointmentResponse])
def list_appointments(db: Session = Depends(get_db)) -> List[AppointmentResponse]:
    """All appointments, most recently created first."""
    return [AppointmentResponse.model_validate(row) for row in get_appointments(db)]


@app.get("/api/contacts", response_model=List[ContactResponse])
def list_contacts(db: Session = Depends(get_db)) -> List[ContactResponse]:
    """Contacts with messages, ordered by their latest message (newest first)."""
    return [ContactResponse(**row) for row in get_contacts(db)]


@app.get("/api/messages", response_model=List[MessageResponse])
def list_messages(
    contact: Annotated[str | None, Query(description="Only this contact, in chat order")] = None,
    db: Session = Depends(get_db)
) -> List[MessageResponse]:
    """
    List chat log rows.

    Query Parameters:
        - contact: phone number; returns that conversation oldest first.
          Without it, every message is returned newest first.
    """
    logger.info(f"GET /api/messages: contact={contact}")
    return [MessageResponse.model_validate(row) for row in get_messages(db, contact=contact)]


# =============================================================================
# Report Routes
# =============================================================================

@app.get(
    "/api/reports",
    responses={404: {"model": ErrorResponse, "description": "Unknown report"}},
)
def get_report(
    request: Request,
    name: Annotated[str, Query(min_length=1, description="Report name")],
    db: Session = Depends(get_db)
) -> List[Dict[str, Any]]:
    """
    Compute one report over the current data.

    Response:
        - list of row objects, all with the same keys
    """
    try:
        get_pipeline(name)
    except ReportNotFound as e:
        logger.warning(f"Report not found: {name}")
        log_report_data(request, [name], "not_found")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    # Load only once the name is known to exist
    rows = run_report(name, load_snapshot(db))

    log_report_data(request, [name], "ok")
    return serialize_rows(rows)


@app.get(
    "/api/reports/batch",
    responses={404: {"model": ErrorResponse, "description": "Unknown report"}},
)
def get_reports(
    request: Request,
    name: Annotated[List[str], Query(min_length=1, description="Report names (repeat the parameter)")],
    db: Session = Depends(get_db)
) -> Dict[str, List[Dict[str, Any]]]:
    """
    Compute several reports over one snapshot, in parallel.

    Response:
        - object mapping each requested name to its rows
    """
    try:
        requested = validate_report_names(name)
    except ReportNotFound as e:
        logger.warning(f"Report not found: {e.name}")
        log_report_data(request, name, "not_found")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    results = run_reports(requested, load_snapshot(db), max_workers=settings.REPORT_MAX_WORKERS)

    log_report_data(request, name, "ok")
    return {report: serialize_rows(rows) for report, rows in results.items()}


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """
    Expose Prometheus-style metrics.

    Includes HTTP request counters and latency, report run outcomes and
    computation time, and records skipped per pipeline.
    """
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )
