"""
CivicReport - REST API

FastAPI application for citizen incident reports: phone/OTP login,
photo upload URLs, report submission, the public feed, and the admin
review, export and map endpoints.

Run with: uvicorn civicreport.api.main:app --reload
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional, List, Union

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import FastAPI, Depends, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError

from civicreport import __version__
from civicreport.api.dependencies import (
    get_current_user,
    get_otp_service,
    get_report_handler,
    require_admin,
)
from civicreport.auth.otp import OTPService
from civicreport.auth.tokens import TokenData, create_access_token
from civicreport.core.config import settings
from civicreport.core.constants import DEFAULT_PAGE_SIZE
from civicreport.core.exceptions import CivicReportError, NotFoundError
from civicreport.core.logging import setup_logging
from civicreport.crowdsource.export import iter_csv_lines
from civicreport.crowdsource.report_handler import ReportHandler
from civicreport.database.connection import get_db
from civicreport.database.seed import seed_dev_users
from civicreport.storage.object_store import ObjectStore, get_object_store
from civicreport.visualization.map_generator import render_report_map_html

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Development bootstrap: PostGIS, tables and seed users."""
    setup_logging()
    if settings.is_development and settings.seed_dev_users:
        db = get_db()
        try:
            db.enable_postgis()
            db.create_tables()
            with db.session_scope() as session:
                seed_dev_users(session)
        except SQLAlchemyError as e:
            logger.warning(f"Development bootstrap failed, database operations may fail: {e}")
    yield
    get_db().close()


# FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Citizen incident reports with phone/OTP login and moderated public feed",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Pydantic Models
# ============================================================================

class RequestOtpRequest(BaseModel):
    """Ask for a login code."""
    phone: Optional[str] = None
    name: Optional[str] = None


class VerifyOtpRequest(BaseModel):
    """Exchange a login code for a token."""
    phone: Optional[str] = None
    otp: Optional[str] = None


class RequestUploadRequest(BaseModel):
    """Ask for a pre-signed photo upload URL."""
    model_config = ConfigDict(populate_by_name=True)

    content_type: Optional[str] = Field(default=None, alias="contentType")


class CreateReportRequest(BaseModel):
    """Submit a report referencing an uploaded photo."""
    model_config = ConfigDict(populate_by_name=True)

    category: Union[int, str]
    description: Optional[str] = None
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    accuracy_meters: float = Field(..., alias="accuracyMeters")
    file_key: str = Field(..., min_length=1, max_length=200, alias="fileKey")


class RejectReportRequest(BaseModel):
    """Optional reason shown to reviewers."""
    reason: Optional[str] = None


class HealthResponse(BaseModel):
    """API health check response."""
    status: str
    version: str
    environment: str
    database: bool


# ============================================================================
# Error Handlers
# ============================================================================

@app.exception_handler(CivicReportError)
async def civicreport_error_handler(request: Request, exc: CivicReportError):
    """Render service errors as ``{"error": code}``."""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.code})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies and query parameters are input errors."""
    detail = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "invalid_request", "detail": detail},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error"},
    )


@app.exception_handler(BotoCoreError)
@app.exception_handler(ClientError)
async def object_store_error_handler(request: Request, exc: Exception):
    logger.exception(f"Object store error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error"},
    )


def _parse_report_id(report_id: str) -> uuid.UUID:
    try:
        return uuid.UUID(report_id)
    except ValueError:
        raise NotFoundError("report_not_found")


# ============================================================================
# System Routes
# ============================================================================

@app.get("/health", response_model=HealthResponse, tags=["System"])
def health_check():
    """Check API health and database connectivity."""
    database_ok = get_db().check_connection()
    return HealthResponse(
        status="healthy" if database_ok else "degraded",
        version=__version__,
        environment=settings.app_env,
        database=database_ok,
    )


# ============================================================================
# Auth Routes
# ============================================================================

@app.post("/auth/request-otp", tags=["Auth"])
def request_otp(request: RequestOtpRequest, otp_service: OTPService = Depends(get_otp_service)):
    """
    Send a login code to a phone number.

    Creates the user on first use. Outside production the code is
    echoed back in ``otp_code``.
    """
    return otp_service.request_otp(request.phone, request.name)


@app.post("/auth/verify-otp", tags=["Auth"])
def verify_otp(request: VerifyOtpRequest, otp_service: OTPService = Depends(get_otp_service)):
    """Exchange a valid code for a 12-hour bearer token."""
    user, _ = otp_service.verify_otp(request.phone, request.otp)
    return {
        "token": create_access_token(user),
        "user": user.to_dict(),
    }


# ============================================================================
# Citizen Routes
# ============================================================================

@app.post("/reports/request-upload", tags=["Reports"])
def request_upload(
    request: Optional[RequestUploadRequest] = None,
    user: TokenData = Depends(get_current_user),
    object_store: ObjectStore = Depends(get_object_store),
):
    """Issue a 15-minute pre-signed PUT URL for a JPEG or PNG photo."""
    content_type = request.content_type if request else None
    ticket = object_store.create_upload_ticket(user.user_id, content_type)
    return ticket.to_dict()


@app.post("/reports", tags=["Reports"])
def create_report(
    request: CreateReportRequest,
    user: TokenData = Depends(get_current_user),
    handler: ReportHandler = Depends(get_report_handler),
):
    """Submit a report; it stays out of the feed until moderated."""
    report = handler.create_report(
        user_id=user.user_id,
        category=request.category,
        description=request.description,
        latitude=request.lat,
        longitude=request.lng,
        accuracy_meters=request.accuracy_meters,
        file_key=request.file_key,
    )
    return {"id": str(report.id)}


@app.get("/feed", response_model=List[dict], tags=["Reports"])
def list_feed(
    category: Optional[str] = Query(None, description="Category name, case-insensitive"),
    bbox: Optional[str] = Query(None, description="minLng,minLat,maxLng,maxLat"),
    since: Optional[datetime] = Query(None, description="Created at or after"),
    page: int = Query(default=1),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE, alias="pageSize"),
    handler: ReportHandler = Depends(get_report_handler),
):
    """Approved reports, newest first."""
    reports = handler.list_feed(category=category, bbox=bbox, since=since, page=page, page_size=page_size)
    return [r.to_public_dict() for r in reports]


@app.get("/reports/{report_id}", tags=["Reports"])
def get_report(report_id: str, handler: ReportHandler = Depends(get_report_handler)):
    """A single approved report."""
    report = handler.get_public_report(_parse_report_id(report_id))
    return report.to_public_dict()


# ============================================================================
# Admin Routes
# ============================================================================

@app.get("/admin/reports/review", response_model=List[dict], tags=["Admin"])
def list_for_review(
    status: Optional[str] = Query(None, description="Status to review, e.g. NEEDS_REVIEW"),
    admin: TokenData = Depends(require_admin),
    handler: ReportHandler = Depends(get_report_handler),
):
    """Reports in one status, oldest first."""
    return [r.to_admin_dict() for r in handler.list_for_review(status)]


@app.get("/admin/reports", response_model=List[dict], tags=["Admin"])
def list_reports(
    category: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    created_from: Optional[datetime] = Query(None, alias="from"),
    created_to: Optional[datetime] = Query(None, alias="to"),
    admin: TokenData = Depends(require_admin),
    handler: ReportHandler = Depends(get_report_handler),
):
    """All reports, newest first."""
    reports = handler.list_all(
        category=category,
        status=status,
        created_from=created_from,
        created_to=created_to,
    )
    return [r.to_admin_dict() for r in reports]


@app.get("/admin/reports/export.csv", tags=["Admin"])
def export_reports_csv(
    category: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    created_from: Optional[datetime] = Query(None, alias="from"),
    created_to: Optional[datetime] = Query(None, alias="to"),
    admin: TokenData = Depends(require_admin),
    handler: ReportHandler = Depends(get_report_handler),
):
    """CSV export with masked phone numbers."""
    reports = handler.list_all(
        category=category,
        status=status,
        created_from=created_from,
        created_to=created_to,
        include_user=True,
    )
    logger.info(f"Admin {admin.user_id} exported {len(reports)} reports")
    return StreamingResponse(
        iter_csv_lines(reports),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="reports.csv"'},
    )


@app.get("/admin/reports/map", response_class=HTMLResponse, tags=["Admin"])
def reports_map(
    category: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    created_from: Optional[datetime] = Query(None, alias="from"),
    created_to: Optional[datetime] = Query(None, alias="to"),
    admin: TokenData = Depends(require_admin),
    handler: ReportHandler = Depends(get_report_handler),
):
    """Interactive map of the filtered reports, colored by status."""
    reports = handler.list_all(
        category=category,
        status=status,
        created_from=created_from,
        created_to=created_to,
    )
    return HTMLResponse(render_report_map_html(reports))


@app.post("/admin/reports/{report_id}/approve", tags=["Admin"])
def approve_report(
    report_id: str,
    admin: TokenData = Depends(require_admin),
    handler: ReportHandler = Depends(get_report_handler),
):
    """Manually approve a report."""
    handler.approve(_parse_report_id(report_id), actor_user_id=admin.user_id)
    return {}


@app.post("/admin/reports/{report_id}/reject", tags=["Admin"])
def reject_report(
    report_id: str,
    request: Optional[RejectReportRequest] = None,
    admin: TokenData = Depends(require_admin),
    handler: ReportHandler = Depends(get_report_handler),
):
    """Manually reject a report with an optional reason."""
    reason = request.reason if request else None
    handler.reject(_parse_report_id(report_id), actor_user_id=admin.user_id, reason=reason)
    return {}


# ============================================================================
# Main
# ============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
