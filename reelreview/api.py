"""
ReelReview API
==============

FastAPI application for the video review workflow.

Endpoints (all under /api/v1 except /health):
- /auth/*          - Login, refresh, current user, password change, dev login
- /admin/users     - User management (admin)
- /submissions/*   - Submissions, status, resubmission, versions, archive, frames
- /comments        - Timestamped comment threads
- /annotations     - Reviewer annotations
- /storage/usage   - Temporary storage quota
- /proxy-video     - Google Drive video proxy
- /upload          - Comment attachment upload

Run with:
    uvicorn reelreview.api:app --host 0.0.0.0 --port 8000
"""

import logging
from datetime import datetime
from typing import Any, Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.exception_handlers import http_exception_handler, request_validation_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .api_admin import router as admin_router
from .api_auth import router as auth_router
from .api_comments import router as comments_router
from .api_media import router as media_router
from .api_submissions import router as submissions_router
from .auth import seed_dev_users
from .config import get_settings
from .db.session import get_db_session, get_engine, init_db
from .middleware.security import SecurityHeadersMiddleware
from .schemas import HealthResponse

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(
    title="ReelReview",
    description="Video review workflow: submissions, timestamped feedback, archiving",
    version=settings.service_version,
    docs_url="/docs",
    redoc_url="/redoc",
)

logger.info(f"CORS allow origins: {settings.cors_origins}")
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)

for router in (auth_router, admin_router, submissions_router, comments_router, media_router):
    app.include_router(router, prefix="/api/v1")

# Local backend serves stored files itself; Firebase objects have public URLs.
if settings.storage_backend.strip().lower() == "local":
    app.mount("/files", StaticFiles(directory=settings.local_storage_path, check_dir=False), name="files")


# =============================================================================
# Lifecycle
# =============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize on startup"""
    settings = get_settings()
    logger.info(f"Starting ReelReview v{settings.service_version}")
    logger.info("Storage backend: %s", settings.storage_backend)
    logger.info("Job queue: %s", "redis" if settings.redis_url else "inline")

    for warning in settings.validate_integrations():
        logger.warning(warning)

    init_db()

    if settings.dev_mode:
        with get_db_session() as db:
            seed_dev_users(db)


@app.get("/health", response_model=HealthResponse)
async def health():
    database = "ok"
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e.__class__.__name__}")
        database = "unavailable"

    return HealthResponse(
        status="ok" if database == "ok" else "degraded",
        version=get_settings().service_version,
        database=database,
        timestamp=datetime.utcnow(),
    )


# =============================================================================
# Error Handlers
# =============================================================================

def _is_api_v1_request(request: Request) -> bool:
    return request.url.path.startswith("/api/v1")


def _sanitize_error_detail(detail: Any) -> Any:
    if detail is None:
        return None
    if isinstance(detail, str):
        compact = " ".join(detail.split())
        return compact[:300]
    return detail


def _error_code_for_status(status_code: int) -> str:
    return {
        400: "bad_request",
        401: "unauthorized",
        403: "forbidden",
        404: "not_found",
        409: "conflict",
        413: "payload_too_large",
        422: "validation_error",
        500: "internal_error",
        503: "service_unavailable",
    }.get(status_code, "error")


def _build_error_payload(code: str, message: str, details: Any = None) -> Dict[str, Any]:
    return {
        "error": {
            "code": code,
            "message": message,
            "details": details,
        }
    }


@app.exception_handler(HTTPException)
async def api_http_exception_handler(request: Request, exc: HTTPException):
    """Structured errors for /api/v1 endpoints."""
    if not _is_api_v1_request(request):
        return await http_exception_handler(request, exc)

    detail = _sanitize_error_detail(exc.detail)
    if isinstance(detail, dict):
        message = detail.get("message") or "Request failed"
        details = detail.get("details")
        code = detail.get("code") or _error_code_for_status(exc.status_code)
    elif isinstance(detail, str) and detail:
        message = detail
        details = None
        code = _error_code_for_status(exc.status_code)
    else:
        message = "Request failed"
        details = detail
        code = _error_code_for_status(exc.status_code)

    return JSONResponse(
        status_code=exc.status_code,
        content=_build_error_payload(code, message, details),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def api_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Return structured validation errors without echoing inputs."""
    if not _is_api_v1_request(request):
        return await request_validation_exception_handler(request, exc)

    sanitized_errors = [
        {"loc": err.get("loc"), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=_build_error_payload(
            "validation_error",
            "Invalid request",
            {"errors": sanitized_errors},
        ),
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler - always return valid JSON"""
    logger.exception("Unhandled exception on %s: %s", request.url.path, exc.__class__.__name__)
    if _is_api_v1_request(request):
        return JSONResponse(
            status_code=500,
            content=_build_error_payload("internal_error", "Internal server error", {"exception": exc.__class__.__name__}),
        )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})
