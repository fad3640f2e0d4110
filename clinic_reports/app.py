"""
Main Application - Falasifah Dental Clinic Reports

FastAPI web application serving the clinic's reports: filtered report data,
printable HTML documents, CSV exports, invoices/receipts and a server-side
print preview, all built from records pulled from the clinic backend.

Copyright: © 2025 Falasifah Dental Clinic
"""

# ============================================================================
# IMPORTS
# ============================================================================
import logging
from datetime import datetime
from contextlib import asynccontextmanager

import requests
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from .config import config, setup_logging
from .reports import reports_router, preview_router
from .reports.filters import get_default_filters
from .reports.notifier import Notifier
from .reports.period_state import PeriodStateStore, check_period_rollover
from .reports.preview import PrintPreview
from .reports.printing import BrowserWindowOpener

logger = logging.getLogger(__name__)


# ============================================================================
# APPLICATION STATE
# ============================================================================

app_state = {
    "filters": None,
    "preview": None,
    "window_opener": None,
    "http_session": None
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    setup_logging()
    config.directories.ensure()
    logger.info(f"Starting clinic reports ({config.environment.value}), backend: {config.backend.server_url}")

    store = PeriodStateStore(config.directories.state_file)
    filters, rolled_over = check_period_rollover(store, app_state.get("filters") or get_default_filters())
    if rolled_over:
        logger.info(f"New reporting period, filters reset to {filters.month}/{filters.year}")
    app_state["filters"] = filters

    if app_state.get("preview") is None:
        app_state["preview"] = PrintPreview(Notifier())
    if app_state.get("window_opener") is None:
        app_state["window_opener"] = BrowserWindowOpener()
    if app_state.get("http_session") is None:
        app_state["http_session"] = requests.Session()

    yield

    logger.info("Shutting down clinic reports...")
    session = app_state.get("http_session")
    if session is not None:
        session.close()
        app_state["http_session"] = None


# Create FastAPI app
app = FastAPI(
    title="Falasifah Dental Clinic Reports",
    description="Reports, printable documents and CSV exports for the clinic dashboard",
    version="1.0.0",
    lifespan=lifespan
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every request except health checks, with its status and timing"""
    started = datetime.now()
    response = await call_next(request)
    elapsed = (datetime.now() - started).total_seconds()

    target = request.url.path + (f"?{request.url.query}" if request.url.query else "")
    summary = f"{request.method} {target} -> {response.status_code} in {elapsed:.3f}s"
    if response.status_code >= 500:
        logger.error(f"Request failed: {summary}")
    elif response.status_code >= 400:
        logger.warning(f"Request rejected: {summary}")
    elif request.url.path != "/api/health":
        logger.info(summary)
    return response


# CORS for the dashboard frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.web.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# HEALTH CHECK
# ============================================================================

@app.get("/api/health")
async def health_check():
    """Liveness check with the preview state"""
    preview = app_state.get("preview")
    return {
        "status": "healthy",
        "environment": config.environment.value,
        "preview": preview.state if preview else None,
        "timestamp": datetime.now().isoformat()
    }


# ============================================================================
# ROUTERS
# ============================================================================

app.include_router(reports_router)
app.include_router(preview_router)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Turn unexpected errors into a JSON 500 response"""
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}\n"
        f"  Exception Type: {type(exc).__name__}\n"
        f"  Message: {exc}",
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Terjadi kesalahan yang tidak terduga",
            "exception_type": type(exc).__name__,
            "message": str(exc),
            "path": request.url.path
        }
    )


# ============================================================================
# ENTRY POINT
# ============================================================================

if __name__ == "__main__":
    uvicorn.run(
        "clinic_reports.app:app",
        host=config.web.host,
        port=config.web.port,
        reload=config.web.reload,
        log_level=config.web.log_level
    )
