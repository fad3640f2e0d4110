"""
Report Router (API Layer)

FastAPI routers for the report endpoints (JSON data, printable HTML, HTML
downloads, CSV exports and invoices/receipts) and for the server-side print
preview. Notifications collected while serving a request are returned in the
response under "messages"; HTML and CSV responses carry them as a JSON list
in the X-Report-Messages header.

Copyright: © 2025 Falasifah Dental Clinic
"""

import json
import logging
from datetime import date
from typing import Optional, Union

from fastapi import APIRouter, HTTPException, Query, Depends, Request
from fastapi.responses import HTMLResponse, StreamingResponse
from pydantic import BaseModel

from ..config import get_config
from .constants import (
    MONTH_OPTIONS,
    YEAR_OPTIONS,
    SHIFT_OPTIONS,
    ATTENDANCE_TYPES,
    CATEGORY_LABELS,
    PAYMENT_STATUS_LABELS,
    REPORT_TITLES,
    MSG_DOWNLOAD_SUCCESS,
    MSG_EXPORT_SUCCESS,
)
from .documents import ReportDocument, TransactionDocument, render_document, document_filename
from .errors import (
    ReportError,
    UnknownReportTypeError,
    RecordNotFoundError,
    CashierRequiredError,
    NoExportDataError,
    PopupBlockedError,
)
from .filters import get_default_filters
from .handlers import ReportHandlers
from .models import ReportFilters
from .notifier import Notifier
from .preview import PrintPreview, PreviewData
from .printing import BrowserWindowOpener, print_and_notify
from .service import ReportService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/reports", tags=["reports"])
preview_router = APIRouter(prefix="/api/preview", tags=["preview"])

MESSAGES_HEADER = "X-Report-Messages"


# ============================================================================
# DEPENDENCIES
# ============================================================================

def get_notifier() -> Notifier:
    """Per-request notification collector"""
    return Notifier()


def get_access_token(request: Request) -> Optional[str]:
    """Bearer token of the caller, falling back to the configured token"""
    header = request.headers.get("Authorization", "")
    if header.lower().startswith("bearer ") and header[7:].strip():
        return header[7:].strip()
    return get_config().backend.access_token


def get_report_service(
    token: Optional[str] = Depends(get_access_token),
    notifier: Notifier = Depends(get_notifier)
) -> ReportService:
    """Get report service instance - session is shared through app_state"""
    from ..app import app_state
    backend = get_config().backend
    return ReportService(
        backend.server_url,
        token,
        notifier,
        session=app_state.get("http_session"),
        timeout=backend.timeout_seconds,
        max_workers=backend.max_workers
    )


def get_report_handlers(service: ReportService = Depends(get_report_service)) -> ReportHandlers:
    """Load the dataset for this request and wrap it in handlers"""
    return ReportHandlers(service.load_dataset(), get_config().clinic)


def get_filters(request: Request) -> ReportFilters:
    """
    Filters from the query string (snake_case or camelCase names) applied on
    top of the session's current filters.
    """
    from ..app import app_state
    base = app_state.get("filters") or get_default_filters()
    changes = {}
    for name, field in ReportFilters.model_fields.items():
        for key in (name, field.alias):
            if key and key in request.query_params:
                changes[name] = request.query_params[key]
    return base.update(**changes)


def get_preview() -> PrintPreview:
    from ..app import app_state
    if app_state.get("preview") is None:
        app_state["preview"] = PrintPreview(Notifier())
    return app_state["preview"]


def get_window_opener():
    from ..app import app_state
    if app_state.get("window_opener") is None:
        app_state["window_opener"] = BrowserWindowOpener()
    return app_state["window_opener"]


def _messages(notifier: Notifier) -> list:
    return [n.model_dump() for n in notifier.drain()]


def _message_headers(notifier: Notifier) -> dict:
    """Notifications of an HTML or CSV response, as a JSON list in a response header"""
    messages = _messages(notifier)
    if not messages:
        return {}
    return {MESSAGES_HEADER: json.dumps(messages)}


def _raise_http(error: ReportError):
    """Map a report error to the matching HTTP error"""
    if isinstance(error, (UnknownReportTypeError, RecordNotFoundError, NoExportDataError)):
        status_code = 404
    elif isinstance(error, CashierRequiredError):
        status_code = 400
    elif isinstance(error, PopupBlockedError):
        status_code = 409
    else:
        status_code = 500
    detail = getattr(error, "message", None) or str(error)
    logger.warning(f"Report request failed ({status_code}): {type(error).__name__}: {detail}")
    raise HTTPException(status_code=status_code, detail=detail)


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid date: {value}")


# ============================================================================
# FILTER & OPTION ENDPOINTS
# ============================================================================

@router.get("/filters/default")
async def get_default_filter_values():
    """Get default filters (current month, everything else unset)"""
    return get_default_filters().model_dump()


@router.get("/options")
async def get_filter_options():
    """Get option lists for the filter controls"""
    return {
        "months": MONTH_OPTIONS,
        "years": YEAR_OPTIONS,
        "shifts": SHIFT_OPTIONS,
        "attendance_types": ATTENDANCE_TYPES,
        "categories": [{"value": k, "label": v} for k, v in CATEGORY_LABELS.items()],
        "payment_statuses": [{"value": k, "label": v} for k, v in PAYMENT_STATUS_LABELS.items()],
        "report_types": [{"value": k, "label": v} for k, v in REPORT_TITLES.items()],
    }


# ============================================================================
# TRANSACTION DOCUMENTS
# ============================================================================

@router.get("/transactions/{source}/{record_id}/{kind}", response_class=HTMLResponse)
def get_transaction_document(
    source: str,
    record_id: str,
    kind: str,
    cashier_id: Optional[str] = Query(None),
    transaction_date: Optional[str] = Query(None, alias="date"),
    auto_print: bool = Query(True),
    handlers: ReportHandlers = Depends(get_report_handlers),
    notifier: Notifier = Depends(get_notifier)
):
    """Get a printable invoice or receipt for a sale or field trip sale"""
    try:
        doc = handlers.transaction_document(kind, source, record_id, cashier_id, _parse_date(transaction_date))
    except ReportError as e:
        _raise_http(e)
    return HTMLResponse(render_document(doc, auto_print=auto_print), headers=_message_headers(notifier))


# ============================================================================
# REPORT ENDPOINTS
# ============================================================================

@router.get("/{report_type}")
def get_report(
    report_type: str,
    filters: ReportFilters = Depends(get_filters),
    handlers: ReportHandlers = Depends(get_report_handlers),
    notifier: Notifier = Depends(get_notifier)
):
    """Get filtered records and totals of a report"""
    try:
        result = handlers.report(report_type, filters)
    except ReportError as e:
        _raise_http(e)
    result["messages"] = _messages(notifier)
    return result


@router.get("/{report_type}/print", response_class=HTMLResponse)
def print_report(
    report_type: str,
    filters: ReportFilters = Depends(get_filters),
    handlers: ReportHandlers = Depends(get_report_handlers),
    notifier: Notifier = Depends(get_notifier)
):
    """Get the report as HTML that opens the print dialog once loaded"""
    try:
        doc = handlers.print_document(report_type, filters)
    except ReportError as e:
        _raise_http(e)
    return HTMLResponse(render_document(doc, auto_print=True), headers=_message_headers(notifier))


@router.get("/{report_type}/download")
def download_report(
    report_type: str,
    filters: ReportFilters = Depends(get_filters),
    handlers: ReportHandlers = Depends(get_report_handlers),
    notifier: Notifier = Depends(get_notifier)
):
    """Download the report as a standalone HTML file"""
    try:
        doc = handlers.print_document(report_type, filters)
    except ReportError as e:
        _raise_http(e)
    filename = document_filename(doc.title)
    return HTMLResponse(
        render_document(doc),
        headers={"Content-Disposition": f"attachment; filename={filename}", **_message_headers(notifier)}
    )


@router.get("/{report_type}/export")
def export_report(
    report_type: str,
    filters: ReportFilters = Depends(get_filters),
    handlers: ReportHandlers = Depends(get_report_handlers),
    notifier: Notifier = Depends(get_notifier)
):
    """Export the filtered report as CSV"""
    try:
        filename, csv_text = handlers.export(report_type, filters)
    except ReportError as e:
        _raise_http(e)
    notifier.success(MSG_EXPORT_SUCCESS)
    return StreamingResponse(
        iter([csv_text]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}", **_message_headers(notifier)}
    )


# ============================================================================
# PRINT PREVIEW ENDPOINTS
# ============================================================================

class KeyPress(BaseModel):
    """Keyboard shortcut sent from the preview dialog"""
    key: str
    ctrl: bool = False
    meta: bool = False


def _stage(
    doc: Union[ReportDocument, TransactionDocument],
    record_count: int,
    preview: PrintPreview,
    opener,
    notifier: Notifier
) -> dict:
    """Show a document in the preview; confirming prints it through the window opener"""
    html = render_document(doc, auto_print=True)

    def confirm():
        outcome = print_and_notify(html, opener, preview.notifier)
        if not outcome.ok:
            raise outcome.error
        preview.close_preview()

    preview.show_preview(PreviewData(
        title=doc.title,
        content=render_document(doc),
        record_count=record_count,
        on_confirm_print=confirm
    ))
    return {
        "preview": preview.snapshot(),
        "content": preview.data.content,
        "messages": _messages(notifier) + _messages(preview.notifier),
    }


@preview_router.get("/")
async def get_preview_state(preview: PrintPreview = Depends(get_preview)):
    """Get the preview state and zoom level"""
    return preview.snapshot()


@preview_router.post("/key")
def send_preview_key(press: KeyPress, preview: PrintPreview = Depends(get_preview)):
    """Apply a keyboard shortcut to the preview"""
    handled = preview.handle_key(press.key, ctrl=press.ctrl, meta=press.meta)
    return {"handled": handled, "preview": preview.snapshot(), "messages": _messages(preview.notifier)}


@preview_router.post("/confirm")
def confirm_preview(preview: PrintPreview = Depends(get_preview)):
    """Print the staged document"""
    if not preview.is_open:
        raise HTTPException(status_code=404, detail="Tidak ada pratinjau cetak")
    ok = preview.confirm_print()
    messages = _messages(preview.notifier)
    if not ok:
        detail = next((m["message"] for m in messages if m["level"] == "error"), "Gagal mencetak laporan")
        raise HTTPException(status_code=409, detail=detail)
    return {"ok": True, "preview": preview.snapshot(), "messages": messages}


@preview_router.delete("/")
async def close_preview(preview: PrintPreview = Depends(get_preview)):
    """Close the preview and discard the staged document"""
    preview.close_preview()
    return preview.snapshot()


@preview_router.get("/download")
def download_preview(preview: PrintPreview = Depends(get_preview)):
    """Download the staged document as HTML"""
    result = preview.download()
    if result is None:
        raise HTTPException(status_code=404, detail="Tidak ada pratinjau cetak")
    filename, html = result
    preview.notifier.success(MSG_DOWNLOAD_SUCCESS)
    return HTMLResponse(html, headers={"Content-Disposition": f"attachment; filename={filename}"})


@preview_router.post("/transactions/{source}/{record_id}/{kind}")
def stage_transaction_preview(
    source: str,
    record_id: str,
    kind: str,
    cashier_id: Optional[str] = Query(None),
    transaction_date: Optional[str] = Query(None, alias="date"),
    handlers: ReportHandlers = Depends(get_report_handlers),
    preview: PrintPreview = Depends(get_preview),
    opener=Depends(get_window_opener),
    notifier: Notifier = Depends(get_notifier)
):
    """Stage an invoice or receipt in the print preview"""
    try:
        doc = handlers.transaction_document(kind, source, record_id, cashier_id, _parse_date(transaction_date))
    except ReportError as e:
        _raise_http(e)
    logger.info(f"Staging {source} {kind} {doc.number} preview")
    return _stage(doc, len(doc.items), preview, opener, notifier)


@preview_router.post("/{report_type}")
def stage_preview(
    report_type: str,
    filters: ReportFilters = Depends(get_filters),
    handlers: ReportHandlers = Depends(get_report_handlers),
    preview: PrintPreview = Depends(get_preview),
    opener=Depends(get_window_opener),
    notifier: Notifier = Depends(get_notifier)
):
    """Stage a report in the print preview"""
    try:
        doc = handlers.print_document(report_type, filters)
    except ReportError as e:
        _raise_http(e)
    logger.info(f"Staging {report_type} preview with {doc.record_count} records")
    return _stage(doc, doc.record_count, preview, opener, notifier)
