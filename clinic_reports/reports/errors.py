"""
Report Errors

Exception hierarchy for the reports pipeline.

Copyright: © 2025 Falasifah Dental Clinic
"""

from .constants import MSG_POPUP_BLOCKED


class ReportError(Exception):
    """Base class for report errors"""


class ReportFetchError(ReportError):
    """Remote collection could not be loaded"""

    def __init__(self, endpoint: str, message: str, from_server: bool = False):
        self.endpoint = endpoint
        self.message = message
        self.from_server = from_server  # message was reported by the backend itself
        super().__init__(f"{endpoint}: {message}")


class PopupBlockedError(ReportError):
    """A print window could not be opened"""

    def __init__(self, message: str = MSG_POPUP_BLOCKED):
        self.message = message
        super().__init__(message)


class UnknownReportTypeError(ReportError):
    """Report type tag is not supported"""

    def __init__(self, report_type: str):
        self.report_type = report_type
        super().__init__(f"Unknown report type: {report_type}")


class CashierRequiredError(ReportError):
    """Transaction documents need a known cashier"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class RecordNotFoundError(ReportError):
    """Transaction record could not be found"""

    def __init__(self, source: str, record_id: str):
        self.source = source
        self.record_id = record_id
        super().__init__(f"{source} record not found: {record_id}")


class NoExportDataError(ReportError):
    """Nothing to export after filtering"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)
