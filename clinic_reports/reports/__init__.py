"""
Reports Module

Reports module for the Falasifah Dental Clinic dashboard: data access,
normalization, filtering, financial aggregation, printable documents, print
preview and CSV export, exposed through FastAPI routers.

Copyright: © 2025 Falasifah Dental Clinic
"""

from .router import router as reports_router, preview_router
from .filters import get_default_filters
from .models import ReportFilters, ReportDataset, FilteredReports, FinancialSummary
from .aggregator import calculate_financial_data
from .service import ReportService
from .handlers import ReportHandlers

__all__ = [
    "reports_router",
    "preview_router",
    "ReportFilters",
    "ReportDataset",
    "FilteredReports",
    "FinancialSummary",
    "get_default_filters",
    "calculate_financial_data",
    "ReportService",
    "ReportHandlers"
]
