"""
Report Handlers (Business Logic Layer)

Report handlers implementing the business logic layer on top of a loaded
dataset: applying filters to every report tab, building JSON report payloads,
printable documents, CSV exports and single-transaction invoices/receipts.

Copyright: © 2025 Falasifah Dental Clinic
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Tuple, Union

from ..config import ClinicConfig
from .aggregator import calculate_financial_data, report_totals
from .constants import MSG_SELECT_CASHIER, MSG_NO_EXPORT_DATA, REPORT_TITLES
from .documents import (
    ReportDocument,
    TransactionDocument,
    build_report_document,
    build_sale_invoice,
    build_sale_receipt,
    build_field_trip_invoice,
    build_field_trip_receipt,
    report_records,
)
from .errors import (
    CashierRequiredError,
    NoExportDataError,
    RecordNotFoundError,
    UnknownReportTypeError,
)
from .export import export_csv, export_filename
from .filters import (
    filter_attendance_data,
    filter_salary_data,
    filter_doctor_fee_data,
    filter_treatment_data,
    filter_sales_data,
    filter_field_trip_sales_data,
    filter_expense_data,
    filter_financial_data,
)
from .models import FilteredReports, ReportDataset, ReportFilters, FinancialSummary
from .normalize import attendance_status

logger = logging.getLogger(__name__)

TRANSACTION_BUILDERS = {
    ('sales', 'invoice'): build_sale_invoice,
    ('sales', 'receipt'): build_sale_receipt,
    ('field-trip-sales', 'invoice'): build_field_trip_invoice,
    ('field-trip-sales', 'receipt'): build_field_trip_receipt,
}


class ReportHandlers:
    """Handlers for every report tab over one loaded dataset"""

    def __init__(self, dataset: ReportDataset, clinic: Optional[ClinicConfig] = None):
        self.dataset = dataset
        self.clinic = clinic
        self._financial: Optional[List[FinancialSummary]] = None

    @property
    def financial(self) -> List[FinancialSummary]:
        """Monthly income statements over the full dataset"""
        if self._financial is None:
            d = self.dataset
            self._financial = calculate_financial_data(
                d.treatments, d.sales, d.field_trip_sales, d.salaries, d.doctor_fees, d.expenses
            )
        return self._financial

    def apply_filters(self, filters: ReportFilters) -> FilteredReports:
        """Apply one filter value to every report collection"""
        d = self.dataset
        return FilteredReports(
            attendance=filter_attendance_data(d.attendance, filters, d.doctors),
            salaries=filter_salary_data(d.salaries, filters),
            doctor_fees=filter_doctor_fee_data(d.doctor_fees, filters, d.doctors),
            treatments=filter_treatment_data(d.treatments, filters, d.doctors),
            sales=filter_sales_data(d.sales, filters),
            field_trip_sales=filter_field_trip_sales_data(d.field_trip_sales, filters),
            expenses=filter_expense_data(d.expenses, filters),
            financial=filter_financial_data(self.financial, filters),
        )

    def report(self, report_type: str, filters: ReportFilters) -> dict:
        """Get filtered records and footer totals of a report"""
        if report_type not in REPORT_TITLES:
            raise UnknownReportTypeError(report_type)
        records = report_records(report_type, self.apply_filters(filters))

        payload: List[Dict[str, Any]] = []
        for record in records:
            item = record.model_dump()
            if report_type == 'attendance':
                item['status'] = attendance_status(record)
            payload.append(item)

        return {
            "report_type": report_type,
            "title": REPORT_TITLES[report_type],
            "records": payload,
            "record_count": len(payload),
            "totals": report_totals(report_type, records),
            "filters_applied": filters.model_dump(),
        }

    def print_document(self, report_type: str, filters: ReportFilters,
                       today: Optional[date] = None) -> ReportDocument:
        """Build the printable document of a filtered report"""
        return build_report_document(report_type, self.apply_filters(filters), self.clinic, today)

    def export(self, report_type: str, filters: ReportFilters,
               today: Optional[date] = None) -> Tuple[str, str]:
        """
        Export a filtered report as CSV.

        Returns:
            Tuple of (filename, csv_text)

        Raises:
            NoExportDataError: If no records remain after filtering
        """
        records = report_records(report_type, self.apply_filters(filters))
        if not records:
            raise NoExportDataError(MSG_NO_EXPORT_DATA)
        csv_text = export_csv(report_type, records)
        logger.info(f"Exported {len(records)} {report_type} records")
        return export_filename(report_type, today), csv_text

    def transaction_document(
        self,
        kind: str,
        source: str,
        record_id: str,
        cashier_id: Optional[str],
        transaction_date: Optional[Union[str, date]] = None
    ) -> TransactionDocument:
        """
        Build an invoice or receipt for one sale.

        Args:
            kind: 'invoice' or 'receipt'
            source: 'sales' or 'field-trip-sales'
            record_id: Sale id (a sale line id selects its whole sale)
            cashier_id: Employee id of an active cashier
            transaction_date: Date printed on the document (defaults to today)

        Raises:
            CashierRequiredError: If the cashier is missing or unknown
            RecordNotFoundError: If the sale does not exist
        """
        builder = TRANSACTION_BUILDERS.get((source, kind))
        if builder is None:
            raise UnknownReportTypeError(f"{source}/{kind}")

        cashiers = self.dataset.active_employees or [e for e in self.dataset.employees if e.active]
        cashier = next((e for e in cashiers if cashier_id and e.id == cashier_id), None)
        if cashier is None:
            raise CashierRequiredError(MSG_SELECT_CASHIER)
        transaction_date = transaction_date or date.today()

        if source == 'sales':
            sale_id = next(
                (s.sale_id for s in self.dataset.sales if record_id in (s.id, s.sale_id)),
                None
            )
            if sale_id is None:
                raise RecordNotFoundError(source, record_id)
            record = [s for s in self.dataset.sales if s.sale_id == sale_id]
        else:
            record = next((f for f in self.dataset.field_trip_sales if f.id == record_id), None)
            if record is None:
                raise RecordNotFoundError(source, record_id)

        return builder(record, cashier.name, transaction_date, self.clinic)
