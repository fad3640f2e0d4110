"""
================================================================================
Falasifah Dental Clinic Reports - Report Handlers Unit Tests
================================================================================
Falasifah Dental Clinic

Description:
    Unit tests for the report handlers, the business logic layer combining
    filters, aggregation, documents and exports over a loaded dataset.

Test Coverage:
    - Applying one filter value to every report
    - JSON report payloads with totals
    - Printable documents and CSV exports
    - Invoice/receipt lookup, cashier validation and missing records
================================================================================
"""
import pytest
from datetime import date

from clinic_reports.reports.constants import MSG_SELECT_CASHIER, MSG_NO_EXPORT_DATA
from clinic_reports.reports.errors import (
    CashierRequiredError,
    NoExportDataError,
    RecordNotFoundError,
    UnknownReportTypeError,
)
from clinic_reports.reports.handlers import ReportHandlers


@pytest.fixture
def handlers(sample_dataset):
    return ReportHandlers(sample_dataset)


class TestApplyFilters:
    """Test suite for apply_filters"""

    def test_january(self, handlers, january_filters):
        """Test every collection is filtered to January"""
        filtered = handlers.apply_filters(january_filters)

        assert len(filtered.attendance) == 2
        assert len(filtered.salaries) == 1
        assert len(filtered.doctor_fees) == 2
        assert len(filtered.treatments) == 2
        assert len(filtered.sales) == 2
        assert len(filtered.field_trip_sales) == 1
        assert len(filtered.expenses) == 1
        assert [f.period for f in filtered.financial] == ["Jan 2024"]

    def test_financial_uses_full_dataset(self, handlers, january_filters):
        """Test financial rows are computed before filtering"""
        assert len(handlers.financial) == 2
        filtered = handlers.apply_filters(january_filters.update(month="all"))
        assert len(filtered.financial) == 2


class TestReport:
    """Test suite for report"""

    def test_sales_report(self, handlers, january_filters):
        """Test records, count and totals"""
        result = handlers.report('sales', january_filters)

        assert result['title'] == "Laporan Penjualan"
        assert result['record_count'] == 2
        assert result['totals']['total'] == 90000
        assert result['filters_applied']['month'] == "01"

    def test_attendance_report_has_status(self, handlers, january_filters):
        """Test attendance records include their on-time status"""
        records = handlers.report('attendance', january_filters)['records']
        assert [r['status'] for r in records] == ["Tepat Waktu", "Terlambat"]

    def test_financial_report(self, handlers, january_filters):
        """Test financial records include computed fields"""
        record = handlers.report('financial', january_filters)['records'][0]

        assert record['net_profit'] == -3080000
        assert record['field_trip_staff_costs'] == 250000

    def test_unknown_report_type(self, handlers, january_filters):
        """Test unknown report types are rejected"""
        with pytest.raises(UnknownReportTypeError):
            handlers.report('inventory', january_filters)


class TestExport:
    """Test suite for export"""

    def test_export(self, handlers, january_filters):
        """Test file name and CSV content"""
        filename, text = handlers.export('expenses', january_filters, date(2024, 1, 31))

        assert filename == "laporan-expenses-2024-01-31.csv"
        assert text.count("\n") == 2
        assert "Tagihan listrik" in text

    def test_nothing_to_export(self, handlers, january_filters):
        """Test an empty export is refused"""
        with pytest.raises(NoExportDataError) as exc_info:
            handlers.export('expenses', january_filters.update(month="03"))
        assert exc_info.value.message == MSG_NO_EXPORT_DATA

    def test_print_document(self, handlers, january_filters):
        """Test the printable document uses the filtered records"""
        doc = handlers.print_document('treatments', january_filters, date(2024, 1, 31))

        assert doc.record_count == 2
        assert doc.printed_at == "31 Januari 2024"


class TestTransactionDocument:
    """Test suite for transaction_document"""

    def test_sale_invoice_by_sale_id(self, handlers):
        """Test every line of the sale is on the invoice"""
        doc = handlers.transaction_document('invoice', 'sales', 'sale_abcdef12', 'e2', date(2024, 1, 12))

        assert doc.number == "INV-ABCDEF12"
        assert doc.cashier == "Dewi"
        assert len(doc.items) == 2

    def test_sale_receipt_by_line_id(self, handlers):
        """Test a line id selects its whole sale"""
        doc = handlers.transaction_document('receipt', 'sales', 'sale_abcdef12_item_1', 'e2', date(2024, 1, 12))

        assert doc.number == "KW-ABCDEF12"
        assert doc.total == 90000

    def test_field_trip_receipt(self, handlers):
        """Test a field trip receipt"""
        doc = handlers.transaction_document('receipt', 'field-trip-sales', 'ft_9876zyxw', 'e1')

        assert doc.number == "FT-9876ZYXW"
        assert doc.cashier == "Rina"
        assert doc.transaction_date

    @pytest.mark.parametrize("cashier_id", [None, "", "e404"])
    def test_cashier_required(self, handlers, cashier_id):
        """Test a missing or unknown cashier is rejected"""
        with pytest.raises(CashierRequiredError) as exc_info:
            handlers.transaction_document('invoice', 'sales', 'sale_abcdef12', cashier_id)
        assert exc_info.value.message == MSG_SELECT_CASHIER

    def test_cashier_must_be_active(self, sample_dataset):
        """Test the cashier comes from the active employee list"""
        sample_dataset.active_employees = [e for e in sample_dataset.employees if e.id == "e1"]
        handlers = ReportHandlers(sample_dataset)

        with pytest.raises(CashierRequiredError):
            handlers.transaction_document('invoice', 'sales', 'sale_abcdef12', 'e2')
        assert handlers.transaction_document('invoice', 'sales', 'sale_abcdef12', 'e1').cashier == "Rina"

    def test_inactive_flag_without_active_list(self, sample_dataset):
        """Test inactive employees are skipped when the active list did not load"""
        sample_dataset.active_employees = []
        sample_dataset.employees[1] = sample_dataset.employees[1].model_copy(update={'active': False})
        handlers = ReportHandlers(sample_dataset)

        with pytest.raises(CashierRequiredError):
            handlers.transaction_document('receipt', 'sales', 'sale_abcdef12', 'e2')

    def test_record_not_found(self, handlers):
        """Test an unknown sale id"""
        with pytest.raises(RecordNotFoundError):
            handlers.transaction_document('invoice', 'field-trip-sales', 'missing', 'e2')

    def test_unknown_kind(self, handlers):
        """Test an unsupported source/kind pair"""
        with pytest.raises(UnknownReportTypeError):
            handlers.transaction_document('quote', 'sales', 'sale_abcdef12', 'e2')
