"""
================================================================================
Falasifah Dental Clinic Reports - CSV Export Unit Tests
================================================================================
Falasifah Dental Clinic

Description:
    Unit tests for exporting filtered report records as CSV with Indonesian
    column headers.

Test Coverage:
    - Header line plus one line per record, in display order
    - Column layouts of the sales, field trip and expense exports
    - Quoting of commas, quotes and newlines
    - File names and unknown report types
================================================================================
"""
import csv
import io
import pytest
from datetime import date

from clinic_reports.reports.errors import UnknownReportTypeError
from clinic_reports.reports.export import export_csv, export_filename, EXPORT_COLUMNS
from clinic_reports.reports.models import ExpenseReport


class TestExportCsv:
    """Test suite for export_csv"""

    def test_header_and_rows(self, sample_dataset):
        """Test two records produce a header plus two lines"""
        january_sales = [s for s in sample_dataset.sales if s.date.startswith("2024-01")]
        text = export_csv('sales', january_sales)
        lines = text.rstrip("\n").split("\n")

        assert len(lines) == 3
        assert lines[0] == "Tanggal,Produk,Kategori,Jumlah,Harga Satuan,Subtotal,Diskon,Total,Catatan"
        assert lines[1] == "2024-01-12,Sikat Gigi,Perawatan Gigi,2,25000,50000,5000,45000,"
        assert lines[2].startswith("2024-01-12,Pasta Gigi,")

    def test_field_trip_columns(self, sample_dataset):
        """Test the field trip layout and status label"""
        rows = list(csv.reader(io.StringIO(export_csv('field-trip-sales', sample_dataset.field_trip_sales))))

        assert rows[0] == ['Tanggal', 'Customer', 'Organisasi', 'Produk', 'Peserta', 'Harga per Peserta',
                           'Subtotal', 'Diskon', 'Total', 'Status', 'Tanggal Event']
        assert rows[1] == ['2024-01-20', 'Bu Wati', 'SDN 1 Depok', 'Edukasi Gigi Sehat', '30', '20000',
                           '600000', '50000', '550000', 'Lunas', '2024-01-20']

    def test_expense_numbering(self):
        """Test expense rows are numbered from one"""
        records = [ExpenseReport(description="A", amount=1), ExpenseReport(description="B", amount=2)]
        rows = list(csv.reader(io.StringIO(export_csv('expenses', records))))

        assert rows[0] == ['No', 'Deskripsi', 'Kategori', 'Jumlah', 'Tanggal', 'Keterangan']
        assert [row[0] for row in rows[1:]] == ['1', '2']

    def test_special_characters_are_quoted(self):
        """Test commas, quotes and newlines survive a CSV round trip"""
        notes = 'Beli "lampu", kabel\nbaris kedua'
        text = export_csv('expenses', [ExpenseReport(description="Listrik, air", notes=notes, amount=5)])
        rows = list(csv.reader(io.StringIO(text)))

        assert rows[1][1] == "Listrik, air"
        assert rows[1][5] == notes

    def test_empty_records(self):
        """Test an empty export holds only the header"""
        assert export_csv('expenses', []) == "No,Deskripsi,Kategori,Jumlah,Tanggal,Keterangan\n"

    def test_every_layout_matches_its_header(self, sample_dataset):
        """Test each row has as many cells as its header"""
        sources = {
            'sales': sample_dataset.sales,
            'field-trip-sales': sample_dataset.field_trip_sales,
            'expenses': sample_dataset.expenses,
            'attendance': sample_dataset.attendance,
            'salary': sample_dataset.salaries,
            'doctor-fees': sample_dataset.doctor_fees,
            'treatments': sample_dataset.treatments,
        }
        for report_type, records in sources.items():
            rows = list(csv.reader(io.StringIO(export_csv(report_type, records))))
            assert len(rows) == len(records) + 1
            assert all(len(row) == len(EXPORT_COLUMNS[report_type][0]) for row in rows)

    def test_unknown_report_type(self):
        """Test unknown report types are rejected"""
        with pytest.raises(UnknownReportTypeError):
            export_csv('inventory', [])


class TestExportFilename:
    """Test suite for export_filename"""

    def test_filename(self):
        """Test the report type and ISO date in the name"""
        assert export_filename('sales', date(2024, 1, 31)) == "laporan-sales-2024-01-31.csv"
