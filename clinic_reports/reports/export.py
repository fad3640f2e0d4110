"""
Report CSV Export

CSV export of filtered report records. The first line holds the Indonesian
column names followed by one row per record. Fields are written with the csv
module, so embedded quotes, commas and newlines are escaped.

Copyright: © 2025 Falasifah Dental Clinic
"""

import csv
import io
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .constants import CATEGORY_LABELS, PAYMENT_STATUS_LABELS
from .errors import UnknownReportTypeError
from .normalize import attendance_status


def _category(value: str) -> str:
    return CATEGORY_LABELS.get(value, value)


def _status(value: str) -> str:
    return PAYMENT_STATUS_LABELS.get((value or '').lower(), value)


# Per report: (header, row builder taking the 1-based row number and the record)
EXPORT_COLUMNS: Dict[str, Tuple[List[str], Callable[[int, Any], List[Any]]]] = {
    'sales': (
        ['Tanggal', 'Produk', 'Kategori', 'Jumlah', 'Harga Satuan', 'Subtotal', 'Diskon', 'Total', 'Catatan'],
        lambda i, s: [s.date, s.product_name, _category(s.category), s.quantity, s.price_per_unit,
                      s.subtotal, s.discount_amount, s.total_amount, s.notes],
    ),
    'field-trip-sales': (
        ['Tanggal', 'Customer', 'Organisasi', 'Produk', 'Peserta', 'Harga per Peserta', 'Subtotal',
         'Diskon', 'Total', 'Status', 'Tanggal Event'],
        lambda i, f: [f.date, f.customer_name, f.organization, f.product_name, f.participants,
                      f.price_per_participant, f.subtotal, f.discount, f.total_amount,
                      _status(f.payment_status), f.event_date],
    ),
    'expenses': (
        ['No', 'Deskripsi', 'Kategori', 'Jumlah', 'Tanggal', 'Keterangan'],
        lambda i, e: [i, e.description or e.name, _category(e.category), e.amount, e.date, e.notes],
    ),
    'attendance': (
        ['Dokter', 'Shift', 'Tanggal', 'Jenis', 'Waktu', 'Status'],
        lambda i, a: [a.doctor_name, a.shift, a.date, a.type, a.time, attendance_status(a)],
    ),
    'salary': (
        ['Karyawan', 'Periode', 'Gaji Pokok', 'Bonus', 'Tunjangan Raya', 'Total Gaji'],
        lambda i, s: [s.employee_name, s.period, s.base_salary, s.bonus, s.holiday_allowance, s.total_salary],
    ),
    'doctor-fees': (
        ['No', 'Dokter', 'Tanggal', 'Fee Tindakan', 'Uang Duduk', 'Total Fee'],
        lambda i, f: [i, f.doctor_name, f.date, f.treatment_fee, f.sitting_fee, f.final_fee],
    ),
    'treatments': (
        ['Tanggal', 'Pasien', 'Tindakan', 'Dokter', 'Nominal', 'Fee Dokter', 'Status Pembayaran'],
        lambda i, t: [t.date, t.patient_name, t.treatment_name, t.doctor_name, t.amount, t.fee, t.payment_status],
    ),
    'field-trip-doctor-fees': (
        ['No', 'Dokter', 'Spesialisasi', 'Jumlah Field Trip', 'Total Fee', 'Rata-rata'],
        lambda i, s: [i, s.name, s.role, s.count, s.total, s.average],
    ),
    'field-trip-employee-bonuses': (
        ['No', 'Karyawan', 'Posisi', 'Jumlah Field Trip', 'Total Bonus', 'Rata-rata'],
        lambda i, s: [i, s.name, s.role, s.count, s.total, s.average],
    ),
    'financial': (
        ['Periode', 'Pendapatan Tindakan', 'Pendapatan Penjualan', 'Pendapatan Field Trip',
         'Total Pendapatan', 'Gaji Karyawan', 'Fee Dokter', 'Pengeluaran Lain',
         'Total Pengeluaran', 'Laba Bersih', 'Margin (%)'],
        lambda i, f: [f.period, f.total_treatment_revenue, f.total_sales_revenue, f.total_field_trip_revenue,
                      f.total_revenue, f.total_salary_costs, f.total_doctor_fees, f.total_expenses,
                      f.total_costs, f.net_profit, f.margin],
    ),
}


def export_csv(report_type: str, records: Sequence[Any]) -> str:
    """
    Export records of a report as CSV text.

    Args:
        report_type: Report type tag
        records: Filtered records in display order

    Returns:
        CSV text with a header line and one line per record

    Raises:
        UnknownReportTypeError: If the report type has no CSV layout
    """
    if report_type not in EXPORT_COLUMNS:
        raise UnknownReportTypeError(report_type)
    header, build_row = EXPORT_COLUMNS[report_type]

    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(header)
    for index, record in enumerate(records, start=1):
        writer.writerow(build_row(index, record))
    return output.getvalue()


def export_filename(report_type: str, today: Optional[date] = None) -> str:
    """File name such as laporan-sales-2024-01-31.csv"""
    today = today or date.today()
    return f"laporan-{report_type}-{today.isoformat()}.csv"
