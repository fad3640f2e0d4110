"""
Report Documents

Typed document models for printable reports, invoices and receipts, plus the
Jinja2 rendering that turns them into standalone HTML pages. Business data is
converted into cells and totals here; layout lives entirely in the templates
under web/templates.

Copyright: © 2025 Falasifah Dental Clinic
"""

import re
import logging
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from jinja2 import Environment, FileSystemLoader, select_autoescape
from pydantic import BaseModel, Field

from ..config import ClinicConfig, get_config
from .aggregator import (
    report_totals,
    summarize_field_trip_doctor_fees,
    summarize_field_trip_employee_bonuses,
)
from .constants import CATEGORY_LABELS, PAYMENT_STATUS_LABELS, REPORT_TITLES
from .errors import UnknownReportTypeError
from .models import FilteredReports, SalesReport, FieldTripSaleReport
from .normalize import attendance_status
from .terbilang import format_currency, format_date_id, terbilang_rupiah

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "web" / "templates"

_environment: Optional[Environment] = None


def get_template_environment() -> Environment:
    """Get the shared Jinja2 environment"""
    global _environment
    if _environment is None:
        _environment = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(['html'])
        )
        _environment.filters['rupiah'] = format_currency
        _environment.filters['tanggal'] = format_date_id
    return _environment


# ============================================================================
# DOCUMENT MODELS
# ============================================================================

class ClinicHeader(BaseModel):
    """Letterhead block printed at the top of every document"""
    name: str
    subtitle: str = ''
    address_lines: List[str] = Field(default_factory=list)
    phone: str = ''
    logo_url: Optional[str] = None

    @classmethod
    def from_config(cls, clinic: Optional[ClinicConfig] = None) -> 'ClinicHeader':
        clinic = clinic or get_config().clinic
        return cls(
            name=clinic.name,
            subtitle=clinic.subtitle,
            address_lines=list(clinic.address_lines),
            phone=clinic.phone,
            logo_url=clinic.logo_url,
        )


class ReportDocument(BaseModel):
    """A printable report table"""
    kind: str = 'report'
    report_type: str
    title: str
    clinic: ClinicHeader
    columns: List[str]
    rows: List[List[str]] = Field(default_factory=list)
    numeric_columns: List[int] = Field(default_factory=list)
    totals: Dict[str, str] = Field(default_factory=dict)
    record_count: int = 0
    printed_at: str = ''


class LineItem(BaseModel):
    description: str
    quantity: int = 1
    unit_price: int = 0
    amount: int = 0


class TransactionDocument(BaseModel):
    """An invoice or receipt for a single sale"""
    kind: str  # invoice or receipt
    title: str
    number: str
    transaction_date: str
    cashier: str
    clinic: ClinicHeader
    customer: Dict[str, str] = Field(default_factory=dict)
    items: List[LineItem] = Field(default_factory=list)
    subtotal: int = 0
    discount: int = 0
    total: int = 0
    terbilang: str = ''
    notes: str = ''
    payment_method: str = ''
    payment_status: str = ''


# ============================================================================
# REPORT TABLES
# ============================================================================

def _category(value: str) -> str:
    return CATEGORY_LABELS.get(value, value)


def _check_type(value: str) -> str:
    return {'check-in': 'Check In', 'check-out': 'Check Out'}.get(value, value)


# Per report: (columns, indexes of right-aligned columns, row builder)
_TABLES: Dict[str, Tuple[List[str], List[int], Callable[[int, Any], List[str]]]] = {
    'attendance': (
        ['Dokter', 'Shift', 'Tanggal', 'Jenis', 'Waktu', 'Status'],
        [],
        lambda i, r: [r.doctor_name, r.shift, format_date_id(r.date), _check_type(r.type), r.time,
                      attendance_status(r)],
    ),
    'salary': (
        ['Karyawan', 'Periode', 'Gaji Pokok', 'Bonus', 'Tunjangan Raya', 'Total Gaji'],
        [2, 3, 4, 5],
        lambda i, s: [s.employee_name, s.period, format_currency(s.base_salary), format_currency(s.bonus),
                      format_currency(s.holiday_allowance), format_currency(s.total_salary)],
    ),
    'doctor-fees': (
        ['No', 'Dokter', 'Tanggal', 'Fee Tindakan', 'Uang Duduk', 'Total Fee'],
        [3, 4, 5],
        lambda i, f: [str(i), f.doctor_name, format_date_id(f.date), format_currency(f.treatment_fee),
                      format_currency(f.sitting_fee), format_currency(f.final_fee)],
    ),
    'treatments': (
        ['Tanggal', 'Pasien', 'Tindakan', 'Dokter', 'Nominal', 'Fee Dokter'],
        [4, 5],
        lambda i, t: [format_date_id(t.date), t.patient_name, t.treatment_name, t.doctor_name,
                      format_currency(t.amount), format_currency(t.fee)],
    ),
    'sales': (
        ['Tanggal', 'Produk', 'Kategori', 'Jumlah', 'Harga', 'Total'],
        [3, 4, 5],
        lambda i, s: [format_date_id(s.date), s.product_name, _category(s.category), str(s.quantity),
                      format_currency(s.price_per_unit), format_currency(s.total_amount)],
    ),
    'field-trip-sales': (
        ['Tanggal', 'Produk', 'Lokasi', 'Jumlah', 'Harga', 'Subtotal', 'Diskon', 'Total', 'Catatan'],
        [3, 4, 5, 6, 7],
        lambda i, f: [format_date_id(f.date), f.product_name, f.location, str(f.participants),
                      format_currency(f.price_per_participant), format_currency(f.subtotal),
                      format_currency(f.discount), format_currency(f.total_amount), f.notes],
    ),
    'expenses': (
        ['Tanggal', 'Kategori', 'Deskripsi', 'Jumlah', 'Catatan'],
        [3],
        lambda i, e: [format_date_id(e.date), _category(e.category), e.description or e.name,
                      format_currency(e.amount), e.notes],
    ),
    'financial': (
        ['Periode', 'Pendapatan Tindakan', 'Pendapatan Penjualan', 'Pendapatan Field Trip',
         'Total Pendapatan', 'Gaji Karyawan', 'Fee Dokter', 'Pengeluaran Lain',
         'Total Pengeluaran', 'Laba Bersih'],
        [1, 2, 3, 4, 5, 6, 7, 8, 9],
        lambda i, f: [f.period, format_currency(f.total_treatment_revenue), format_currency(f.total_sales_revenue),
                      format_currency(f.total_field_trip_revenue), format_currency(f.total_revenue),
                      format_currency(f.total_salary_costs), format_currency(f.total_doctor_fees),
                      format_currency(f.total_expenses), format_currency(f.total_costs),
                      format_currency(f.net_profit)],
    ),
    'field-trip-doctor-fees': (
        ['No', 'Dokter', 'Spesialisasi', 'Jumlah Field Trip', 'Total Fee', 'Rata-rata Fee'],
        [3, 4, 5],
        lambda i, s: [str(i), s.name, s.role, str(s.count), format_currency(s.total), format_currency(s.average)],
    ),
    'field-trip-employee-bonuses': (
        ['No', 'Karyawan', 'Posisi', 'Jumlah Field Trip', 'Total Bonus', 'Rata-rata Bonus'],
        [3, 4, 5],
        lambda i, s: [str(i), s.name, s.role, str(s.count), format_currency(s.total), format_currency(s.average)],
    ),
}

# Per report: total key -> (label, formatted as currency)
_TOTAL_LABELS: Dict[str, Dict[str, Tuple[str, bool]]] = {
    'attendance': {
        'records': ('Total Record', False),
        'check_in': ('Check In', False),
        'check_out': ('Check Out', False),
        'on_time': ('Tepat Waktu', False),
    },
    'salary': {
        'base_salary': ('Total Gaji Pokok', True),
        'bonus': ('Total Bonus', True),
        'holiday_allowance': ('Total Tunjangan Raya', True),
        'total_salary': ('Total Gaji', True),
    },
    'doctor-fees': {
        'treatment_fee': ('Total Fee Tindakan', True),
        'sitting_fee': ('Total Uang Duduk', True),
        'final_fee': ('Total Fee Dokter', True),
    },
    'treatments': {
        'amount': ('Total Nominal', True),
        'fee': ('Total Fee Dokter', True),
    },
    'sales': {
        'quantity': ('Total Item', False),
        'discount': ('Total Diskon', True),
        'total': ('Total Penjualan', True),
    },
    'field-trip-sales': {
        'participants': ('Total Peserta', False),
        'subtotal': ('Subtotal', True),
        'discount': ('Total Diskon', True),
        'total': ('Total Penjualan', True),
    },
    'expenses': {
        'amount': ('Total Pengeluaran', True),
    },
    'financial': {
        'total_revenue': ('Total Pendapatan', True),
        'total_costs': ('Total Pengeluaran', True),
        'net_profit': ('Laba Bersih', True),
    },
    'field-trip-doctor-fees': {
        'count': ('Total Field Trip', False),
        'total': ('Total Fee Dokter', True),
    },
    'field-trip-employee-bonuses': {
        'count': ('Total Field Trip', False),
        'total': ('Total Bonus Karyawan', True),
    },
}


def report_records(report_type: str, filtered: FilteredReports) -> List[Any]:
    """The records a report type prints"""
    sources = {
        'attendance': lambda: filtered.attendance,
        'salary': lambda: filtered.salaries,
        'doctor-fees': lambda: filtered.doctor_fees,
        'treatments': lambda: filtered.treatments,
        'sales': lambda: filtered.sales,
        'field-trip-sales': lambda: filtered.field_trip_sales,
        'expenses': lambda: filtered.expenses,
        'financial': lambda: filtered.financial,
        'field-trip-doctor-fees': lambda: summarize_field_trip_doctor_fees(filtered.field_trip_sales),
        'field-trip-employee-bonuses': lambda: summarize_field_trip_employee_bonuses(filtered.field_trip_sales),
    }
    if report_type not in sources:
        raise UnknownReportTypeError(report_type)
    return sources[report_type]()


def build_report_document(
    report_type: str,
    filtered: FilteredReports,
    clinic: Optional[ClinicConfig] = None,
    today: Optional[date] = None
) -> ReportDocument:
    """
    Build the printable document of a report.

    Args:
        report_type: One of the supported report type tags
        filtered: Currently filtered collections of every report
        clinic: Letterhead settings (defaults to configuration)
        today: Print date (defaults to today)

    Raises:
        UnknownReportTypeError: If report_type is not supported
    """
    if report_type not in _TABLES:
        raise UnknownReportTypeError(report_type)
    columns, numeric_columns, build_row = _TABLES[report_type]
    records = report_records(report_type, filtered)

    totals = {}
    for key, value in report_totals(report_type, records).items():
        if key in _TOTAL_LABELS[report_type]:
            label, is_currency = _TOTAL_LABELS[report_type][key]
            totals[label] = format_currency(value) if is_currency else str(value)

    return ReportDocument(
        report_type=report_type,
        title=REPORT_TITLES[report_type],
        clinic=ClinicHeader.from_config(clinic),
        columns=columns,
        rows=[build_row(i, record) for i, record in enumerate(records, start=1)],
        numeric_columns=numeric_columns,
        totals=totals,
        record_count=len(records),
        printed_at=format_date_id(today or date.today()),
    )


# ============================================================================
# INVOICES AND RECEIPTS
# ============================================================================

def _number(prefix: str, record_id: str) -> str:
    return f"{prefix}-{record_id[-8:].upper()}"


def _status_label(value: str) -> str:
    return PAYMENT_STATUS_LABELS.get((value or '').lower(), value)


def _sale_document(
    kind: str,
    title: str,
    prefix: str,
    sale: Union[SalesReport, Sequence[SalesReport]],
    cashier_name: str,
    transaction_date: Union[str, date],
    clinic: Optional[ClinicConfig] = None
) -> TransactionDocument:
    lines = [sale] if isinstance(sale, SalesReport) else list(sale)
    if not lines:
        raise ValueError("A sale document needs at least one line")
    first = lines[0]
    total = sum(line.total_amount for line in lines)
    return TransactionDocument(
        kind=kind,
        title=title,
        number=_number(prefix, first.sale_id or first.id),
        transaction_date=format_date_id(transaction_date),
        cashier=cashier_name,
        clinic=ClinicHeader.from_config(clinic),
        customer={'Nama': first.customer_name or 'Umum'},
        items=[
            LineItem(
                description=line.product_name,
                quantity=line.quantity,
                unit_price=line.price_per_unit,
                amount=line.subtotal,
            )
            for line in lines
        ],
        subtotal=sum(line.subtotal for line in lines),
        discount=sum(line.discount_amount for line in lines),
        total=total,
        terbilang=terbilang_rupiah(total),
        notes=first.notes,
        payment_method=first.payment_method,
    )


def build_sale_invoice(sale, cashier_name: str, transaction_date, clinic: Optional[ClinicConfig] = None) -> TransactionDocument:
    """Invoice for a product sale; accepts one line or all lines of the sale"""
    return _sale_document('invoice', 'INVOICE PENJUALAN', 'INV', sale, cashier_name, transaction_date, clinic)


def build_sale_receipt(sale, cashier_name: str, transaction_date, clinic: Optional[ClinicConfig] = None) -> TransactionDocument:
    """Receipt (kwitansi) for a product sale"""
    return _sale_document('receipt', 'KWITANSI', 'KW', sale, cashier_name, transaction_date, clinic)


def _field_trip_document(
    kind: str,
    title: str,
    sale: FieldTripSaleReport,
    cashier_name: str,
    transaction_date: Union[str, date],
    clinic: Optional[ClinicConfig] = None
) -> TransactionDocument:
    customer = {
        'Nama': sale.customer_name,
        'Organisasi': sale.organization,
        'Telepon': sale.customer_phone,
        'Lokasi': sale.location,
        'Tanggal Event': format_date_id(sale.event_date or sale.date),
    }
    return TransactionDocument(
        kind=kind,
        title=title,
        number=_number('FT', sale.id),
        transaction_date=format_date_id(transaction_date),
        cashier=cashier_name,
        clinic=ClinicHeader.from_config(clinic),
        customer={label: value for label, value in customer.items() if value},
        items=[LineItem(
            description=sale.product_name,
            quantity=sale.participants,
            unit_price=sale.price_per_participant,
            amount=sale.subtotal,
        )],
        subtotal=sale.subtotal,
        discount=sale.discount,
        total=sale.total_amount,
        terbilang=terbilang_rupiah(sale.total_amount),
        notes=sale.notes,
        payment_method=sale.payment_method,
        payment_status=_status_label(sale.payment_status),
    )


def build_field_trip_invoice(sale: FieldTripSaleReport, cashier_name: str, transaction_date,
                             clinic: Optional[ClinicConfig] = None) -> TransactionDocument:
    return _field_trip_document('invoice', 'INVOICE FIELD TRIP', sale, cashier_name, transaction_date, clinic)


def build_field_trip_receipt(sale: FieldTripSaleReport, cashier_name: str, transaction_date,
                             clinic: Optional[ClinicConfig] = None) -> TransactionDocument:
    return _field_trip_document('receipt', 'KWITANSI FIELD TRIP', sale, cashier_name, transaction_date, clinic)


# ============================================================================
# RENDERING
# ============================================================================

_TEMPLATES = {
    'report': 'report.html',
    'invoice': 'transaction.html',
    'receipt': 'transaction.html',
}


def render_document(
    doc: Union[ReportDocument, TransactionDocument],
    auto_print: bool = False,
    print_delay_ms: Optional[int] = None
) -> str:
    """
    Render a document to a standalone HTML page.

    Args:
        doc: Report, invoice or receipt document
        auto_print: Open the print dialog once the page has loaded
        print_delay_ms: Delay before printing (defaults to configuration)

    Returns:
        HTML string
    """
    template = get_template_environment().get_template(_TEMPLATES[doc.kind])
    if print_delay_ms is None:
        print_delay_ms = get_config().printing.print_delay_ms
    return template.render(doc=doc, auto_print=auto_print, print_delay_ms=print_delay_ms)


def document_filename(title: str, today: Optional[date] = None) -> str:
    """Download name such as Laporan_Penjualan_2024-01-31.html"""
    today = today or date.today()
    slug = re.sub(r'\s+', '_', title.strip())
    return f"{slug}_{today.isoformat()}.html"
