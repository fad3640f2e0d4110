"""
Financial Aggregator

Joins the six report sources into a monthly income statement and computes the
footer totals shown on every report. Amounts are integer rupiah, so sums and
net profit are exact.

Copyright: © 2025 Falasifah Dental Clinic
"""

import logging
from typing import Dict, List, Sequence, Optional, Tuple

import pandas as pd

from .errors import UnknownReportTypeError
from .models import (
    SalaryReport,
    DoctorFeeReport,
    ExpenseReport,
    TreatmentReport,
    SalesReport,
    FieldTripSaleReport,
    FinancialSummary,
    FieldTripStaffSummary,
)
from .normalize import attendance_status
from .constants import STATUS_ON_TIME

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = [
    'total_treatment_revenue',
    'total_sales_revenue',
    'total_field_trip_revenue',
    'total_salary_costs',
    'total_doctor_fees',
    'total_expenses',
    'field_trip_staff_costs',
]


def period_of(record_date: str) -> Optional[Tuple[str, str]]:
    """(month, year) of an ISO date, or None when the date is unusable"""
    record_date = (record_date or '')[:10]
    year, month = record_date[:4], record_date[5:7]
    if not (year.isdigit() and month.isdigit() and 1 <= int(month) <= 12):
        return None
    return month, year


def _entries(records, column: str, amount_of, date_of=lambda r: r.date) -> List[Dict]:
    rows = []
    for record in records:
        period = date_of(record)
        if period is None:
            logger.debug(f"Skipping {column} record without a valid period: {record!r}")
            continue
        rows.append({'month': period[0], 'year': period[1], 'category': column, 'amount': int(amount_of(record))})
    return rows


def calculate_financial_data(
    treatments: Sequence[TreatmentReport],
    sales: Sequence[SalesReport],
    field_trip_sales: Sequence[FieldTripSaleReport],
    salaries: Sequence[SalaryReport],
    doctor_fees: Sequence[DoctorFeeReport],
    expenses: Sequence[ExpenseReport],
) -> List[FinancialSummary]:
    """
    Build one income statement row per month found in any source.

    Records are grouped by the month and year of their date; salaries use
    their own month/year fields. Categories without activity in a month are
    zero-filled. Field trip staff costs are reported for information only,
    since those fees and bonuses are already booked in salaries and doctor
    fees.

    Returns:
        List of FinancialSummary, newest period first
    """
    def by_date(record):
        return period_of(record.date)

    entries = (
        _entries(treatments, 'total_treatment_revenue', lambda t: t.amount, by_date)
        + _entries(sales, 'total_sales_revenue', lambda s: s.total_amount, by_date)
        + _entries(field_trip_sales, 'total_field_trip_revenue', lambda f: f.total_amount, by_date)
        + _entries(
            salaries, 'total_salary_costs', lambda s: s.total_salary,
            lambda s: (s.month, s.year) if s.month and s.year else None
        )
        + _entries(doctor_fees, 'total_doctor_fees', lambda f: f.final_fee, by_date)
        + _entries(expenses, 'total_expenses', lambda e: e.amount, by_date)
        + _entries(
            field_trip_sales, 'field_trip_staff_costs',
            lambda f: (f.total_doctor_fees or 0) + (f.total_employee_bonuses or 0), by_date
        )
    )
    if not entries:
        return []

    df = pd.DataFrame(entries, columns=['month', 'year', 'category', 'amount'])
    df['amount'] = df['amount'].astype('int64')
    pivot = (
        df.groupby(['year', 'month', 'category'])['amount']
        .sum()
        .unstack('category', fill_value=0)
        .reindex(columns=SUMMARY_COLUMNS, fill_value=0)
        .sort_index(ascending=False)
    )

    summaries = [
        FinancialSummary(month=month, year=year, **{col: int(row[col]) for col in SUMMARY_COLUMNS})
        for (year, month), row in pivot.iterrows()
    ]
    logger.debug(f"Calculated financial data for {len(summaries)} periods")
    return summaries


# ============================================================================
# FIELD TRIP STAFF
# ============================================================================

def _summarize(pairs) -> List[FieldTripStaffSummary]:
    totals: Dict[str, FieldTripStaffSummary] = {}
    for name, role, amount in pairs:
        if not name:
            continue
        summary = totals.setdefault(name, FieldTripStaffSummary(name=name, role=role))
        summary.total += amount
        summary.count += 1
    return sorted(totals.values(), key=lambda s: (-s.total, s.name))


def summarize_field_trip_doctor_fees(field_trip_sales: Sequence[FieldTripSaleReport]) -> List[FieldTripStaffSummary]:
    """Per-doctor totals of fees earned on field trips"""
    return _summarize(
        (d.doctor_name, d.specialization, d.fee)
        for sale in field_trip_sales for d in sale.selected_doctors
    )


def summarize_field_trip_employee_bonuses(field_trip_sales: Sequence[FieldTripSaleReport]) -> List[FieldTripStaffSummary]:
    """Per-employee totals of bonuses earned on field trips"""
    return _summarize(
        (e.employee_name, e.position, e.bonus)
        for sale in field_trip_sales for e in sale.selected_employees
    )


# ============================================================================
# REPORT TOTALS
# ============================================================================

def report_totals(report_type: str, records: Sequence) -> Dict[str, int]:
    """
    Footer totals of a report.

    Args:
        report_type: Report type tag
        records: Filtered records of that report

    Returns:
        Dictionary of total name to integer value
    """
    if report_type == 'attendance':
        return {
            'records': len(records),
            'check_in': sum(1 for r in records if r.type == 'check-in'),
            'check_out': sum(1 for r in records if r.type == 'check-out'),
            'on_time': sum(1 for r in records if attendance_status(r) == STATUS_ON_TIME),
        }
    if report_type == 'salary':
        return {
            'base_salary': sum(s.base_salary for s in records),
            'bonus': sum(s.bonus for s in records),
            'holiday_allowance': sum(s.holiday_allowance for s in records),
            'total_salary': sum(s.total_salary for s in records),
        }
    if report_type == 'doctor-fees':
        return {
            'treatment_fee': sum(f.treatment_fee for f in records),
            'sitting_fee': sum(f.sitting_fee for f in records),
            'final_fee': sum(f.final_fee for f in records),
        }
    if report_type == 'treatments':
        return {
            'amount': sum(t.amount for t in records),
            'fee': sum(t.fee for t in records),
        }
    if report_type == 'sales':
        return {
            'quantity': sum(s.quantity for s in records),
            'subtotal': sum(s.subtotal for s in records),
            'discount': sum(s.discount_amount for s in records),
            'total': sum(s.total_amount for s in records),
        }
    if report_type == 'field-trip-sales':
        return {
            'participants': sum(f.participants for f in records),
            'subtotal': sum(f.subtotal for f in records),
            'discount': sum(f.discount for f in records),
            'total': sum(f.total_amount for f in records),
            'doctor_fees': sum(f.total_doctor_fees or 0 for f in records),
            'employee_bonuses': sum(f.total_employee_bonuses or 0 for f in records),
        }
    if report_type == 'expenses':
        return {'amount': sum(e.amount for e in records)}
    if report_type == 'financial':
        totals = {col: sum(getattr(f, col) for f in records) for col in SUMMARY_COLUMNS}
        totals['total_revenue'] = sum(f.total_revenue for f in records)
        totals['total_costs'] = sum(f.total_costs for f in records)
        totals['net_profit'] = sum(f.net_profit for f in records)
        return totals
    if report_type in ('field-trip-doctor-fees', 'field-trip-employee-bonuses'):
        return {
            'total': sum(s.total for s in records),
            'count': sum(s.count for s in records),
        }
    raise UnknownReportTypeError(report_type)
