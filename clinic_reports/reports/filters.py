"""
Report Filters

Pure filter predicates applying the shared ReportFilters value to each report
collection. Every function returns a new list sorted newest first and never
mutates its input.

Matching rules:
    - Text fields use case-insensitive substring containment; an empty filter
      string matches everything.
    - When both start_date and end_date are set the record date must fall in
      the inclusive range; otherwise month and year must match exactly, with
      'all' bypassing each check.
    - A selected doctor is resolved by id, or through the doctor list by name.

Copyright: © 2025 Falasifah Dental Clinic
"""

from datetime import date
from typing import List, Optional, Sequence

from .models import (
    ReportFilters,
    AttendanceReport,
    SalaryReport,
    DoctorFeeReport,
    TreatmentReport,
    SalesReport,
    FieldTripSaleReport,
    ExpenseReport,
    FinancialSummary,
    Doctor,
)
from .normalize import doctor_key

ALL = 'all'


# ============================================================================
# MATCHING HELPERS
# ============================================================================

def _is_set(value: Optional[str]) -> bool:
    return bool(value) and value != ALL


def contains(text: Optional[str], needle: Optional[str]) -> bool:
    """Case-insensitive substring match; an empty needle matches everything"""
    if not needle:
        return True
    return needle.strip().lower() in (text or '').lower()


def matches_period(record_date: str, month: Optional[str], year: Optional[str]) -> bool:
    """Exact month/year match on an ISO date; 'all' or empty bypasses each check"""
    if _is_set(month) and record_date[5:7] != month:
        return False
    if _is_set(year) and record_date[:4] != year:
        return False
    return True


def in_date_window(record_date: str, filters: ReportFilters) -> bool:
    """Inclusive date range when both bounds are set, month/year otherwise"""
    record_date = (record_date or '')[:10]
    if filters.start_date and filters.end_date:
        return filters.start_date <= record_date <= filters.end_date
    return matches_period(record_date, filters.month, filters.year)


def matches_doctor(
    doctor_id: str,
    doctor_name: str,
    filters: ReportFilters,
    doctors: Sequence[Doctor] = ()
) -> bool:
    """Selected doctor (by id, or by name through the doctor list) plus name substring"""
    if _is_set(filters.selected_doctor_id):
        resolved_id = doctor_id
        if not resolved_id:
            key = doctor_key(doctor_name)
            match = next((d for d in doctors if doctor_key(d.name) == key), None)
            resolved_id = match.id if match else ''
        if resolved_id != filters.selected_doctor_id:
            return False
    return contains(doctor_name, filters.doctor)


def _newest_first(records: List, *tiebreak) -> List:
    """Sort by date descending; ties keep the order given by tiebreak keys"""
    for key in reversed(tiebreak):
        records = sorted(records, key=key)
    return sorted(records, key=lambda r: r.date, reverse=True)


# ============================================================================
# REPORT FILTERS
# ============================================================================

def filter_attendance_data(
    records: Sequence[AttendanceReport],
    filters: ReportFilters,
    doctors: Sequence[Doctor] = ()
) -> List[AttendanceReport]:
    """Filter attendance by doctor, shift, exact date, check type and period"""
    filtered = [
        r for r in records
        if matches_doctor(r.doctor_id, r.doctor_name, filters, doctors)
        and (not _is_set(filters.shift) or r.shift == filters.shift)
        and (not filters.date or r.date == filters.date)
        and (not _is_set(filters.type) or r.type == filters.type)
        and in_date_window(r.date, filters)
    ]
    return _newest_first(filtered, lambda r: r.doctor_name.lower())


def filter_salary_data(records: Sequence[SalaryReport], filters: ReportFilters) -> List[SalaryReport]:
    """Filter salaries by employee name and by their own month/year fields"""
    filtered = [
        s for s in records
        if contains(s.employee_name, filters.employee)
        and (not _is_set(filters.month) or s.month == filters.month)
        and (not _is_set(filters.year) or s.year == filters.year)
    ]
    filtered = sorted(filtered, key=lambda s: s.employee_name.lower())
    return sorted(filtered, key=lambda s: (s.year, s.month), reverse=True)


def filter_doctor_fee_data(
    records: Sequence[DoctorFeeReport],
    filters: ReportFilters,
    doctors: Sequence[Doctor] = ()
) -> List[DoctorFeeReport]:
    filtered = [
        f for f in records
        if matches_doctor(f.doctor_id, f.doctor_name, filters, doctors)
        and in_date_window(f.date, filters)
    ]
    return _newest_first(filtered, lambda f: f.doctor_name.lower())


def filter_treatment_data(
    records: Sequence[TreatmentReport],
    filters: ReportFilters,
    doctors: Sequence[Doctor] = ()
) -> List[TreatmentReport]:
    filtered = [
        t for t in records
        if matches_doctor(t.doctor_id, t.doctor_name, filters, doctors)
        and contains(t.patient_name, filters.search_patient)
        and contains(t.treatment_name, filters.search_treatment)
        and in_date_window(t.date, filters)
    ]
    return _newest_first(filtered)


def filter_sales_data(records: Sequence[SalesReport], filters: ReportFilters) -> List[SalesReport]:
    filtered = [
        s for s in records
        if contains(s.product_name, filters.search_product)
        and (not _is_set(filters.product_category) or s.category == filters.product_category)
        and in_date_window(s.date, filters)
    ]
    return _newest_first(filtered)


def filter_field_trip_sales_data(
    records: Sequence[FieldTripSaleReport],
    filters: ReportFilters
) -> List[FieldTripSaleReport]:
    """Filter field trip sales by product, location, customer, status and staff"""
    def staff_matches(sale: FieldTripSaleReport) -> bool:
        if _is_set(filters.selected_doctor_id):
            if filters.selected_doctor_id not in [d.doctor_id for d in sale.selected_doctors]:
                return False
        if filters.doctor and not any(contains(d.doctor_name, filters.doctor) for d in sale.selected_doctors):
            return False
        if filters.employee and not any(contains(e.employee_name, filters.employee) for e in sale.selected_employees):
            return False
        return True

    filtered = [
        s for s in records
        if contains(s.product_name, filters.search_field_trip_product)
        and contains(s.location, filters.search_location)
        and (contains(s.customer_name, filters.search_customer)
             or contains(s.organization, filters.search_customer))
        and (not _is_set(filters.payment_status) or s.payment_status == filters.payment_status)
        and staff_matches(s)
        and in_date_window(s.date, filters)
    ]
    return _newest_first(filtered)


def filter_expense_data(records: Sequence[ExpenseReport], filters: ReportFilters) -> List[ExpenseReport]:
    filtered = [
        e for e in records
        if (not _is_set(filters.category) or e.category == filters.category)
        and in_date_window(e.date, filters)
    ]
    return _newest_first(filtered)


def filter_financial_data(records: Sequence[FinancialSummary], filters: ReportFilters) -> List[FinancialSummary]:
    return [
        f for f in records
        if (not _is_set(filters.month) or f.month == filters.month)
        and (not _is_set(filters.year) or f.year == filters.year)
    ]


def get_default_filters(today: Optional[date] = None) -> ReportFilters:
    """
    Filters for a fresh session: the current calendar month, every selector
    on 'all' and every text field empty.
    """
    today = today or date.today()
    return ReportFilters(month=f"{today.month:02d}", year=str(today.year))
