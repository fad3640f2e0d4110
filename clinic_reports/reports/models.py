"""
Report Models

Pydantic models for the clinic report records, filters and derived summaries.
All monetary values are integers in rupiah. Input payloads from the backend use
camelCase keys, which are accepted through field aliases.

Copyright: © 2025 Falasifah Dental Clinic
"""

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel

from .constants import MONTH_NAMES, MONTH_SHORT_NAMES


class ReportRecord(BaseModel):
    """Base model for records loaded from the backend"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# SOURCE RECORDS
# ============================================================================

class Doctor(ReportRecord):
    """Doctor reference data"""
    id: str = ''
    name: str = ''
    specialization: str = ''
    active: bool = True


class Employee(ReportRecord):
    """Employee reference data, also used to pick a cashier"""
    id: str = ''
    name: str = ''
    position: str = ''
    active: bool = True


class AttendanceReport(ReportRecord):
    """A single doctor check-in or check-out"""
    id: str = ''
    doctor_id: str = ''
    doctor_name: str = ''
    shift: str = ''
    date: str = ''
    type: str = 'check-in'
    time: str = ''


class SalaryReport(ReportRecord):
    """Monthly salary slip for an employee"""
    id: str = ''
    employee_id: str = ''
    employee_name: str = ''
    month: str = ''
    year: str = ''
    base_salary: int = 0
    bonus: int = 0
    holiday_allowance: int = 0
    total_salary: int = 0
    field_trip_bonus_log: List[Dict[str, Any]] = Field(default_factory=list)

    @computed_field
    @property
    def period(self) -> str:
        try:
            return f"{MONTH_NAMES[int(self.month) - 1]} {self.year}"
        except (ValueError, IndexError):
            return f"{self.month} {self.year}".strip()


class DoctorFeeReport(ReportRecord):
    """Daily fee of one doctor: max(treatment fees, sitting fee)"""
    doctor_id: str = ''
    doctor_name: str = ''
    shift: str = ''
    date: str = ''
    treatment_fee: int = 0
    sitting_fee: int = 0
    final_fee: int = 0
    treatment_count: int = 0
    has_treatments: bool = False


class ExpenseReport(ReportRecord):
    """Operational expense ledger row"""
    id: str = ''
    name: str = ''
    category: str = ''
    description: str = ''
    amount: int = 0
    date: str = ''
    receipt: Optional[str] = None
    notes: str = ''


class TreatmentReport(ReportRecord):
    """Treatment performed on a patient"""
    id: str = ''
    patient_name: str = ''
    doctor_id: str = ''
    doctor_name: str = ''
    treatment_name: str = ''
    shift: str = ''
    amount: int = 0
    fee: int = 0
    date: str = ''
    payment_status: str = ''


class SalesReport(ReportRecord):
    """One product line of a sale"""
    id: str = ''
    sale_id: str = ''
    product_name: str = ''
    category: str = ''
    quantity: int = 0
    price_per_unit: int = 0
    subtotal: int = 0
    discount_amount: int = 0
    total_amount: int = 0
    date: str = ''
    notes: str = ''
    customer_name: str = ''
    payment_method: str = ''


class SelectedFieldTripDoctor(ReportRecord):
    doctor_id: str = ''
    doctor_name: str = ''
    specialization: str = ''
    fee: int = 0


class SelectedFieldTripEmployee(ReportRecord):
    employee_id: str = ''
    employee_name: str = ''
    position: str = ''
    bonus: int = 0


class FieldTripSaleReport(ReportRecord):
    """Field trip package sold to an organization"""
    id: str = ''
    customer_name: str = ''
    customer_phone: str = ''
    organization: str = ''
    product_name: str = ''
    product_category: str = ''
    location: str = ''
    participants: int = 0
    price_per_participant: int = 0
    subtotal: int = 0
    discount: int = 0
    total_amount: int = 0
    date: str = ''
    event_date: str = ''
    payment_status: str = ''
    payment_method: str = ''
    notes: str = ''
    selected_doctors: List[SelectedFieldTripDoctor] = Field(default_factory=list)
    selected_employees: List[SelectedFieldTripEmployee] = Field(default_factory=list)
    total_doctor_fees: Optional[int] = None
    total_employee_bonuses: Optional[int] = None

    @model_validator(mode='after')
    def _sum_staff_costs(self):
        # Explicit aggregates from the backend take precedence
        if self.total_doctor_fees is None:
            self.total_doctor_fees = sum(d.fee for d in self.selected_doctors)
        if self.total_employee_bonuses is None:
            self.total_employee_bonuses = sum(e.bonus for e in self.selected_employees)
        return self


# ============================================================================
# DERIVED SUMMARIES
# ============================================================================

class FinancialSummary(BaseModel):
    """Income statement for one month"""
    month: str
    year: str
    total_treatment_revenue: int = 0
    total_sales_revenue: int = 0
    total_field_trip_revenue: int = 0
    total_salary_costs: int = 0
    total_doctor_fees: int = 0
    total_expenses: int = 0
    field_trip_staff_costs: int = 0  # Informational, already inside salary and doctor fees

    @computed_field
    @property
    def period(self) -> str:
        try:
            return f"{MONTH_SHORT_NAMES[int(self.month) - 1]} {self.year}"
        except (ValueError, IndexError):
            return f"{self.month} {self.year}"

    @computed_field
    @property
    def total_revenue(self) -> int:
        return self.total_treatment_revenue + self.total_sales_revenue + self.total_field_trip_revenue

    @computed_field
    @property
    def total_costs(self) -> int:
        return self.total_salary_costs + self.total_doctor_fees + self.total_expenses

    @computed_field
    @property
    def net_profit(self) -> int:
        return self.total_revenue - self.total_costs

    @computed_field
    @property
    def margin(self) -> float:
        if self.total_revenue <= 0:
            return 0.0
        return round(self.net_profit / self.total_revenue * 100, 2)


class FieldTripStaffSummary(BaseModel):
    """Accumulated field trip fee or bonus of one person"""
    name: str
    role: str = ''
    total: int = 0
    count: int = 0

    @computed_field
    @property
    def average(self) -> int:
        return self.total // self.count if self.count else 0


# ============================================================================
# FILTERS AND DATASET
# ============================================================================

class ReportFilters(BaseModel):
    """
    Immutable filter state shared by every report tab.

    Use update() to derive a new value; instances are never modified in place.
    """
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    selected_doctor_id: str = Field('all', description="Doctor id or 'all'")
    shift: str = Field('all', description="Shift label or 'all'")
    date: str = Field('', description="Exact attendance date (YYYY-MM-DD)")
    type: str = Field('all', description="check-in, check-out or 'all'")
    start_date: str = Field('', description="Inclusive range start (YYYY-MM-DD)")
    end_date: str = Field('', description="Inclusive range end (YYYY-MM-DD)")
    doctor: str = Field('', description="Doctor name substring")
    employee: str = Field('', description="Employee name substring")
    month: str = Field('all', description="'01'..'12' or 'all'")
    year: str = Field('all', description="Four digit year or 'all'")
    search_product: str = ''
    product_category: str = 'all'
    search_field_trip_product: str = ''
    search_location: str = ''
    search_patient: str = ''
    search_treatment: str = ''
    search_customer: str = ''
    category: str = 'all'
    payment_status: str = 'all'

    def update(self, **changes) -> 'ReportFilters':
        """Return a copy with the given fields replaced"""
        unknown = set(changes) - set(type(self).model_fields)
        if unknown:
            raise ValueError(f"Unknown filter fields: {', '.join(sorted(unknown))}")
        return type(self).model_validate({**self.model_dump(), **changes})


class ReportDataset(BaseModel):
    """All normalized source collections for one reporting session"""
    doctors: List[Doctor] = Field(default_factory=list)
    employees: List[Employee] = Field(default_factory=list)
    active_employees: List[Employee] = Field(default_factory=list)
    attendance: List[AttendanceReport] = Field(default_factory=list)
    salaries: List[SalaryReport] = Field(default_factory=list)
    doctor_fees: List[DoctorFeeReport] = Field(default_factory=list)
    expenses: List[ExpenseReport] = Field(default_factory=list)
    treatments: List[TreatmentReport] = Field(default_factory=list)
    sales: List[SalesReport] = Field(default_factory=list)
    field_trip_sales: List[FieldTripSaleReport] = Field(default_factory=list)


class FilteredReports(BaseModel):
    """Filtered collections of every report tab plus the derived financial rows"""
    attendance: List[AttendanceReport] = Field(default_factory=list)
    salaries: List[SalaryReport] = Field(default_factory=list)
    doctor_fees: List[DoctorFeeReport] = Field(default_factory=list)
    treatments: List[TreatmentReport] = Field(default_factory=list)
    sales: List[SalesReport] = Field(default_factory=list)
    field_trip_sales: List[FieldTripSaleReport] = Field(default_factory=list)
    expenses: List[ExpenseReport] = Field(default_factory=list)
    financial: List[FinancialSummary] = Field(default_factory=list)
