"""
Report Normalization

Canonical conversion of raw backend payloads into typed report records. Each
report type has exactly one normalizer, applied once when the data is fetched,
so field aliases (amount/nominal, fee/calculatedFee, ...) are resolved in a
single place. Money is converted to integer rupiah with half-up rounding.

Copyright: © 2025 Falasifah Dental Clinic
"""

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from typing import Any, Dict, Iterable, List, Tuple

from .constants import (
    SHIFT_TIME_WINDOWS,
    MORNING_SHIFT,
    STATUS_ON_TIME,
    STATUS_LATE,
    DEFAULT_PAYMENT_STATUS,
    DEFAULT_TREATMENT_NAME,
    DEFAULT_SITTING_FEE,
    GENERAL_SALE_NAME,
)
from .models import (
    AttendanceReport,
    SalaryReport,
    DoctorFeeReport,
    ExpenseReport,
    TreatmentReport,
    SalesReport,
    FieldTripSaleReport,
    SelectedFieldTripDoctor,
    SelectedFieldTripEmployee,
    Doctor,
    Employee,
)

logger = logging.getLogger(__name__)

# Priority order of the treatment nominal fields; totalTindakan includes admin fee and medication
TREATMENT_AMOUNT_KEYS = (
    'totalTindakan', 'totalNominal', 'subtotal', 'nominal',
    'amount', 'totalAmount', 'price', 'total'
)


# ============================================================================
# PRIMITIVES
# ============================================================================

def to_rupiah(value: Any) -> int:
    """
    Convert a raw amount to whole rupiah.

    None, empty strings and unparseable values become 0. Fractions are rounded
    half-up. Amounts wider than the default decimal precision keep every
    integer digit.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        logger.debug(f"Unparseable amount {value!r}, using 0")
        return 0
    if not amount.is_finite():
        return 0
    with localcontext() as ctx:
        # quantize needs one digit of precision per integer digit
        ctx.prec = max(ctx.prec, amount.adjusted() + 2)
        return int(amount.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def first_present(raw: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Value of the first key that is present and not None/empty"""
    for key in keys:
        value = raw.get(key)
        if value is not None and value != '':
            return value
    return default


def _text(raw: Dict[str, Any], *keys: str, default: str = '') -> str:
    value = first_present(raw, *keys, default=default)
    return str(value) if value is not None else default


def _iso_date(raw: Dict[str, Any], *keys: str) -> str:
    return _text(raw, *keys)[:10]


def _clock(value: str) -> str:
    """Zero-padded HH:MM from a time such as "9:05" or "09:05:33" """
    parts = (value or '').strip().split(':')
    if len(parts) < 2 or not parts[0].isdigit() or not parts[1][:2].isdigit():
        return ''
    return f"{int(parts[0]):02d}:{int(parts[1][:2]):02d}"


def _month(value: Any) -> str:
    text = str(value or '').strip()
    return text.zfill(2) if text.isdigit() else text


def doctor_key(name: str) -> str:
    """Case and whitespace insensitive doctor identity"""
    return ' '.join((name or '').split()).lower()


def display_name(name: str) -> str:
    return ' '.join((name or '').split())


def final_fee(treatment_fee: int, sitting_fee: int) -> int:
    """A doctor earns the larger of accumulated treatment fees and the sitting fee"""
    return max(treatment_fee, sitting_fee)


# ============================================================================
# REFERENCE DATA
# ============================================================================

def normalize_doctor(raw: Dict[str, Any]) -> Doctor:
    return Doctor(
        id=_text(raw, 'id'),
        name=display_name(_text(raw, 'name', 'doctorName')),
        specialization=_text(raw, 'specialization', 'specialty'),
        active=raw.get('active', raw.get('status', 'active') == 'active') is not False,
    )


def normalize_employee(raw: Dict[str, Any]) -> Employee:
    return Employee(
        id=_text(raw, 'id'),
        name=display_name(_text(raw, 'name', 'employeeName')),
        position=_text(raw, 'position', 'role'),
        active=raw.get('active', raw.get('status', 'active') == 'active') is not False,
    )


# ============================================================================
# REPORT RECORDS
# ============================================================================

def normalize_attendance(raw: Dict[str, Any]) -> AttendanceReport:
    return AttendanceReport(
        id=_text(raw, 'id'),
        doctor_id=_text(raw, 'doctorId', 'doctor_id'),
        doctor_name=display_name(_text(raw, 'doctorName', 'doctor_name', default='Unknown Doctor')),
        shift=_text(raw, 'shift'),
        date=_iso_date(raw, 'date', 'tanggal'),
        type=_text(raw, 'type', default='check-in'),
        time=_clock(_text(raw, 'time')) or _text(raw, 'time'),
    )


def attendance_status(record: AttendanceReport) -> str:
    """
    On-time status of a check-in or check-out.

    Morning shift check-ins are on time until 09:15 and check-outs from 15:00;
    evening shift check-ins until 18:15 and check-outs from 20:00. Any other
    shift is reported late.
    """
    window = SHIFT_TIME_WINDOWS.get(record.shift)
    clock = _clock(record.time)
    if not window or not clock:
        return STATUS_LATE
    latest_check_in, earliest_check_out = window
    if record.type == 'check-out':
        return STATUS_ON_TIME if clock >= earliest_check_out else STATUS_LATE
    return STATUS_ON_TIME if clock <= latest_check_in else STATUS_LATE


def normalize_salary(raw: Dict[str, Any]) -> SalaryReport:
    base_salary = to_rupiah(raw.get('baseSalary'))
    bonus = to_rupiah(raw.get('bonus'))
    holiday_allowance = to_rupiah(raw.get('holidayAllowance'))
    stored_total = raw.get('totalSalary')
    if stored_total is None or stored_total == '':
        logger.debug(f"Salary {raw.get('id')} has no total, summing components")
        total_salary = base_salary + bonus + holiday_allowance
    else:
        total_salary = to_rupiah(stored_total)
    return SalaryReport(
        id=_text(raw, 'id'),
        employee_id=_text(raw, 'employeeId', 'employee_id'),
        employee_name=display_name(_text(raw, 'employeeName', 'employee_name')),
        month=_month(raw.get('month')),
        year=str(raw.get('year') or ''),
        base_salary=base_salary,
        bonus=bonus,
        holiday_allowance=holiday_allowance,
        total_salary=total_salary,
        field_trip_bonus_log=list(raw.get('fieldTripBonusLog') or []),
    )


def normalize_expense(raw: Dict[str, Any]) -> ExpenseReport:
    return ExpenseReport(
        id=_text(raw, 'id'),
        name=_text(raw, 'name'),
        category=_text(raw, 'category'),
        description=_text(raw, 'description', 'name'),
        amount=to_rupiah(raw.get('amount')),
        date=_iso_date(raw, 'date', 'tanggal'),
        receipt=raw.get('receipt') or None,
        notes=_text(raw, 'notes', 'catatan'),
    )


def _treatment_name(raw: Dict[str, Any]) -> str:
    types = raw.get('treatmentTypes')
    if isinstance(types, list) and types:
        names = []
        for item in types:
            if isinstance(item, dict):
                name = first_present(item, 'name', 'treatmentName', 'type')
            else:
                name = item
            if name:
                names.append(str(name))
        if names:
            return ', '.join(names)
    description = str(raw.get('description') or '').strip()
    return _text(raw, 'treatmentType', 'treatmentName', default=description or DEFAULT_TREATMENT_NAME)


def normalize_treatment(raw: Dict[str, Any]) -> TreatmentReport:
    amount_value = first_present(raw, *TREATMENT_AMOUNT_KEYS)
    if amount_value is None:
        logger.debug(f"Treatment {raw.get('id')} has no nominal field, using 0")
    return TreatmentReport(
        id=_text(raw, 'id'),
        patient_name=display_name(_text(raw, 'patientName', 'patient_name')),
        doctor_id=_text(raw, 'doctorId', 'doctor_id'),
        doctor_name=display_name(_text(raw, 'doctorName', 'doctor_name', 'doctor', default='Unknown')),
        treatment_name=_treatment_name(raw),
        shift=_text(raw, 'shift'),
        amount=to_rupiah(amount_value),
        fee=to_rupiah(first_present(raw, 'calculatedFee', 'fee')),
        date=_iso_date(raw, 'date', 'tanggal'),
        payment_status=_text(raw, 'paymentStatus', default=DEFAULT_PAYMENT_STATUS),
    )


def split_discount(discount: int, weights: List[int]) -> List[int]:
    """
    Split a discount across lines in proportion to their value.

    Shares are rounded on the running total, so they always add up to the
    whole discount.
    """
    base = sum(weights)
    if discount <= 0 or base <= 0:
        return [0] * len(weights)
    shares = []
    allocated = 0
    running = 0
    for weight in weights:
        running += weight
        target = int((Decimal(discount) * running / base).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
        shares.append(target - allocated)
        allocated = target
    return shares


def normalize_sales(raw: Dict[str, Any]) -> List[SalesReport]:
    """Flatten one sale into a report row per purchased item"""
    sale_id = _text(raw, 'id')
    items = raw.get('items') or raw.get('produk') or []
    sale_date = _iso_date(raw, 'date', 'tanggal', 'created_at')
    notes = _text(raw, 'notes', 'catatan')
    customer_name = _text(raw, 'customerName', 'customer')
    payment_method = _text(raw, 'paymentMethod')
    discount = to_rupiah(first_present(raw, 'discount', 'discountAmount'))

    if not items:
        stored_total = first_present(raw, 'totalAmount', 'total', 'finalAmount', 'jumlah_total')
        subtotal = to_rupiah(first_present(raw, 'subtotal', default=stored_total))
        total = to_rupiah(stored_total) if stored_total is not None else subtotal - discount
        logger.debug(f"Sale {sale_id} has no items, reporting as {GENERAL_SALE_NAME}")
        return [SalesReport(
            id=sale_id,
            sale_id=sale_id,
            product_name=GENERAL_SALE_NAME,
            category='Umum',
            quantity=1,
            price_per_unit=subtotal,
            subtotal=subtotal,
            discount_amount=discount,
            total_amount=total,
            date=sale_date,
            notes=notes,
            customer_name=customer_name,
            payment_method=payment_method,
        )]

    lines = []
    for item in items:
        quantity = to_rupiah(first_present(item, 'quantity', 'jumlah', default=1)) or 1
        price = to_rupiah(first_present(item, 'pricePerUnit', 'harga', 'price'))
        lines.append((item, quantity, price, quantity * price))
    shares = split_discount(discount, [line[3] for line in lines])

    rows = []
    for index, ((item, quantity, price, subtotal), share) in enumerate(zip(lines, shares)):
        stored_total = first_present(item, 'totalAmount')
        rows.append(SalesReport(
            id=f"{sale_id}_item_{index}",
            sale_id=sale_id,
            product_name=_text(item, 'productName', 'nama', 'name', default='Produk Tidak Diketahui'),
            category=_text(item, 'category', 'kategori', default='Umum'),
            quantity=quantity,
            price_per_unit=price,
            subtotal=subtotal,
            discount_amount=share,
            total_amount=to_rupiah(stored_total) if stored_total is not None else subtotal - share,
            date=sale_date,
            notes=notes or _text(item, 'notes'),
            customer_name=customer_name,
            payment_method=payment_method,
        ))
    return rows


def normalize_field_trip_sale(raw: Dict[str, Any]) -> FieldTripSaleReport:
    participants = to_rupiah(first_present(raw, 'participants', 'quantity', default=1)) or 1
    stored_total = first_present(raw, 'totalAmount', 'finalAmount')
    price_value = first_present(raw, 'pricePerParticipant', 'pricePerUnit', 'price')
    if price_value is None and stored_total is not None:
        price_per_participant = to_rupiah(stored_total) // participants
    else:
        price_per_participant = to_rupiah(price_value)
    subtotal_value = first_present(raw, 'subtotal')
    subtotal = to_rupiah(subtotal_value) if subtotal_value is not None else participants * price_per_participant
    discount = to_rupiah(first_present(raw, 'discountAmount', 'discount'))
    total = to_rupiah(stored_total) if stored_total is not None else subtotal - discount

    explicit_fees = raw.get('totalDoctorFees')
    explicit_bonuses = raw.get('totalEmployeeBonuses')

    return FieldTripSaleReport(
        id=_text(raw, 'id'),
        customer_name=_text(raw, 'customerName'),
        customer_phone=_text(raw, 'customerPhone', 'customerContact'),
        organization=_text(raw, 'organization', 'customerName'),
        product_name=_text(raw, 'productName', default='Field Trip Product'),
        product_category=_text(raw, 'productCategory', default='Field Trip'),
        location=_text(raw, 'location'),
        participants=participants,
        price_per_participant=price_per_participant,
        subtotal=subtotal,
        discount=discount,
        total_amount=total,
        date=_iso_date(raw, 'eventDate', 'saleDate', 'created_at'),
        event_date=_iso_date(raw, 'eventDate'),
        payment_status=_text(raw, 'paymentStatus', 'status'),
        payment_method=_text(raw, 'paymentMethod'),
        notes=_text(raw, 'notes'),
        selected_doctors=[
            SelectedFieldTripDoctor(
                doctor_id=_text(d, 'doctorId', 'id'),
                doctor_name=display_name(_text(d, 'doctorName', 'name')),
                specialization=_text(d, 'specialization'),
                fee=to_rupiah(d.get('fee')),
            )
            for d in raw.get('selectedDoctors') or []
        ],
        selected_employees=[
            SelectedFieldTripEmployee(
                employee_id=_text(e, 'employeeId', 'id'),
                employee_name=display_name(_text(e, 'employeeName', 'name')),
                position=_text(e, 'position'),
                bonus=to_rupiah(e.get('bonus')),
            )
            for e in raw.get('selectedEmployees') or []
        ],
        total_doctor_fees=to_rupiah(explicit_fees) if explicit_fees else None,
        total_employee_bonuses=to_rupiah(explicit_bonuses) if explicit_bonuses else None,
    )


# ============================================================================
# DOCTOR FEES
# ============================================================================

def normalize_doctor_fee(raw: Dict[str, Any]) -> DoctorFeeReport:
    """Normalize a precomputed doctor fee record"""
    treatment_fee = to_rupiah(raw.get('treatmentFee'))
    sitting_fee = to_rupiah(raw.get('sittingFee'))
    stored_final = first_present(raw, 'finalFee', 'totalFee')
    return DoctorFeeReport(
        doctor_id=_text(raw, 'doctorId'),
        doctor_name=display_name(_text(raw, 'doctorName', 'doctor')),
        shift=_text(raw, 'shift'),
        date=_iso_date(raw, 'date'),
        treatment_fee=treatment_fee,
        sitting_fee=sitting_fee,
        final_fee=to_rupiah(stored_final) if stored_final is not None else final_fee(treatment_fee, sitting_fee),
        treatment_count=to_rupiah(raw.get('treatmentCount')),
        has_treatments=bool(raw.get('hasTreatments', treatment_fee > 0)),
    )


def _doctor_name_of(raw: Dict[str, Any]) -> str:
    return _text(raw, 'doctorName', 'doctor_name', 'doctor', default='Unknown')


def build_doctor_fee_report(
    treatments: Iterable[TreatmentReport],
    sitting_fees: Iterable[Dict[str, Any]],
    sitting_fee_settings: Iterable[Dict[str, Any]],
) -> List[DoctorFeeReport]:
    """
    Derive daily doctor fees from treatments and sitting fees.

    Treatments are grouped per doctor per date regardless of shift. The
    sitting fee of a day is the highest recorded one, falling back to the
    doctor's default setting and then to the clinic default. Days with a
    sitting fee but no treatments get their own row.

    Returns:
        One record per doctor per date, newest first
    """
    groups: Dict[Tuple[str, str], Dict[str, Any]] = {}
    for treatment in treatments:
        key = (doctor_key(treatment.doctor_name), treatment.date)
        group = groups.setdefault(key, {
            'doctor_id': treatment.doctor_id,
            'doctor_name': display_name(treatment.doctor_name),
            'fee': 0,
            'count': 0,
            'shifts': [],
        })
        group['fee'] += treatment.fee
        group['count'] += 1
        shift = treatment.shift or MORNING_SHIFT
        if shift not in group['shifts']:
            group['shifts'].append(shift)

    recorded: Dict[Tuple[str, str], Tuple[int, str]] = {}
    for raw in sitting_fees:
        name = _doctor_name_of(raw)
        key = (doctor_key(name), _iso_date(raw, 'date', 'tanggal'))
        amount = to_rupiah(first_present(raw, 'amount', 'uang_duduk', 'sittingFee'))
        if key not in recorded or recorded[key][0] < amount:
            recorded[key] = (amount, display_name(name))

    defaults: Dict[str, int] = {}
    setting_names: Dict[str, str] = {}
    for raw in sitting_fee_settings:
        name = _doctor_name_of(raw)
        defaults[doctor_key(name)] = to_rupiah(first_present(raw, 'amount', 'jumlah')) or DEFAULT_SITTING_FEE
        setting_names[doctor_key(name)] = display_name(name)

    rows = []
    for (name_key, fee_date), group in groups.items():
        sitting_fee = recorded.get((name_key, fee_date), (0, ''))[0]
        if not sitting_fee:
            sitting_fee = defaults.get(name_key, DEFAULT_SITTING_FEE)
            logger.debug(f"Using default sitting fee {sitting_fee} for {group['doctor_name']} on {fee_date}")
        shifts = group['shifts']
        shift = shifts[0] if len(shifts) == 1 else f"{shifts[0]} (+{len(shifts) - 1} shift lain)"
        rows.append(DoctorFeeReport(
            doctor_id=group['doctor_id'],
            doctor_name=group['doctor_name'],
            shift=shift,
            date=fee_date,
            treatment_fee=group['fee'],
            sitting_fee=sitting_fee,
            final_fee=final_fee(group['fee'], sitting_fee),
            treatment_count=group['count'],
            has_treatments=True,
        ))

    for (name_key, fee_date), (amount, name) in recorded.items():
        if (name_key, fee_date) in groups or amount <= 0:
            continue
        rows.append(DoctorFeeReport(
            doctor_name=setting_names.get(name_key, name),
            shift='Tidak ada tindakan',
            date=fee_date,
            treatment_fee=0,
            sitting_fee=amount,
            final_fee=amount,
            treatment_count=0,
            has_treatments=False,
        ))

    rows.sort(key=lambda row: row.date, reverse=True)
    return rows


def normalize_many(normalizer, payloads: Iterable[Dict[str, Any]]) -> List[Any]:
    """Apply a normalizer to every payload, skipping entries that are not objects"""
    records = []
    for raw in payloads:
        if not isinstance(raw, dict):
            logger.debug(f"Skipping non-object payload {raw!r}")
            continue
        result = normalizer(raw)
        if isinstance(result, list):
            records.extend(result)
        else:
            records.append(result)
    return records
