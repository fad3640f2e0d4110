"""
================================================================================
Falasifah Dental Clinic Reports - Unified Test Configuration and Fixtures
================================================================================
Falasifah Dental Clinic

Description:
    Shared pytest configuration and fixtures for all tests (unit and API).
    Provides backend payloads, a normalized report dataset, a fake HTTP
    session for the report service and fake print windows.

Fixtures:
    - temp_dir: Temporary directory for test files
    - raw_payloads: Backend JSON payloads keyed by endpoint
    - sample_dataset: ReportDataset normalized from raw_payloads
    - january_filters: Default filters for January 2024
    - fake_session: requests.Session stand-in serving raw_payloads
    - fake_opener / blocked_opener: Print window openers
    - client: FastAPI TestClient wired to the sample dataset
    - live_client: FastAPI TestClient loading data through the fake session

Dataset Summary (January 2024):
    - Treatments: 2 by drg. Sari (Rp 400.000 revenue, Rp 120.000 fees)
    - Sales: 1 sale with 2 items and Rp 10.000 discount (Rp 90.000)
    - Field trip: 1 sale for 30 participants (Rp 550.000)
    - Salary: Rina, Rp 3.500.000 (total derived from components)
    - Expenses: Listrik, Rp 400.000
================================================================================
"""
import pytest
import tempfile
import shutil
import sys
from pathlib import Path
from datetime import date
from unittest.mock import Mock

# Add project root to path for all tests
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from clinic_reports.reports.constants import MORNING_SHIFT, EVENING_SHIFT
from clinic_reports.reports.filters import get_default_filters
from clinic_reports.reports.models import ReportDataset
from clinic_reports.reports.normalize import (
    normalize_many,
    normalize_doctor,
    normalize_employee,
    normalize_attendance,
    normalize_salary,
    normalize_expense,
    normalize_treatment,
    normalize_sales,
    normalize_field_trip_sale,
    build_doctor_fee_report,
)

SERVER_URL = "http://backend.test/functions/v1/make-server"


# ============================================================================
# BACKEND PAYLOADS
# ============================================================================

@pytest.fixture
def raw_payloads():
    """Backend responses keyed by endpoint"""
    return {
        '/doctors': {'doctors': [
            {'id': 'd1', 'name': 'drg. Sari', 'specialization': 'Umum'},
            {'id': 'd2', 'name': 'drg. Andi', 'specialization': 'Ortodonti'},
        ]},
        '/employees': {'employees': [
            {'id': 'e1', 'name': 'Rina', 'position': 'Perawat'},
            {'id': 'e2', 'name': 'Dewi', 'position': 'Kasir'},
        ]},
        '/employees/active': {'employees': [
            {'id': 'e1', 'name': 'Rina', 'position': 'Perawat'},
            {'id': 'e2', 'name': 'Dewi', 'position': 'Kasir'},
        ]},
        '/attendance': {'attendance': [
            {'id': 'a1', 'doctorId': 'd1', 'doctorName': 'drg. Sari', 'shift': MORNING_SHIFT,
             'date': '2024-01-10', 'type': 'check-in', 'time': '09:10'},
            {'id': 'a2', 'doctorId': 'd1', 'doctorName': 'drg. Sari', 'shift': MORNING_SHIFT,
             'date': '2024-01-10', 'type': 'check-out', 'time': '14:30'},
            {'id': 'a3', 'doctorId': 'd2', 'doctorName': 'drg. Andi', 'shift': EVENING_SHIFT,
             'date': '2024-02-05', 'type': 'check-in', 'time': '18:20'},
        ]},
        '/salary': {'salaries': [
            {'id': 'sal1', 'employeeId': 'e1', 'employeeName': 'Rina', 'month': '1', 'year': 2024,
             'baseSalary': 3000000, 'bonus': 500000, 'holidayAllowance': 0},
        ]},
        '/doctor-fees': {'doctorFees': []},
        '/sitting-fees': {'sittingFees': [
            {'doctorName': 'drg. Sari', 'date': '2024-01-10', 'amount': 100000},
            {'doctorName': 'drg. Sari', 'date': '2024-01-11', 'amount': 100000},
        ]},
        '/doctor-sitting-fee-settings': {'settings': [
            {'doctorName': 'drg. Andi', 'amount': 150000},
        ]},
        '/expenses': {'expenses': [
            {'id': 'x1', 'name': 'Listrik', 'category': 'other', 'description': 'Tagihan listrik',
             'amount': 400000, 'date': '2024-01-25'},
        ]},
        '/treatments': {'treatments': [
            {'id': 't1', 'doctorId': 'd1', 'doctorName': 'drg. Sari', 'patientName': 'Budi',
             'treatmentTypes': [{'name': 'Scaling'}], 'totalTindakan': 250000, 'calculatedFee': 75000,
             'date': '2024-01-10', 'shift': MORNING_SHIFT, 'paymentStatus': 'Lunas'},
            {'id': 't2', 'doctorId': 'd1', 'doctorName': 'drg. Sari', 'patientName': 'Ani',
             'treatmentType': 'Tambal', 'nominal': 150000, 'fee': 45000,
             'date': '2024-01-10', 'shift': EVENING_SHIFT},
            {'id': 't3', 'doctorId': 'd2', 'doctorName': 'drg. Andi', 'patientName': 'Citra',
             'treatmentName': 'Cabut Gigi', 'amount': 300000, 'fee': 90000, 'date': '2024-02-05'},
        ]},
        '/sales': {'sales': [
            {'id': 'sale_abcdef12', 'date': '2024-01-12', 'discount': 10000, 'customerName': 'Budi',
             'paymentMethod': 'Tunai', 'items': [
                 {'productName': 'Sikat Gigi', 'category': 'dental-care', 'quantity': 2, 'pricePerUnit': 25000},
                 {'productName': 'Pasta Gigi', 'category': 'dental-care', 'quantity': 1, 'pricePerUnit': 50000},
             ]},
            {'id': 'sale_0000ff02', 'date': '2024-02-01', 'totalAmount': 80000},
        ]},
        '/field-trip-sales': {'sales': [
            {'id': 'ft_9876zyxw', 'customerName': 'Bu Wati', 'organization': 'SDN 1 Depok',
             'productName': 'Edukasi Gigi Sehat', 'location': 'Depok', 'participants': 30,
             'pricePerParticipant': 20000, 'discountAmount': 50000, 'eventDate': '2024-01-20',
             'paymentStatus': 'paid', 'paymentMethod': 'Transfer',
             'selectedDoctors': [{'doctorId': 'd1', 'doctorName': 'drg. Sari', 'specialization': 'Umum', 'fee': 200000}],
             'selectedEmployees': [{'employeeId': 'e1', 'employeeName': 'Rina', 'position': 'Perawat', 'bonus': 50000}]},
        ]},
    }


@pytest.fixture
def sample_dataset(raw_payloads):
    """ReportDataset normalized from the backend payloads"""
    treatments = normalize_many(normalize_treatment, raw_payloads['/treatments']['treatments'])
    return ReportDataset(
        doctors=normalize_many(normalize_doctor, raw_payloads['/doctors']['doctors']),
        employees=normalize_many(normalize_employee, raw_payloads['/employees']['employees']),
        active_employees=normalize_many(normalize_employee, raw_payloads['/employees/active']['employees']),
        attendance=normalize_many(normalize_attendance, raw_payloads['/attendance']['attendance']),
        salaries=normalize_many(normalize_salary, raw_payloads['/salary']['salaries']),
        doctor_fees=build_doctor_fee_report(
            treatments,
            raw_payloads['/sitting-fees']['sittingFees'],
            raw_payloads['/doctor-sitting-fee-settings']['settings']
        ),
        expenses=normalize_many(normalize_expense, raw_payloads['/expenses']['expenses']),
        treatments=treatments,
        sales=normalize_many(normalize_sales, raw_payloads['/sales']['sales']),
        field_trip_sales=normalize_many(normalize_field_trip_sale, raw_payloads['/field-trip-sales']['sales']),
    )


@pytest.fixture
def january_filters():
    """Default filters as of mid January 2024"""
    return get_default_filters(date(2024, 1, 15))


# ============================================================================
# FAKE HTTP SESSION
# ============================================================================

def make_response(payload, status_code=200):
    """Mock requests.Response with a JSON payload"""
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = payload
    return response


@pytest.fixture
def fake_session(raw_payloads):
    """
    Session whose get() serves raw_payloads by endpoint.

    Assign session.overrides[endpoint] = response (or an exception instance)
    to change what a single endpoint returns.
    """
    session = Mock()
    session.overrides = {}

    def get(url, headers=None, timeout=None):
        endpoint = url[len(SERVER_URL):]
        override = session.overrides.get(endpoint)
        if isinstance(override, Exception):
            raise override
        if override is not None:
            return override
        if endpoint in raw_payloads:
            return make_response(raw_payloads[endpoint])
        return make_response({'error': 'Not found'}, 404)

    session.get.side_effect = get
    return session


# ============================================================================
# FAKE PRINT WINDOWS
# ============================================================================

class FakeWindow:
    """Print window recording what it received"""

    def __init__(self):
        self.html = None
        self.printed = False

    def write(self, html):
        self.html = html

    def print(self):
        self.printed = True


class FakeOpener:
    """Window opener that hands out FakeWindows, or None when blocked"""

    def __init__(self, blocked=False):
        self.blocked = blocked
        self.windows = []

    def open(self):
        if self.blocked:
            return None
        window = FakeWindow()
        self.windows.append(window)
        return window


@pytest.fixture
def fake_opener():
    return FakeOpener()


@pytest.fixture
def blocked_opener():
    return FakeOpener(blocked=True)


# ============================================================================
# API CLIENT
# ============================================================================

@pytest.fixture
def client(sample_dataset, january_filters, fake_opener):
    """Create a FastAPI test client serving the sample dataset"""
    from fastapi.testclient import TestClient
    from clinic_reports.app import app, app_state
    from clinic_reports.reports.handlers import ReportHandlers
    from clinic_reports.reports.notifier import Notifier
    from clinic_reports.reports.preview import PrintPreview
    from clinic_reports.reports.router import get_report_handlers

    saved_state = dict(app_state)
    app_state.update(
        filters=january_filters,
        preview=PrintPreview(Notifier()),
        window_opener=fake_opener,
    )
    app.dependency_overrides[get_report_handlers] = lambda: ReportHandlers(sample_dataset)

    yield TestClient(app)

    app.dependency_overrides.clear()
    app_state.clear()
    app_state.update(saved_state)


@pytest.fixture
def live_client(fake_session, january_filters, fake_opener, monkeypatch):
    """
    Create a FastAPI test client that loads the dataset through the report
    service, with the backend answered by fake_session.
    """
    from fastapi.testclient import TestClient
    from clinic_reports.app import app, app_state
    from clinic_reports.config import get_config
    from clinic_reports.reports.notifier import Notifier
    from clinic_reports.reports.preview import PrintPreview

    monkeypatch.setattr(get_config().backend, 'server_url', SERVER_URL)
    saved_state = dict(app_state)
    app_state.update(
        filters=january_filters,
        preview=PrintPreview(Notifier()),
        window_opener=fake_opener,
        http_session=fake_session,
    )

    yield TestClient(app)

    app.dependency_overrides.clear()
    app_state.clear()
    app_state.update(saved_state)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests"""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)
