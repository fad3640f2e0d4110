"""
Report Service (Data Access Layer)

Data access layer for the clinic backend. Issues authenticated GET requests
for every report source and normalizes the payloads into typed records. All
accessors share one failure policy, implemented by fetch_collection: a failed
request is logged, surfaced as a notification and treated as an empty list.

Copyright: © 2025 Falasifah Dental Clinic
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from functools import partial
from typing import Any, Callable, Dict, List, Optional

import requests

from .constants import FETCH_ERROR_MESSAGES, DEFAULT_FETCH_ERROR
from .errors import ReportFetchError
from .models import (
    ReportDataset,
    Doctor,
    Employee,
    AttendanceReport,
    SalaryReport,
    DoctorFeeReport,
    ExpenseReport,
    TreatmentReport,
    SalesReport,
    FieldTripSaleReport,
)
from .normalize import (
    normalize_many,
    normalize_doctor,
    normalize_employee,
    normalize_attendance,
    normalize_salary,
    normalize_doctor_fee,
    normalize_expense,
    normalize_treatment,
    normalize_sales,
    normalize_field_trip_sale,
    build_doctor_fee_report,
)
from .notifier import Notifier


class ReportService:
    """Client for the report endpoints of the clinic backend"""

    def __init__(
        self,
        server_url: str,
        access_token: Optional[str],
        notifier: Optional[Notifier] = None,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
        max_workers: int = 7
    ):
        self.server_url = server_url.rstrip('/')
        self.notifier = notifier if notifier is not None else Notifier()
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_workers = max_workers
        self.headers = {'Authorization': f"Bearer {access_token or ''}"}
        self.logger = logging.getLogger(self.__class__.__name__)

    def _get(self, endpoint: str) -> Dict[str, Any]:
        """
        GET an endpoint and return its JSON payload.

        Raises:
            ReportFetchError: On transport failure, non-2xx status or a
                payload with success set to false
        """
        url = f"{self.server_url}{endpoint}"
        try:
            response = self.session.get(url, headers=self.headers, timeout=self.timeout)
        except requests.RequestException as e:
            raise ReportFetchError(endpoint, str(e)) from e

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            payload = {}

        if not response.ok:
            error = payload.get('error')
            raise ReportFetchError(endpoint, error or f"HTTP {response.status_code}", from_server=bool(error))
        if payload.get('success') is False:
            error = payload.get('error')
            raise ReportFetchError(endpoint, error or 'Request failed', from_server=bool(error))
        return payload

    def fetch_collection(self, endpoint: str, key: str, *alt_keys: str) -> List[Dict[str, Any]]:
        """
        Fetch a list of records from an endpoint.

        Args:
            endpoint: Path relative to the server URL, e.g. '/treatments'
            key: Payload key holding the list
            alt_keys: Fallback payload keys

        Returns:
            The records, or an empty list when the request failed
        """
        try:
            payload = self._get(endpoint)
        except ReportFetchError as e:
            self.logger.error(f"Error fetching {e.endpoint}: {e.message}")
            message = FETCH_ERROR_MESSAGES.get(endpoint, DEFAULT_FETCH_ERROR)
            self.notifier.error(f"{message}: {e.message}" if e.from_server else message)
            return []

        for candidate in (key, *alt_keys):
            records = payload.get(candidate)
            if isinstance(records, list):
                self.logger.debug(f"Fetched {len(records)} records from {endpoint}")
                return records
        self.logger.debug(f"No '{key}' list in response from {endpoint}")
        return []

    # ========================================================================
    # REFERENCE DATA
    # ========================================================================

    def fetch_doctors(self) -> List[Doctor]:
        return normalize_many(normalize_doctor, self.fetch_collection('/doctors', 'doctors'))

    def fetch_employees(self, active_only: bool = False) -> List[Employee]:
        endpoint = '/employees/active' if active_only else '/employees'
        return normalize_many(normalize_employee, self.fetch_collection(endpoint, 'employees'))

    # ========================================================================
    # REPORT SOURCES
    # ========================================================================

    def fetch_attendance_report(self) -> List[AttendanceReport]:
        return normalize_many(normalize_attendance, self.fetch_collection('/attendance', 'attendance'))

    def fetch_salary_report(self) -> List[SalaryReport]:
        return normalize_many(normalize_salary, self.fetch_collection('/salary', 'salaries', 'salary'))

    def fetch_precomputed_doctor_fees(self) -> List[DoctorFeeReport]:
        """Doctor fees as stored by the backend, if it keeps them"""
        fees = normalize_many(normalize_doctor_fee, self.fetch_collection('/doctor-fees', 'doctorFees', 'fees'))
        return sorted(fees, key=lambda f: f.date, reverse=True)

    def derive_doctor_fees(self, treatments: List[TreatmentReport]) -> List[DoctorFeeReport]:
        """Doctor fees derived from treatments, sitting fees and sitting fee settings"""
        sitting_fees = self.fetch_collection('/sitting-fees', 'sittingFees')
        settings = self.fetch_collection('/doctor-sitting-fee-settings', 'settings')
        return build_doctor_fee_report(treatments, sitting_fees, settings)

    def fetch_doctor_fee_report(self, treatments: Optional[List[TreatmentReport]] = None) -> List[DoctorFeeReport]:
        """
        Doctor fee report.

        Uses the backend's doctor fee records when it returns any; otherwise
        derives them from treatments (fetched if not given).
        """
        fees = self.fetch_precomputed_doctor_fees()
        if fees:
            return fees
        if treatments is None:
            treatments = self.fetch_treatment_report()
        return self.derive_doctor_fees(treatments)

    def fetch_expense_report(self) -> List[ExpenseReport]:
        return normalize_many(normalize_expense, self.fetch_collection('/expenses', 'expenses'))

    def fetch_treatment_report(self) -> List[TreatmentReport]:
        return normalize_many(normalize_treatment, self.fetch_collection('/treatments', 'treatments'))

    def fetch_sales_report(self) -> List[SalesReport]:
        return normalize_many(normalize_sales, self.fetch_collection('/sales', 'sales'))

    def fetch_field_trip_sales(self) -> List[FieldTripSaleReport]:
        return normalize_many(
            normalize_field_trip_sale,
            self.fetch_collection('/field-trip-sales', 'sales', 'fieldTripSales')
        )

    # ========================================================================
    # DATASET
    # ========================================================================

    def load_dataset(self) -> ReportDataset:
        """
        Load every report source.

        The doctor list is fetched first; the remaining sources are then
        fetched concurrently and the call waits for all of them. Doctor fees
        come last since deriving them needs the treatments. There are no
        retries: a failed source is empty.
        """
        doctors = self.fetch_doctors()

        tasks: Dict[str, Callable[[], list]] = {
            'employees': self.fetch_employees,
            'active_employees': partial(self.fetch_employees, active_only=True),
            'attendance': self.fetch_attendance_report,
            'salaries': self.fetch_salary_report,
            'expenses': self.fetch_expense_report,
            'treatments': self.fetch_treatment_report,
            'sales': self.fetch_sales_report,
            'field_trip_sales': self.fetch_field_trip_sales,
        }
        results: Dict[str, list] = {}

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_name = {executor.submit(fetch): name for name, fetch in tasks.items()}
            for future in as_completed(future_to_name):
                name = future_to_name[future]
                try:
                    results[name] = future.result()
                except Exception as e:
                    self.logger.error(
                        f"Error loading {name}:\n"
                        f"  Exception Type: {type(e).__name__}\n"
                        f"  Message: {str(e)}",
                        exc_info=True
                    )
                    self.notifier.error(DEFAULT_FETCH_ERROR)
                    results[name] = []

        results['doctor_fees'] = self.fetch_doctor_fee_report(results['treatments'])

        self.logger.info(
            "Loaded report dataset: " + ", ".join(f"{name}={len(records)}" for name, records in results.items())
        )
        return ReportDataset(doctors=doctors, **results)
