"""
================================================================================
Falasifah Dental Clinic Reports - Report API Endpoint Tests
================================================================================
Falasifah Dental Clinic

Description:
    Endpoint tests for the report and print preview routers using the
    FastAPI TestClient. Most tests override the dataset loader with the
    shared sample dataset; the fetch failure tests load it through the report
    service against a fake backend session.

Test Coverage:
    - Health check, filter defaults and option lists
    - Report data with query string filters (snake_case and camelCase)
    - Printable HTML, HTML download and CSV export
    - Invoice/receipt endpoint and its error responses
    - Print preview staging, shortcuts, confirm and download
    - Invoice/receipt preview printing with a blocked popup
    - Backend failures surfaced through the report service
================================================================================
"""
import json
from unittest.mock import Mock

import pytest
import requests

from clinic_reports.reports.constants import (
    MSG_SELECT_CASHIER,
    MSG_NO_EXPORT_DATA,
    MSG_EXPORT_SUCCESS,
    MSG_POPUP_BLOCKED,
    MSG_PRINT_SUCCESS,
)


def make_response(payload, status_code=200):
    """Mock requests.Response with a JSON payload"""
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    response.json.return_value = payload
    return response


class TestGeneralEndpoints:
    """Test health and option endpoints"""

    def test_health(self, client):
        """Test health check reports the preview state"""
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data['status'] == "healthy"
        assert data['preview'] == "closed"
        assert 'timestamp' in data

    def test_default_filters(self, client):
        """Test default filters select the current month"""
        data = client.get("/api/reports/filters/default").json()

        assert data['month'] != "all"
        assert data['year'] != "all"
        assert data['selected_doctor_id'] == "all"
        assert data['doctor'] == ""

    def test_options(self, client):
        """Test option lists for the filter controls"""
        data = client.get("/api/reports/options").json()

        years = [y['value'] for y in data['years']]
        assert years[0] == "all"
        assert "2020" in years and "2040" in years
        assert len(data['months']) == 13
        assert {'value': 'financial', 'label': 'Laporan Keuangan Bulanan'} in data['report_types']


class TestReportEndpoints:
    """Test /api/reports/{report_type}"""

    def test_sales_report(self, client):
        """Test report data with the session filters"""
        response = client.get("/api/reports/sales")

        assert response.status_code == 200
        data = response.json()
        assert data['record_count'] == 2
        assert data['totals']['total'] == 90000
        assert data['messages'] == []

    def test_month_query(self, client):
        """Test a query parameter overrides the session filter"""
        data = client.get("/api/reports/sales", params={'month': '02'}).json()

        assert data['record_count'] == 1
        assert data['records'][0]['total_amount'] == 80000

    def test_camel_case_query(self, client):
        """Test camelCase filter names are accepted"""
        data = client.get("/api/reports/treatments", params={'selectedDoctorId': 'd2', 'month': 'all'}).json()

        assert data['record_count'] == 1
        assert data['records'][0]['patient_name'] == "Citra"

    def test_unknown_report(self, client):
        """Test unknown report types return 404"""
        assert client.get("/api/reports/inventory").status_code == 404


class TestDocumentEndpoints:
    """Test print, download and export endpoints"""

    def test_print(self, client):
        """Test the printable page opens the print dialog"""
        response = client.get("/api/reports/sales/print")

        assert response.status_code == 200
        assert "text/html" in response.headers['content-type']
        assert "window.print" in response.text
        assert "Laporan Penjualan" in response.text

    def test_download(self, client):
        """Test the HTML download is an attachment without auto print"""
        response = client.get("/api/reports/sales/download")

        assert response.status_code == 200
        assert response.headers['content-disposition'].startswith("attachment; filename=Laporan_Penjualan_")
        assert "window.print" not in response.text

    def test_export(self, client):
        """Test CSV export with header and one line per record"""
        response = client.get("/api/reports/sales/export")

        assert response.status_code == 200
        assert "text/csv" in response.headers['content-type']
        assert "filename=laporan-sales-" in response.headers['content-disposition']
        lines = response.text.strip().split("\n")
        assert len(lines) == 3
        assert lines[0].startswith("Tanggal,Produk")
        assert json.loads(response.headers["x-report-messages"]) == [
            {"level": "success", "message": MSG_EXPORT_SUCCESS}
        ]

    def test_export_nothing(self, client):
        """Test exporting an empty report returns 404"""
        response = client.get("/api/reports/expenses/export", params={'month': '03'})

        assert response.status_code == 404
        assert response.json()['detail'] == MSG_NO_EXPORT_DATA


class TestTransactionEndpoints:
    """Test /api/reports/transactions/{source}/{record_id}/{kind}"""

    def test_sale_invoice(self, client):
        """Test a sale invoice"""
        response = client.get(
            "/api/reports/transactions/sales/sale_abcdef12/invoice",
            params={'cashier_id': 'e2', 'date': '2024-01-12'}
        )

        assert response.status_code == 200
        assert "INV-ABCDEF12" in response.text
        assert "Dewi" in response.text

    def test_field_trip_receipt(self, client):
        """Test a field trip receipt"""
        response = client.get(
            "/api/reports/transactions/field-trip-sales/ft_9876zyxw/receipt",
            params={'cashier_id': 'e1'}
        )

        assert response.status_code == 200
        assert "FT-9876ZYXW" in response.text

    def test_cashier_required(self, client):
        """Test a missing cashier returns 400"""
        response = client.get("/api/reports/transactions/sales/sale_abcdef12/invoice")

        assert response.status_code == 400
        assert response.json()['detail'] == MSG_SELECT_CASHIER

    def test_record_not_found(self, client):
        """Test an unknown sale returns 404"""
        response = client.get(
            "/api/reports/transactions/sales/sale_missing/receipt",
            params={'cashier_id': 'e2'}
        )
        assert response.status_code == 404

    def test_invalid_date(self, client):
        """Test an unparseable date returns 422"""
        response = client.get(
            "/api/reports/transactions/sales/sale_abcdef12/invoice",
            params={'cashier_id': 'e2', 'date': 'kemarin'}
        )
        assert response.status_code == 422


class TestPreviewEndpoints:
    """Test /api/preview"""

    def test_stage_and_confirm(self, client, fake_opener):
        """Test staging, zooming and printing the preview"""
        response = client.post("/api/preview/sales")
        assert response.status_code == 200
        assert response.json()['preview']['state'] == "open"
        assert response.json()['preview']['record_count'] == 2

        data = client.post("/api/preview/key", json={'key': '+', 'ctrl': True}).json()
        assert data['handled'] is True
        assert data['preview']['zoom'] == 110

        response = client.post("/api/preview/confirm")
        assert response.status_code == 200
        assert [m['message'] for m in response.json()['messages']] == [MSG_PRINT_SUCCESS]
        assert fake_opener.windows[0].printed
        assert "window.print" in fake_opener.windows[0].html
        assert client.get("/api/preview/").json()['state'] == "closed"

    def test_download(self, client):
        """Test downloading the staged document"""
        client.post("/api/preview/treatments")
        response = client.get("/api/preview/download")

        assert response.status_code == 200
        assert response.headers['content-disposition'].startswith("attachment; filename=Laporan_Tindakan")

    def test_escape_and_close(self, client):
        """Test Escape and DELETE both close the preview"""
        client.post("/api/preview/sales")
        client.post("/api/preview/key", json={'key': 'Escape'})
        assert client.get("/api/preview/").json()['state'] == "closed"

        client.post("/api/preview/sales")
        assert client.delete("/api/preview/").json()['state'] == "closed"

    @pytest.mark.parametrize("method,path", [
        ("post", "/api/preview/confirm"),
        ("get", "/api/preview/download"),
    ])
    def test_nothing_staged(self, client, method, path):
        """Test confirm and download need a staged document"""
        assert getattr(client, method)(path).status_code == 404

    def test_popup_blocked(self, client, blocked_opener):
        """Test a blocked print window returns 409 and keeps the preview open"""
        from clinic_reports.app import app_state
        app_state['window_opener'] = blocked_opener

        client.post("/api/preview/sales")
        response = client.post("/api/preview/confirm")

        assert response.status_code == 409
        assert response.json()['detail'] == MSG_POPUP_BLOCKED
        assert client.get("/api/preview/").json()['state'] == "open"

    def test_stage_transaction_and_confirm(self, client, fake_opener):
        """Test an invoice staged in the preview prints through the window opener"""
        response = client.post(
            "/api/preview/transactions/sales/sale_abcdef12/invoice",
            params={'cashier_id': 'e2', 'date': '2024-01-12'}
        )
        assert response.status_code == 200
        assert response.json()['preview']['state'] == "open"
        assert "INV-ABCDEF12" in response.json()['content']

        response = client.post("/api/preview/confirm")
        assert response.status_code == 200
        assert fake_opener.windows[0].printed
        assert "INV-ABCDEF12" in fake_opener.windows[0].html

    def test_transaction_popup_blocked(self, client, blocked_opener):
        """Test a blocked window while printing a receipt returns 409 instead of failing"""
        from clinic_reports.app import app_state
        app_state['window_opener'] = blocked_opener

        client.post(
            "/api/preview/transactions/field-trip-sales/ft_9876zyxw/receipt",
            params={'cashier_id': 'e1'}
        )
        response = client.post("/api/preview/confirm")

        assert response.status_code == 409
        assert response.json()['detail'] == MSG_POPUP_BLOCKED
        assert blocked_opener.windows == []
        assert client.get("/api/preview/").json()['state'] == "open"

    def test_stage_transaction_needs_cashier(self, client):
        """Test staging an invoice without a cashier returns 400"""
        response = client.post("/api/preview/transactions/sales/sale_abcdef12/invoice")

        assert response.status_code == 400
        assert response.json()['detail'] == MSG_SELECT_CASHIER
        assert client.get("/api/preview/").json()['state'] == "closed"


def header_messages(response):
    """Notification texts carried in the X-Report-Messages header"""
    return [m['message'] for m in json.loads(response.headers.get('x-report-messages', '[]'))]


class TestFetchFailureMessages:
    """Test backend failures reach the caller through the report service"""

    def test_report_lists_failed_source(self, live_client, fake_session):
        """Test a failed sales request is reported with the treatment report"""
        fake_session.overrides['/sales'] = requests.ConnectionError("refused")

        response = live_client.get("/api/reports/treatments")

        assert response.status_code == 200
        assert response.json()['record_count'] == 2
        assert response.json()['messages'] == [
            {'level': 'error', 'message': "Gagal memuat laporan penjualan"}
        ]

    def test_no_failures(self, live_client):
        """Test a clean load returns no messages and no header"""
        assert live_client.get("/api/reports/sales").json()['messages'] == []
        assert 'x-report-messages' not in live_client.get("/api/reports/sales/print").headers

    @pytest.mark.parametrize("path", [
        "/api/reports/sales/print",
        "/api/reports/sales/download",
        "/api/reports/transactions/sales/sale_abcdef12/receipt?cashier_id=e2",
    ])
    def test_html_responses_carry_messages(self, live_client, fake_session, path):
        """Test printable and downloadable pages report failed sources in a header"""
        fake_session.overrides['/expenses'] = make_response({'error': 'database down'}, 500)

        response = live_client.get(path)

        assert response.status_code == 200
        assert header_messages(response) == ["Gagal memuat laporan pengeluaran: database down"]

    def test_export_carries_messages(self, live_client, fake_session):
        """Test the CSV export reports failed sources before its success message"""
        fake_session.overrides['/attendance'] = requests.ConnectionError("refused")

        response = live_client.get("/api/reports/sales/export")

        assert response.status_code == 200
        assert header_messages(response) == ["Gagal memuat laporan absensi", MSG_EXPORT_SUCCESS]

    def test_stage_preview_carries_messages(self, live_client, fake_session):
        """Test staging a preview returns the failures of the dataset load"""
        fake_session.overrides['/treatments'] = requests.ConnectionError("refused")

        data = live_client.post("/api/preview/sales").json()

        assert data['preview']['state'] == "open"
        assert [m['message'] for m in data['messages']] == ["Gagal memuat laporan tindakan"]
