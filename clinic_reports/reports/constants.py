"""
Report Constants

Option lists and display labels shared by the report filters, printed
documents and the options endpoint. All labels are Indonesian as shown on the
clinic dashboard.

Copyright: © 2025 Falasifah Dental Clinic
"""

from typing import Dict, List

MONTH_NAMES = [
    'Januari', 'Februari', 'Maret', 'April', 'Mei', 'Juni',
    'Juli', 'Agustus', 'September', 'Oktober', 'November', 'Desember'
]

# Short names used for period labels in the financial report
MONTH_SHORT_NAMES = [
    'Jan', 'Feb', 'Mar', 'Apr', 'Mei', 'Jun',
    'Jul', 'Agt', 'Sep', 'Okt', 'Nov', 'Des'
]

MONTH_OPTIONS: List[Dict[str, str]] = [{'value': 'all', 'label': 'Semua Bulan'}] + [
    {'value': f"{i:02d}", 'label': name} for i, name in enumerate(MONTH_NAMES, start=1)
]

YEAR_FIRST = 2020
YEAR_LAST = 2040

YEAR_OPTIONS: List[Dict[str, str]] = [{'value': 'all', 'label': 'Semua Tahun'}] + [
    {'value': str(year), 'label': str(year)} for year in range(YEAR_LAST, YEAR_FIRST - 1, -1)
]

MORNING_SHIFT = '09:00-15:00'
EVENING_SHIFT = '18:00-20:00'

SHIFT_OPTIONS: List[Dict[str, str]] = [
    {'value': 'all', 'label': 'Semua Shift'},
    {'value': MORNING_SHIFT, 'label': 'Pagi (09:00-15:00)'},
    {'value': EVENING_SHIFT, 'label': 'Sore (18:00-20:00)'},
]

# (latest on-time check-in, earliest on-time check-out) per shift
SHIFT_TIME_WINDOWS: Dict[str, tuple] = {
    MORNING_SHIFT: ('09:15', '15:00'),
    EVENING_SHIFT: ('18:15', '20:00'),
}

ATTENDANCE_TYPES: List[Dict[str, str]] = [
    {'value': 'all', 'label': 'Semua Jenis'},
    {'value': 'check-in', 'label': 'Check In'},
    {'value': 'check-out', 'label': 'Check Out'},
]

STATUS_ON_TIME = 'Tepat Waktu'
STATUS_LATE = 'Terlambat'

CATEGORY_LABELS: Dict[str, str] = {
    'dental-care': 'Perawatan Gigi',
    'medication': 'Obat-obatan',
    'equipment': 'Alat Kesehatan',
    'cosmetics': 'Kosmetik Gigi',
    'other': 'Lainnya',
}

PAYMENT_STATUS_LABELS: Dict[str, str] = {
    'draft': 'Draft',
    'confirmed': 'Dikonfirmasi',
    'paid': 'Lunas',
    'completed': 'Selesai',
    'cancelled': 'Dibatalkan',
    'dp': 'DP',
    'tempo': 'Tempo',
}

DEFAULT_PAYMENT_STATUS = 'Belum Lunas'
DEFAULT_TREATMENT_NAME = 'Tindakan'
GENERAL_SALE_NAME = 'Penjualan Umum'
DEFAULT_SITTING_FEE = 100000

# Supported report type tags
REPORT_TYPES = [
    'attendance',
    'salary',
    'doctor-fees',
    'treatments',
    'sales',
    'field-trip-sales',
    'expenses',
    'financial',
    'field-trip-doctor-fees',
    'field-trip-employee-bonuses',
]

REPORT_TITLES: Dict[str, str] = {
    'attendance': 'Laporan Absensi Dokter',
    'salary': 'Laporan Gaji Karyawan',
    'doctor-fees': 'Laporan Fee Dokter',
    'treatments': 'Laporan Tindakan Medis',
    'sales': 'Laporan Penjualan',
    'field-trip-sales': 'Laporan Penjualan Field Trip',
    'expenses': 'Laporan Pengeluaran',
    'financial': 'Laporan Keuangan Bulanan',
    'field-trip-doctor-fees': 'Laporan Fee Dokter Field Trip',
    'field-trip-employee-bonuses': 'Laporan Bonus Karyawan Field Trip',
}

# Notification texts
MSG_PRINT_SUCCESS = 'Laporan berhasil dicetak!'
MSG_PRINT_FAILED = 'Gagal mencetak laporan'
MSG_POPUP_BLOCKED = 'Popup diblokir. Izinkan popup untuk mencetak dokumen'
MSG_SELECT_CASHIER = 'Pilih kasir terlebih dahulu'
MSG_NO_EXPORT_DATA = 'Tidak ada data untuk diexport'
MSG_EXPORT_SUCCESS = 'Data berhasil diexport'
MSG_DOWNLOAD_SUCCESS = 'Laporan berhasil diunduh sebagai file HTML!'

FETCH_ERROR_MESSAGES: Dict[str, str] = {
    '/doctors': 'Gagal memuat data dokter',
    '/employees': 'Gagal memuat data karyawan',
    '/employees/active': 'Gagal memuat data karyawan',
    '/attendance': 'Gagal memuat laporan absensi',
    '/salary': 'Gagal memuat laporan gaji',
    '/doctor-fees': 'Gagal memuat laporan fee dokter',
    '/sitting-fees': 'Gagal memuat data uang duduk',
    '/doctor-sitting-fee-settings': 'Gagal memuat pengaturan uang duduk',
    '/expenses': 'Gagal memuat laporan pengeluaran',
    '/treatments': 'Gagal memuat laporan tindakan',
    '/sales': 'Gagal memuat laporan penjualan',
    '/field-trip-sales': 'Gagal memuat data penjualan field trip',
}
DEFAULT_FETCH_ERROR = 'Gagal memuat data laporan'
