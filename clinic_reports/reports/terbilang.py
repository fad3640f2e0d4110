"""
Terbilang

Spells rupiah amounts out in Indonesian words for printed invoices and
receipts, together with the currency and date formatting helpers used by the
document templates.

Copyright: © 2025 Falasifah Dental Clinic
"""

from datetime import date, datetime
from typing import Union

from .constants import MONTH_NAMES

_ONES = ['', 'satu', 'dua', 'tiga', 'empat', 'lima', 'enam', 'tujuh', 'delapan', 'sembilan']
_TEENS = [
    'sepuluh', 'sebelas', 'dua belas', 'tiga belas', 'empat belas',
    'lima belas', 'enam belas', 'tujuh belas', 'delapan belas', 'sembilan belas'
]

THOUSAND = 1_000
MILLION = 1_000_000
BILLION = 1_000_000_000


def _below_hundred(n: int) -> str:
    if n < 10:
        return _ONES[n]
    if n < 20:
        return _TEENS[n - 10]
    tens, ones = divmod(n, 10)
    words = f"{_ONES[tens]} puluh"
    return f"{words} {_ONES[ones]}" if ones else words


def _below_thousand(n: int) -> str:
    hundreds, rest = divmod(n, 100)
    parts = []
    if hundreds == 1:
        parts.append('seratus')
    elif hundreds > 1:
        parts.append(f"{_ONES[hundreds]} ratus")
    if rest:
        parts.append(_below_hundred(rest))
    return ' '.join(parts)


def _join(head: str, rest: int) -> str:
    return f"{head} {_spell(rest)}" if rest else head


def _spell(n: int) -> str:
    if n < THOUSAND:
        return _below_thousand(n)
    if n < MILLION:
        thousands, rest = divmod(n, THOUSAND)
        head = 'seribu' if thousands == 1 else f"{_below_thousand(thousands)} ribu"
        return _join(head, rest)
    if n < BILLION:
        millions, rest = divmod(n, MILLION)
        return _join(f"{_below_thousand(millions)} juta", rest)
    # Trillions and above keep stacking on "miliar"
    billions, rest = divmod(n, BILLION)
    return _join(f"{_spell(billions)} miliar", rest)


def number_to_words(amount: int) -> str:
    """
    Convert an integer amount to Indonesian words.

    Args:
        amount: Whole rupiah amount

    Returns:
        Words such as "satu juta dua ratus lima puluh ribu"

    Raises:
        ValueError: If amount is not an integer
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"Amount must be an integer, got {amount!r}")
    if amount == 0:
        return 'nol'
    if amount < 0:
        return f"minus {_spell(-amount)}"
    return _spell(amount)


def terbilang_rupiah(amount: int) -> str:
    """Amount in words followed by the currency, as printed on receipts"""
    return f"{number_to_words(amount)} rupiah"


def format_currency(amount: int) -> str:
    """Format as rupiah with Indonesian thousands separators, e.g. "Rp 1.250.000" """
    sign = '-' if amount < 0 else ''
    return f"{sign}Rp {abs(int(amount)):,}".replace(',', '.')


def month_name_id(month: Union[str, int]) -> str:
    """Indonesian month name for "01".."12"; unknown values are returned as given"""
    try:
        return MONTH_NAMES[int(month) - 1] if 1 <= int(month) <= 12 else str(month)
    except ValueError:
        return str(month)


def parse_iso_date(value: str) -> date:
    """Parse the date part of an ISO date or timestamp string"""
    return datetime.strptime(value[:10], '%Y-%m-%d').date()


def format_date_id(value: Union[str, date]) -> str:
    """Long Indonesian date such as "5 Januari 2024" """
    if isinstance(value, date):
        parsed = value
    else:
        try:
            parsed = parse_iso_date(value)
        except (TypeError, ValueError):
            return value or ''
    return f"{parsed.day} {MONTH_NAMES[parsed.month - 1]} {parsed.year}"
