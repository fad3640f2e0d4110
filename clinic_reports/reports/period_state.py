"""
Report Period State

Remembers the last reporting period a user looked at so that filters can be
reset to the current month once a month boundary has been crossed. The check
runs once at process start and may also be invoked explicitly.

Copyright: © 2025 Falasifah Dental Clinic
"""

import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Dict, Optional, Tuple

from .filters import get_default_filters
from .models import ReportFilters


class PeriodStateStore:
    """Persists the last seen period as a small JSON document"""

    def __init__(self, path):
        self.path = Path(path)
        self.logger = logging.getLogger(self.__class__.__name__)

    def load(self) -> Optional[Dict[str, str]]:
        """Return {'month': 'MM', 'year': 'YYYY'} or None when nothing was stored"""
        if not self.path.exists():
            return None
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            self.logger.warning(f"Could not read period state {self.path}: {e}")
            return None
        if not isinstance(data, dict) or 'month' not in data or 'year' not in data:
            return None
        return {'month': str(data['month']), 'year': str(data['year'])}

    def save(self, month: str, year: str):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump({
                'month': month,
                'year': year,
                'updated_at': datetime.now().isoformat()
            }, f, indent=2)


def check_period_rollover(
    store: PeriodStateStore,
    filters: ReportFilters,
    today: Optional[date] = None
) -> Tuple[ReportFilters, bool]:
    """
    Reset filters to the current month when the stored period is stale.

    Reads the last seen period, compares it with today's, resets the filters
    on a change, then persists today's period.

    Returns:
        Tuple of (filters, rolled_over)
    """
    today = today or date.today()
    current = {'month': f"{today.month:02d}", 'year': str(today.year)}
    last_seen = store.load()

    rolled_over = last_seen is not None and last_seen != current
    if rolled_over:
        store.logger.info(
            f"Period changed from {last_seen['month']}/{last_seen['year']} "
            f"to {current['month']}/{current['year']}, resetting filters"
        )
        filters = get_default_filters(today)

    store.save(current['month'], current['year'])
    return filters, rolled_over
