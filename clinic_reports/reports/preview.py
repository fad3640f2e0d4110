"""
Print Preview

State machine for the print preview dialog. A preview is staged with the
rendered document and a confirm callback, can be zoomed and driven from the
keyboard, and is either confirmed (printed) or closed.

States:
    closed -> show_preview -> open
    open   -> close_preview -> closed
    open   -> confirm_print -> open (callback or caller closes it)

Copyright: © 2025 Falasifah Dental Clinic
"""

import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional, Tuple

from ..config import get_config
from .constants import MSG_PRINT_SUCCESS, MSG_PRINT_FAILED
from .documents import document_filename
from .notifier import Notifier

logger = logging.getLogger(__name__)

STATE_CLOSED = 'closed'
STATE_OPEN = 'open'


@dataclass
class PreviewData:
    """Document staged for preview"""
    title: str
    content: str
    record_count: int
    on_confirm_print: Callable[[], None]


class PrintPreview:
    """Preview state with zoom level and keyboard shortcuts"""

    def __init__(self, notifier: Optional[Notifier] = None, zoom_min: Optional[int] = None,
                 zoom_max: Optional[int] = None, zoom_step: Optional[int] = None,
                 zoom_default: Optional[int] = None):
        printing = get_config().printing
        self.notifier = notifier if notifier is not None else Notifier()
        self.zoom_min = zoom_min if zoom_min is not None else printing.zoom_min
        self.zoom_max = zoom_max if zoom_max is not None else printing.zoom_max
        self.zoom_step = zoom_step if zoom_step is not None else printing.zoom_step
        self.zoom_default = zoom_default if zoom_default is not None else printing.zoom_default
        self.zoom = self.zoom_default
        self.data: Optional[PreviewData] = None
        self._lock = threading.RLock()

    @property
    def state(self) -> str:
        return STATE_OPEN if self.data is not None else STATE_CLOSED

    @property
    def is_open(self) -> bool:
        return self.data is not None

    def show_preview(self, data: PreviewData):
        """Stage a document; replaces any document already staged"""
        with self._lock:
            self.data = data
            self.zoom = self.zoom_default
        logger.debug(f"Preview opened: {data.title} ({data.record_count} records)")

    def close_preview(self):
        with self._lock:
            self.data = None
            self.zoom = self.zoom_default

    def confirm_print(self) -> bool:
        """
        Invoke the staged print callback.

        Returns:
            True when the callback ran without error; False when it failed or
            nothing was staged. Failures are logged and notified, never raised.
        """
        with self._lock:
            data = self.data
        if data is None:
            return False
        try:
            data.on_confirm_print()
        except Exception as e:
            logger.error(f"Print failed for {data.title}: {e}")
            self.notifier.error(MSG_PRINT_FAILED)
            return False
        self.notifier.success(MSG_PRINT_SUCCESS)
        return True

    # ========================================================================
    # ZOOM
    # ========================================================================

    def _set_zoom(self, value: int) -> int:
        with self._lock:
            self.zoom = max(self.zoom_min, min(self.zoom_max, value))
            return self.zoom

    def zoom_in(self) -> int:
        return self._set_zoom(self.zoom + self.zoom_step)

    def zoom_out(self) -> int:
        return self._set_zoom(self.zoom - self.zoom_step)

    def reset_zoom(self) -> int:
        return self._set_zoom(self.zoom_default)

    def handle_key(self, key: str, ctrl: bool = False, meta: bool = False) -> bool:
        """
        Apply a keyboard shortcut while the preview is open.

        Escape closes; Ctrl/Cmd with + or = zooms in, - zooms out, 0 resets the
        zoom and Enter confirms.

        Returns:
            True if the key was handled
        """
        if not self.is_open:
            return False
        if key == 'Escape':
            self.close_preview()
            return True
        if not (ctrl or meta):
            return False
        if key in ('+', '='):
            self.zoom_in()
        elif key == '-':
            self.zoom_out()
        elif key == '0':
            self.reset_zoom()
        elif key == 'Enter':
            self.confirm_print()
        else:
            return False
        return True

    def download(self, today: Optional[date] = None) -> Optional[Tuple[str, str]]:
        """(filename, html) of the staged document, or None when closed"""
        with self._lock:
            data = self.data
        if data is None:
            return None
        return document_filename(data.title, today), data.content

    def snapshot(self) -> dict:
        with self._lock:
            data = self.data
            return {
                'state': self.state,
                'title': data.title if data else None,
                'record_count': data.record_count if data else 0,
                'zoom': self.zoom,
            }
