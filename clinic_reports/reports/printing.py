"""
Report Printing

Print side effect for rendered documents. A window opener hands out a print
window (or None when no window can be opened, the equivalent of a blocked
popup); print_html reports the result explicitly instead of failing silently.

Copyright: © 2025 Falasifah Dental Clinic
"""

import logging
import uuid
import webbrowser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from ..config import get_config
from .constants import MSG_PRINT_FAILED
from .errors import PopupBlockedError, ReportError
from .notifier import Notifier

logger = logging.getLogger(__name__)


class PrintWindow(Protocol):
    """A window that receives a document and shows the print dialog"""

    def write(self, html: str) -> None: ...

    def print(self) -> None: ...


class WindowOpener(Protocol):
    def open(self) -> Optional[PrintWindow]: ...


@dataclass
class PrintOutcome:
    """Result of a print attempt: ok with the window used, or the error"""
    ok: bool
    window: Optional[PrintWindow] = None
    error: Optional[ReportError] = None

    @property
    def blocked(self) -> bool:
        return isinstance(self.error, PopupBlockedError)


class BrowserPrintWindow:
    """Writes the document to disk and opens it in the system browser"""

    def __init__(self, path: Path, controller):
        self.path = path
        self.controller = controller

    def write(self, html: str):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(html, encoding='utf-8')

    def print(self):
        # The document carries its own auto-print script
        if not self.controller.open(self.path.resolve().as_uri(), new=2):
            raise PopupBlockedError()


class BrowserWindowOpener:
    """Opens print windows in the local browser, or None when there is none"""

    def __init__(self, output_dir: Optional[Path] = None, browser: Optional[str] = None):
        self.output_dir = Path(output_dir) if output_dir else get_config().directories.output_dir
        self.browser = browser

    def open(self) -> Optional[BrowserPrintWindow]:
        try:
            controller = webbrowser.get(self.browser)
        except webbrowser.Error as e:
            logger.warning(f"No browser available for printing: {e}")
            return None
        path = self.output_dir / f"print_{uuid.uuid4().hex}.html"
        return BrowserPrintWindow(path, controller)


def print_html(html: str, opener: WindowOpener) -> PrintOutcome:
    """
    Write a document into a new print window and invoke print.

    A window that cannot be opened yields an outcome carrying
    PopupBlockedError; nothing is raised and print is never called.
    """
    window = opener.open()
    if window is None:
        logger.warning("Print window could not be opened (popup blocked)")
        return PrintOutcome(ok=False, error=PopupBlockedError())
    try:
        window.write(html)
        window.print()
    except PopupBlockedError as e:
        logger.warning(f"Print window was blocked: {e}")
        return PrintOutcome(ok=False, window=window, error=e)
    except OSError as e:
        logger.warning(f"Printing failed: {e}")
        return PrintOutcome(ok=False, window=window, error=ReportError(str(e)))
    return PrintOutcome(ok=True, window=window)


def print_and_notify(html: str, opener: WindowOpener, notifier: Notifier) -> PrintOutcome:
    """print_html that surfaces failures as visible notifications"""
    outcome = print_html(html, opener)
    if outcome.blocked:
        notifier.error(outcome.error.message)
    elif not outcome.ok:
        notifier.error(MSG_PRINT_FAILED)
    return outcome
