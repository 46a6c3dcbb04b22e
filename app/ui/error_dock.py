import logging
import time

from PyQt6.QtCore import pyqtSignal
from PyQt6.QtWidgets import QDockWidget, QTextEdit

from core.log import make_formatter


class _DockLogHandler(logging.Handler):
    def __init__(self, dock: 'ErrorDock', level: int) -> None:
        super().__init__(level)
        self._dock = dock
        self.setFormatter(make_formatter())

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
        except Exception:
            self.handleError(record)
            return
        # Records arrive from fetch workers too; the signal queues them onto the GUI thread.
        self._dock.message_logged.emit(message)


class ErrorDock(QDockWidget):
    message_logged = pyqtSignal(str)

    def __init__(self) -> None:
        super().__init__('Errors')
        self.setObjectName('ErrorDock')
        self._last_message: str = ""
        self._last_message_at: float = 0.0
        self._handler: logging.Handler | None = None

        self.text = QTextEdit()
        self.text.setReadOnly(True)
        self.text.setPlaceholderText('Network and decode errors will appear here.')
        self.setWidget(self.text)
        self.message_logged.connect(self.append_error)

    def attach_to_logging(self, level: int = logging.WARNING) -> None:
        if self._handler is not None:
            return
        self._handler = _DockLogHandler(self, level)
        logging.getLogger().addHandler(self._handler)

    def detach_from_logging(self) -> None:
        if self._handler is None:
            return
        logging.getLogger().removeHandler(self._handler)
        self._handler = None

    def append_error(self, message: str) -> None:
        # Avoid spamming identical errors (e.g. repeated failed page loads while the user keeps panning).
        now = time.monotonic()
        if message == self._last_message and (now - self._last_message_at) < 2.0:
            return
        self._last_message = message
        self._last_message_at = now
        self.text.append(message)
