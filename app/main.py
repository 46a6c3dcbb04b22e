import os
import faulthandler
import sys
import threading
import traceback
from PyQt6.QtCore import QSettings
from PyQt6.QtWidgets import QApplication

from core.config import load_config
from core.log import get_logger, setup_logging
from ui.main_window import MainWindow
from ui.theme import app_stylesheet

_FAULT_LOG_HANDLE = None


def _install_exception_logging(log_dir: str) -> None:
    log_path = os.path.join(log_dir, "exception.log")
    log = get_logger("klinechart")

    def _hook(exc_type, exc_value, exc_tb):
        log.critical("Unhandled exception", exc_info=(exc_type, exc_value, exc_tb))
        try:
            with open(log_path, "a", encoding="utf-8") as handle:
                handle.write("\n=== Unhandled Exception ===\n")
                traceback.print_exception(exc_type, exc_value, exc_tb, file=handle)
        except OSError:
            pass

    def _thread_hook(args):
        _hook(args.exc_type, args.exc_value, args.exc_traceback)

    sys.excepthook = _hook
    threading.excepthook = _thread_hook


def _enable_faulthandler(log_dir: str) -> None:
    global _FAULT_LOG_HANDLE
    try:
        # Keep the handle alive for the process lifetime; faulthandler may write later.
        _FAULT_LOG_HANDLE = open(os.path.join(log_dir, "faulthandler.log"), "w", encoding="utf-8")
        _FAULT_LOG_HANDLE.write(f"pid={os.getpid()}\n")
        _FAULT_LOG_HANDLE.flush()
        faulthandler.enable(_FAULT_LOG_HANDLE, all_threads=True)
    except OSError:
        faulthandler.enable(all_threads=True)


def main():
    app = QApplication(sys.argv)
    app.setApplicationName("KLineChart")
    settings = QSettings("KLineChart", "KLineChart")
    config = load_config(settings)
    setup_logging(config.log_level, config.log_dir or None)
    log_dir = config.log_dir or os.path.dirname(os.path.abspath(__file__))
    os.makedirs(log_dir, exist_ok=True)
    _enable_faulthandler(log_dir)
    _install_exception_logging(log_dir)
    get_logger("klinechart").info("Starting KLineChart against %s", config.base_url)

    app.setStyleSheet(app_stylesheet())
    window = MainWindow(config, settings=settings)
    window.show()
    return app.exec()


if __name__ == '__main__':
    sys.exit(main())
