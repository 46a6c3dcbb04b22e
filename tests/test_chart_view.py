import os
import sys
import unittest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Allow `import core.*` like the app does when running `python app/main.py`.
REPO_ROOT = os.path.dirname(os.path.dirname(__file__))
APP_DIR = os.path.join(REPO_ROOT, "app")
if APP_DIR not in sys.path:
    sys.path.insert(0, APP_DIR)

from core.config import AppConfig
from core.models import Candle

MINUTE = 60_000


def _candles(first, last):
    return [
        Candle(i * MINUTE, 100.0, 105.0, 95.0, 101.0, 1.0, i * MINUTE + MINUTE - 1, 1.0, 1, 0.5, 0.5)
        for i in range(first, last + 1)
    ]


def _minutes(candles):
    return [c.open_time // MINUTE for c in candles]


class _StuckWorker:
    def __init__(self):
        self.quit_called = False

    def isRunning(self):
        return True

    def quit(self):
        self.quit_called = True

    def wait(self, ms):
        return False


class _FinishedWorker:
    def isRunning(self):
        return False


class ChartViewTests(unittest.TestCase):
    def setUp(self) -> None:
        from PyQt6.QtWidgets import QApplication

        from ui.chart_view import ChartView

        self.app = QApplication.instance() or QApplication([])
        self.view = ChartView(None, AppConfig())
        # Workers are recorded instead of started; results are delivered through the slots.
        self.started = []
        self.view._start_worker = self.started.append
        self.view.chart.viewport.set_canvas_size(1000, 500)
        self.view.chart.set_candles(_candles(10, 19))
        self.view.chart.viewport.x_offset = -100.0

    def test_no_history_request_while_refresh_pending(self):
        self.view.refresh()
        self.assertEqual(len(self.started), 1)
        self.view._on_panned(5.0)
        self.assertEqual(len(self.started), 1)
        self.assertFalse(self.view.paginator.pending)

    def test_page_anchored_to_old_series_dropped_after_refresh(self):
        self.view.refresh()
        load_worker = self.started[0]
        request = self.view.paginator.request(self.view.candles)
        self.assertIsNotNone(request)
        self.assertEqual(request.end_time, 10 * MINUTE - 1)

        self.view._on_candles_ready(load_worker.tag, _candles(12, 21))
        self.view._on_history_ready(request, _candles(5, 9))

        self.assertEqual(_minutes(self.view.candles), list(range(12, 22)))
        self.assertFalse(self.view.paginator.pending)

    def test_history_follows_refreshed_series(self):
        self.view.refresh()
        self.view._on_candles_ready(self.started[0].tag, _candles(12, 21))
        self.view._on_panned(5.0)
        self.assertEqual(len(self.started), 2)
        page_worker = self.started[1]
        self.assertEqual(page_worker.end_time, 12 * MINUTE - 1)

        self.view._on_history_ready(page_worker.tag, _candles(7, 11))
        self.assertEqual(_minutes(self.view.candles), list(range(7, 22)))

    def test_stale_refresh_result_ignored(self):
        self.view.refresh()
        self.view.refresh()
        self.view._on_candles_ready(self.started[0].tag, _candles(30, 31))
        self.assertEqual(_minutes(self.view.candles), list(range(10, 20)))
        self.view._on_candles_ready(self.started[1].tag, _candles(40, 41))
        self.assertEqual(_minutes(self.view.candles), [40, 41])

    def test_shutdown_keeps_running_workers(self):
        stuck = _StuckWorker()
        done = _FinishedWorker()
        self.view._workers = {stuck, done}
        self.view.shutdown()
        self.assertTrue(stuck.quit_called)
        self.assertIn(stuck, self.view._workers)
        self.assertNotIn(done, self.view._workers)


if __name__ == "__main__":
    unittest.main()
