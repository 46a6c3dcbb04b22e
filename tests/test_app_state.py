import os
import sys
import unittest

# Allow `import core.*` like the app does when running `python app/main.py`.
REPO_ROOT = os.path.dirname(os.path.dirname(__file__))
APP_DIR = os.path.join(REPO_ROOT, "app")
if APP_DIR not in sys.path:
    sys.path.insert(0, APP_DIR)

from core.app_state import AppState, NullBackNavigationHost, Page, bind_back_navigation
from core.models import Ticker, Timeframe
from core.ranking import MarketCategory


class _FakeBackHost:
    def __init__(self):
        self.handlers = []

    def register(self, handler):
        self.handlers.append(handler)
        return lambda: self.handlers.remove(handler)

    def press(self):
        return any(handler() for handler in list(self.handlers))


class AppStateTests(unittest.TestCase):
    def test_defaults(self):
        state = AppState()
        self.assertIs(state.page, Page.LISTING)
        self.assertEqual(state.selected_symbol, "BTCUSDT")
        self.assertIs(state.selected_timeframe, Timeframe.ONE_DAY)
        self.assertIs(state.selected_category, MarketCategory.VOLUME)

    def test_select_pair_opens_chart(self):
        state = AppState()
        state.select_pair(" ethusdt ")
        self.assertEqual(state.selected_symbol, "ETHUSDT")
        self.assertIs(state.page, Page.CHART)
        with self.assertRaises(ValueError):
            state.select_pair("  ")

    def test_timeframe_change(self):
        state = AppState()
        self.assertTrue(state.change_timeframe("1h"))
        self.assertIs(state.selected_timeframe, Timeframe.ONE_HOUR)
        self.assertFalse(state.change_timeframe(Timeframe.ONE_HOUR))
        with self.assertRaises(ValueError):
            state.change_timeframe("2h")

    def test_category_change_and_ticker_cache(self):
        state = AppState()
        self.assertTrue(state.change_category(MarketCategory.GAINERS))
        self.assertFalse(state.change_category(MarketCategory.GAINERS))
        tickers = [Ticker(symbol="BTCUSDT")]
        state.update_tickers(tickers)
        tickers.append(Ticker(symbol="ETHUSDT"))
        self.assertEqual(len(state.cached_tickers), 1)

    def test_go_back(self):
        state = AppState()
        self.assertFalse(state.go_back())
        state.select_pair("BTCUSDT")
        self.assertTrue(state.go_back())
        self.assertIs(state.page, Page.LISTING)


class BackNavigationTests(unittest.TestCase):
    def test_back_from_chart_returns_to_listing(self):
        host = _FakeBackHost()
        state = AppState()
        changes = []
        dispose = bind_back_navigation(host, state, lambda: changes.append(state.page))

        self.assertFalse(host.press())
        self.assertEqual(changes, [])

        state.select_pair("SOLUSDT")
        self.assertTrue(host.press())
        self.assertEqual(changes, [Page.LISTING])

        dispose()
        self.assertEqual(host.handlers, [])

    def test_without_host(self):
        dispose = bind_back_navigation(None, AppState(), lambda: None)
        dispose()
        self.assertIsNotNone(NullBackNavigationHost().register(lambda: True))


if __name__ == "__main__":
    unittest.main()
