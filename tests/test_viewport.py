import os
import sys
import unittest

# Allow `import core.*` like the app does when running `python app/main.py`.
REPO_ROOT = os.path.dirname(os.path.dirname(__file__))
APP_DIR = os.path.join(REPO_ROOT, "app")
if APP_DIR not in sys.path:
    sys.path.insert(0, APP_DIR)

from core.models import Candle
from core.viewport import MAX_X_ZOOM, MAX_Y_ZOOM, MIN_X_ZOOM, MIN_Y_ZOOM, ChartViewport


def _candle(i, low=90.0, high=110.0, o=95.0, c=105.0):
    return Candle(
        open_time=i * 60_000,
        open=o,
        high=high,
        low=low,
        close=c,
        volume=1.0,
        close_time=i * 60_000 + 59_999,
        quote_asset_volume=1.0,
        number_of_trades=1,
        taker_buy_base_asset_volume=0.5,
        taker_buy_quote_asset_volume=0.5,
    )


def _series(n):
    return [_candle(i, low=90.0 + i, high=110.0 + i, o=95.0 + i, c=105.0 + i) for i in range(n)]


class MappingTests(unittest.TestCase):
    def setUp(self):
        self.vp = ChartViewport(1000, 500)

    def test_index_round_trip(self):
        self.vp.x_offset = -100.0
        xs = [self.vp.index_to_x(i) for i in range(10)]
        self.assertEqual(xs, sorted(xs))
        for i in range(10):
            self.assertEqual(self.vp.x_to_index(self.vp.index_to_x(i) + 1), i)

    def test_price_axis_orientation(self):
        self.assertAlmostEqual(self.vp.price_to_y(200.0, 100.0, 200.0), 0.0)
        self.assertAlmostEqual(self.vp.price_to_y(100.0, 100.0, 200.0), 500.0)
        self.assertLess(self.vp.price_to_y(180.0, 100.0, 200.0), self.vp.price_to_y(120.0, 100.0, 200.0))
        y = self.vp.price_to_y(137.5, 100.0, 200.0)
        self.assertAlmostEqual(self.vp.y_to_price(y, 100.0, 200.0), 137.5)

    def test_visible_range(self):
        self.assertEqual(self.vp.visible_index_range(100), (0, 41))
        self.vp.x_offset = -500.0
        self.assertEqual(self.vp.visible_index_range(100), (20, 61))
        self.assertEqual(self.vp.visible_index_range(0), (0, 0))

    def test_price_labels_descend(self):
        labels = self.vp.price_axis_labels(100.0, 200.0, 12)
        self.assertEqual(len(labels), 12)
        self.assertAlmostEqual(labels[0][0], 0.0)
        self.assertAlmostEqual(labels[0][1], 200.0)
        self.assertAlmostEqual(labels[-1][1], 100.0)
        prices = [p for _, p in labels]
        self.assertEqual(prices, sorted(prices, reverse=True))

    def test_time_labels_within_visible_range(self):
        indices = self.vp.time_axis_indices(100, 6)
        self.assertLessEqual(len(indices), 6)
        self.assertEqual(indices[0], 0)
        self.assertEqual(indices[-1], 40)
        self.assertEqual(indices, sorted(indices))


class ZoomTests(unittest.TestCase):
    def setUp(self):
        self.vp = ChartViewport(1000, 500)

    def test_x_zoom_clamped(self):
        self.vp.zoom_x(100.0, 500.0)
        self.assertEqual(self.vp.x_zoom, MAX_X_ZOOM)
        self.assertFalse(self.vp.zoom_x(2.0, 500.0))
        self.vp.zoom_x(1e-6, 500.0)
        self.assertEqual(self.vp.x_zoom, MIN_X_ZOOM)
        for _ in range(100):
            self.vp.scroll_zoom(-1)
        self.assertEqual(self.vp.x_zoom, MIN_X_ZOOM)

    def test_y_zoom_clamped(self):
        self.vp.zoom_y(-10_000)
        self.assertEqual(self.vp.y_zoom, MAX_Y_ZOOM)
        self.vp.zoom_y(10_000)
        self.assertEqual(self.vp.y_zoom, MIN_Y_ZOOM)

    def test_x_zoom_keeps_focal_point(self):
        self.vp.x_offset = -300.0
        focal = 400.0
        before = (focal - self.vp.x_offset) / self.vp.step
        self.assertTrue(self.vp.zoom_x(1.5, focal))
        after = (focal - self.vp.x_offset) / self.vp.step
        self.assertAlmostEqual(before, after)
        self.assertAlmostEqual(self.vp.x_zoom, 1.5)

    def test_scroll_zoom_step(self):
        self.vp.scroll_zoom(1)
        self.assertAlmostEqual(self.vp.x_zoom, 1.1)
        self.vp.scroll_zoom(-1)
        self.assertAlmostEqual(self.vp.x_zoom, 1.0)
        self.assertFalse(self.vp.scroll_zoom(0))

    def test_y_zoom_keeps_focal_price(self):
        before = self.vp.y_to_price(100.0, 0.0, 100.0)
        self.assertTrue(self.vp.zoom_y(-40.0, focal_y=100.0))
        self.assertAlmostEqual(self.vp.y_zoom, 1.2)
        self.assertAlmostEqual(self.vp.y_to_price(100.0, 0.0, 100.0), before)


class PositionTests(unittest.TestCase):
    def setUp(self):
        self.vp = ChartViewport(1000, 500)

    def test_auto_center_once(self):
        candles = _series(10)
        self.assertTrue(self.vp.auto_center(candles))
        self.assertAlmostEqual(self.vp.x_offset, 1000 - 250 - 50)
        right_edge = self.vp.index_to_x(9) + self.vp.candle_width
        self.assertLessEqual(right_edge, 950.0)
        lo, hi = self.vp.price_range(candles)
        self.assertAlmostEqual(self.vp.price_to_y(candles[-1].mid_price, lo, hi), 250.0)
        self.assertFalse(self.vp.is_initial_position)
        self.assertFalse(self.vp.auto_center(candles))

    def test_auto_center_waits_for_canvas(self):
        vp = ChartViewport()
        self.assertFalse(vp.auto_center(_series(5)))
        self.assertTrue(vp.is_initial_position)
        vp.set_canvas_size(800, 400)
        self.assertTrue(vp.auto_center(_series(5)))

    def test_pan_clamped(self):
        self.vp.pan(10_000, 0, 100)
        self.assertAlmostEqual(self.vp.x_offset, 500.0)
        self.vp.pan(-1e6, 0, 100)
        self.assertAlmostEqual(self.vp.x_offset, -2000.0)
        self.vp.pan(0, 1e6, 100)
        self.assertAlmostEqual(self.vp.y_offset, 250.0)
        self.vp.pan(0, -1e6, 100)
        self.assertAlmostEqual(self.vp.y_offset, -250.0)

    def test_short_series_keeps_centered_position_reachable(self):
        candles = _series(10)
        self.vp.auto_center(candles)
        centered = self.vp.x_offset
        self.vp.pan(0, 0, len(candles))
        self.assertAlmostEqual(self.vp.x_offset, centered)

    def test_history_threshold(self):
        self.vp.x_offset = -100.0
        self.assertTrue(self.vp.near_history_start())
        self.vp.x_offset = -300.0
        self.assertFalse(self.vp.near_history_start())

    def test_shift_for_prepended(self):
        self.vp.x_offset = -50.0
        self.vp.shift_for_prepended(4)
        self.assertAlmostEqual(self.vp.x_offset, 50.0)

    def test_reset(self):
        self.vp.zoom_x(2.0, 0.0)
        self.vp.lock_price_range(1.0, 2.0)
        self.vp.reset()
        self.assertEqual((self.vp.x_zoom, self.vp.y_zoom), (1.0, 1.0))
        self.assertTrue(self.vp.is_initial_position)
        self.assertFalse(self.vp.use_stable_viewport)


class PriceRangeTests(unittest.TestCase):
    def test_lock_overrides_candles(self):
        vp = ChartViewport(1000, 500)
        candles = _series(5)
        self.assertEqual(vp.price_range(candles), (90.0, 114.0))
        vp.lock_price_range(10.0, 20.0)
        self.assertEqual(vp.price_range(candles), (10.0, 20.0))
        vp.unlock_price_range()
        self.assertEqual(vp.price_range(candles), (90.0, 114.0))

    def test_flat_range_widened(self):
        vp = ChartViewport(1000, 500)
        lo, hi = vp.price_range([_candle(0, low=100.0, high=100.0, o=100.0, c=100.0)])
        self.assertLess(lo, 100.0)
        self.assertGreater(hi, 100.0)

    def test_empty_range_default(self):
        self.assertEqual(ChartViewport(1000, 500).price_range([]), (0.0, 100.0))


if __name__ == "__main__":
    unittest.main()
