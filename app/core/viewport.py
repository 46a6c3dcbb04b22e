from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .models import Candle

BASE_CANDLE_WIDTH = 20.0
BASE_CANDLE_SPACING = 5.0
MIN_X_ZOOM = 0.03
MAX_X_ZOOM = 5.0
MIN_Y_ZOOM = 0.1
MAX_Y_ZOOM = 5.0
SCROLL_ZOOM_STEP = 0.1
Y_ZOOM_PER_PIXEL = 0.005
RIGHT_MARGIN_RATIO = 0.05
HISTORY_THRESHOLD_RATIO = 0.2
# Pan may push the first/last candle (or the price band edge) at most to the canvas center.
PAN_LIMIT_RATIO = 0.5
DEFAULT_PRICE_RANGE = (0.0, 100.0)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def price_extent(candles: Sequence[Candle]) -> Optional[Tuple[float, float]]:
    if not candles:
        return None
    count = len(candles)
    lows = np.fromiter((c.price_low for c in candles), dtype=float, count=count)
    highs = np.fromiter((c.price_high for c in candles), dtype=float, count=count)
    return float(np.min(lows)), float(np.max(highs))


def _widen_flat(min_price: float, max_price: float) -> Tuple[float, float]:
    if max_price > min_price:
        return min_price, max_price
    pad = abs(max_price) * 0.01 or 1.0
    return min_price - pad, max_price + pad


class ChartViewport:
    """
    Pixel mapping for the candlestick canvas.

    X: candle index -> pixel, `index * step + x_offset` where step is the zoomed
    candle width plus spacing. Y: price -> pixel inside a band of
    `canvas_height * y_zoom` pixels shifted by `y_offset`; screen Y grows downward,
    so higher prices map to smaller Y.
    """

    def __init__(self, canvas_width: float = 0.0, canvas_height: float = 0.0) -> None:
        self.canvas_width = float(canvas_width)
        self.canvas_height = float(canvas_height)
        self.reset()

    def reset(self) -> None:
        self.x_zoom = 1.0
        self.y_zoom = 1.0
        self.x_offset = 0.0
        self.y_offset = 0.0
        self.is_initial_position = True
        self.stable_min_price = 0.0
        self.stable_max_price = 0.0
        self.use_stable_viewport = False

    def set_canvas_size(self, width: float, height: float) -> None:
        self.canvas_width = max(0.0, float(width))
        self.canvas_height = max(0.0, float(height))

    @property
    def has_canvas(self) -> bool:
        return self.canvas_width > 0 and self.canvas_height > 0

    @property
    def candle_width(self) -> float:
        return BASE_CANDLE_WIDTH * self.x_zoom

    @property
    def candle_spacing(self) -> float:
        return BASE_CANDLE_SPACING * self.x_zoom

    @property
    def step(self) -> float:
        return self.candle_width + self.candle_spacing

    def total_width(self, count: int) -> float:
        return count * self.step

    # -- price axis -------------------------------------------------------

    def price_range(self, candles: Sequence[Candle]) -> Tuple[float, float]:
        if self.use_stable_viewport:
            return _widen_flat(self.stable_min_price, self.stable_max_price)
        extent = price_extent(candles)
        if extent is None:
            return DEFAULT_PRICE_RANGE
        return _widen_flat(*extent)

    def lock_price_range(self, min_price: float, max_price: float) -> None:
        self.stable_min_price = float(min_price)
        self.stable_max_price = float(max_price)
        self.use_stable_viewport = True

    def unlock_price_range(self) -> None:
        self.use_stable_viewport = False

    def price_to_y(self, price: float, min_price: float, max_price: float) -> float:
        span = max_price - min_price
        if span <= 0:
            span = 1.0
        scaled_height = self.canvas_height * self.y_zoom
        return scaled_height - (price - min_price) / span * scaled_height + self.y_offset

    def y_to_price(self, y: float, min_price: float, max_price: float) -> float:
        scaled_height = self.canvas_height * self.y_zoom
        if scaled_height <= 0:
            return min_price
        ratio = 1.0 - (y - self.y_offset) / scaled_height
        return min_price + ratio * (max_price - min_price)

    # -- time axis --------------------------------------------------------

    def index_to_x(self, index: float) -> float:
        return index * self.step + self.x_offset

    def x_to_index(self, x: float) -> int:
        return int(math.floor((x - self.x_offset) / self.step))

    def visible_index_range(self, count: int) -> Tuple[int, int]:
        """Half-open [start, end) range of candle indices that intersect the canvas."""
        if count <= 0 or self.canvas_width <= 0:
            return 0, 0
        start = math.ceil((-self.x_offset - self.candle_width) / self.step)
        end = math.floor((self.canvas_width - self.x_offset) / self.step) + 1
        start = max(0, start)
        end = min(count, end)
        return start, max(start, end)

    # -- gestures ---------------------------------------------------------

    def _apply_x_zoom(self, new_zoom: float, focal_x: float) -> bool:
        old_zoom = self.x_zoom
        new_zoom = _clamp(new_zoom, MIN_X_ZOOM, MAX_X_ZOOM)
        if new_zoom == old_zoom:
            return False
        ratio = new_zoom / old_zoom
        self.x_offset = focal_x - (focal_x - self.x_offset) * ratio
        self.x_zoom = new_zoom
        self.is_initial_position = False
        return True

    def zoom_x(self, factor: float, focal_x: float) -> bool:
        if factor <= 0 or factor == 1.0:
            return False
        return self._apply_x_zoom(self.x_zoom * factor, focal_x)

    def scroll_zoom(self, direction: float, focal_x: Optional[float] = None) -> bool:
        """Wheel zoom by a fixed step: positive direction zooms in, negative zooms out."""
        if direction == 0:
            return False
        if focal_x is None:
            focal_x = self.canvas_width / 2.0
        delta = SCROLL_ZOOM_STEP if direction > 0 else -SCROLL_ZOOM_STEP
        return self._apply_x_zoom(self.x_zoom + delta, focal_x)

    def zoom_y(self, drag_dy: float, focal_y: Optional[float] = None) -> bool:
        """Price-axis drag: dragging up (negative dy) zooms in, linearly in pixels."""
        if drag_dy == 0:
            return False
        old_zoom = self.y_zoom
        new_zoom = _clamp(old_zoom - drag_dy * Y_ZOOM_PER_PIXEL, MIN_Y_ZOOM, MAX_Y_ZOOM)
        if new_zoom == old_zoom:
            return False
        if focal_y is None:
            focal_y = self.canvas_height / 2.0
        ratio = new_zoom / old_zoom
        self.y_offset = focal_y - (focal_y - self.y_offset) * ratio
        self.y_zoom = new_zoom
        self.is_initial_position = False
        return True

    def pan_bounds(self, count: int) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        w = self.canvas_width
        h = self.canvas_height
        total = self.total_width(count)
        # The auto-centred position must always be reachable, even for short series.
        right_anchor = w - total - w * RIGHT_MARGIN_RATIO
        x_bounds = (w * PAN_LIMIT_RATIO - total, max(w * PAN_LIMIT_RATIO, right_anchor))
        scaled_height = h * self.y_zoom
        y_bounds = (h * PAN_LIMIT_RATIO - scaled_height, h * PAN_LIMIT_RATIO)
        return x_bounds, y_bounds

    def pan(self, dx: float, dy: float, count: int) -> None:
        self.x_offset += dx
        self.y_offset += dy
        self.is_initial_position = False
        if count <= 0 or not self.has_canvas:
            return
        (x_lo, x_hi), (y_lo, y_hi) = self.pan_bounds(count)
        self.x_offset = _clamp(self.x_offset, x_lo, x_hi)
        self.y_offset = _clamp(self.y_offset, y_lo, y_hi)

    def auto_center(self, candles: Sequence[Candle]) -> bool:
        if not self.is_initial_position or not self.has_canvas or not candles:
            return False
        min_price, max_price = self.price_range(candles)
        w = self.canvas_width
        self.x_offset = w - self.total_width(len(candles)) - w * RIGHT_MARGIN_RATIO
        self.y_offset = 0.0
        target_y = self.price_to_y(candles[-1].mid_price, min_price, max_price)
        self.y_offset = self.canvas_height / 2.0 - target_y
        self.is_initial_position = False
        return True

    def shift_for_prepended(self, count: int) -> None:
        self.x_offset += count * self.step

    def near_history_start(self, threshold_ratio: float = HISTORY_THRESHOLD_RATIO) -> bool:
        if self.canvas_width <= 0:
            return False
        return self.x_offset > -self.canvas_width * threshold_ratio

    # -- axis labels ------------------------------------------------------

    def price_axis_labels(self, min_price: float, max_price: float, steps: int = 12) -> List[Tuple[float, float]]:
        if self.canvas_height <= 0 or steps < 2:
            return []
        ys = np.linspace(0.0, self.canvas_height, steps)
        return [(float(y), self.y_to_price(float(y), min_price, max_price)) for y in ys]

    def time_axis_indices(self, count: int, steps: int = 6) -> List[int]:
        if count <= 0:
            return []
        start, end = self.visible_index_range(count)
        if end <= start:
            return []
        raw = np.linspace(start, end - 1, steps).round().astype(int)
        return sorted({int(i) for i in raw})
