from datetime import datetime
from typing import List, Optional, Sequence

import pyqtgraph as pg
from PyQt6.QtCore import Qt, QEvent, QPointF, QRectF, QTimer, pyqtSignal
from PyQt6.QtGui import QColor, QFont, QPainter, QPen
from PyQt6.QtWidgets import QGestureEvent, QHBoxLayout, QPinchGesture, QVBoxLayout, QWidget

from core.crosshair import CrosshairState
from core.models import Candle
from core.viewport import ChartViewport
from ..theme import theme

LONG_PRESS_MS = 500
DRAG_START_PX = 4.0
PRICE_BAR_WIDTH = 60
TIME_BAR_HEIGHT = 40
PRICE_STEPS = 12
TIME_STEPS = 6


def format_datetime(ts_ms: int) -> str:
    return datetime.fromtimestamp(ts_ms / 1000.0).strftime('%m/%d/%Y %H:%M')


def format_date(ts_ms: int) -> str:
    return datetime.fromtimestamp(ts_ms / 1000.0).strftime('%m/%d')


def format_axis_price(price: float) -> str:
    if abs(price) >= 100:
        return f'${int(price)}'
    if abs(price) >= 1:
        return f'${price:.2f}'
    return f'${price:.6f}'


def format_label_price(price: float) -> str:
    # Two decimals, truncated toward zero like the axis labels of the exchange UI.
    return f'{int(price * 100) / 100.0}'


def _dashed_pen(color: str) -> QPen:
    pen = pg.mkPen(QColor(color), width=1)
    pen.setStyle(Qt.PenStyle.DashLine)
    pen.setDashPattern([5, 5])
    return pen


class CandlestickCanvas(QWidget):
    panned = pyqtSignal(float)
    view_changed = pyqtSignal()

    def __init__(self, viewport: ChartViewport, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.viewport = viewport
        self.crosshair = CrosshairState()
        self.candles: List[Candle] = []
        self.setMouseTracking(True)
        self.setMinimumSize(200, 150)
        self.grabGesture(Qt.GestureType.PinchGesture)

        self._up_color = QColor(theme.UP)
        self._down_color = QColor(theme.DOWN)
        self._pen_up = pg.mkPen(self._up_color, width=2)
        self._pen_down = pg.mkPen(self._down_color, width=2)
        self._brush_up = pg.mkBrush(self._up_color)
        self._brush_down = pg.mkBrush(self._down_color)
        self._crosshair_pen = _dashed_pen(theme.CROSSHAIR)
        self._ltp_pen = _dashed_pen(theme.LTP)

        self._press_pos: Optional[QPointF] = None
        self._last_pos: Optional[QPointF] = None
        self._moved = False
        self._long_press_fired = False
        self._long_press_timer = QTimer(self)
        self._long_press_timer.setSingleShot(True)
        self._long_press_timer.timeout.connect(self._on_long_press)

    def set_candles(self, candles: Sequence[Candle]) -> None:
        self.candles = list(candles)
        self.update()
        self.view_changed.emit()

    def price_range(self) -> tuple[float, float]:
        return self.viewport.price_range(self.candles)

    def _sync_size(self) -> None:
        self.viewport.set_canvas_size(self.width(), self.height())
        self.crosshair.set_bounds(self.width(), self.height())

    def resizeEvent(self, event) -> None:
        self._sync_size()
        super().resizeEvent(event)
        self.view_changed.emit()

    # -- painting ---------------------------------------------------------

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        try:
            painter.fillRect(self.rect(), QColor(theme.CHART_BACKGROUND))
            if not self.candles:
                painter.setPen(QColor(theme.TEXT_MUTED))
                painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, 'Loading chart data...')
                return
            self._sync_size()
            if self.viewport.auto_center(self.candles):
                self.view_changed.emit()
            min_price, max_price = self.price_range()
            painter.setRenderHint(QPainter.RenderHint.Antialiasing, False)
            self._draw_candles(painter, min_price, max_price)
            self._draw_ltp_line(painter, min_price, max_price)
            self._draw_crosshair(painter)
        finally:
            painter.end()

    def _draw_candles(self, painter: QPainter, min_price: float, max_price: float) -> None:
        vp = self.viewport
        width = vp.candle_width
        start, end = vp.visible_index_range(len(self.candles))
        for idx in range(start, end):
            candle = self.candles[idx]
            x = vp.index_to_x(idx)
            open_y = vp.price_to_y(candle.open, min_price, max_price)
            close_y = vp.price_to_y(candle.close, min_price, max_price)
            high_y = vp.price_to_y(candle.high, min_price, max_price)
            low_y = vp.price_to_y(candle.low, min_price, max_price)
            bullish = candle.is_bullish
            pen = self._pen_up if bullish else self._pen_down
            brush = self._brush_up if bullish else self._brush_down
            center_x = x + width / 2.0
            painter.setPen(pen)
            painter.drawLine(QPointF(center_x, high_y), QPointF(center_x, low_y))
            body_top = min(open_y, close_y)
            body_height = max(1.0, abs(close_y - open_y))
            body = QRectF(x, body_top, width, body_height)
            painter.fillRect(body, brush)
            if bullish:
                painter.setBrush(Qt.BrushStyle.NoBrush)
                painter.drawRect(body)

    def _draw_ltp_line(self, painter: QPainter, min_price: float, max_price: float) -> None:
        y = self.viewport.price_to_y(self.candles[-1].close, min_price, max_price)
        painter.setPen(self._ltp_pen)
        painter.drawLine(QPointF(0, y), QPointF(self.width(), y))

    def _draw_crosshair(self, painter: QPainter) -> None:
        pos = self.crosshair.position
        if pos is None:
            return
        x, y = pos
        painter.setPen(self._crosshair_pen)
        painter.drawLine(QPointF(0, y), QPointF(self.width(), y))
        painter.drawLine(QPointF(x, 0), QPointF(x, self.height()))

        idx = self.viewport.x_to_index(x)
        if 0 <= idx < len(self.candles):
            text = format_datetime(self.candles[idx].open_time)
            font = QFont()
            font.setPointSize(8)
            painter.setFont(font)
            rect = QRectF(x - 55, self.height() - 20, 110, 18)
            painter.fillRect(rect, QColor(theme.LABEL_BG))
            painter.setPen(QColor(theme.TEXT))
            painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, text)

    # -- input ------------------------------------------------------------

    def mousePressEvent(self, event) -> None:
        if event.button() != Qt.MouseButton.LeftButton:
            super().mousePressEvent(event)
            return
        self._press_pos = event.position()
        self._last_pos = event.position()
        self._moved = False
        self._long_press_fired = False
        self._long_press_timer.start(LONG_PRESS_MS)
        event.accept()

    def mouseMoveEvent(self, event) -> None:
        pos = event.position()
        if event.buttons() & Qt.MouseButton.LeftButton and self._last_pos is not None:
            dx = pos.x() - self._last_pos.x()
            dy = pos.y() - self._last_pos.y()
            self._last_pos = pos
            if not self._moved and self._press_pos is not None:
                travel = abs(pos.x() - self._press_pos.x()) + abs(pos.y() - self._press_pos.y())
                if travel < DRAG_START_PX:
                    return
                self._moved = True
                self._long_press_timer.stop()
            if self.crosshair.touch_active:
                self.crosshair.drag(dx, dy)
            else:
                self.viewport.pan(dx, dy, len(self.candles))
                self.panned.emit(dx)
                self.view_changed.emit()
            self.update()
            event.accept()
            return
        self.crosshair.hover(pos.x(), pos.y())
        self.update()
        self.view_changed.emit()

    def mouseReleaseEvent(self, event) -> None:
        if event.button() != Qt.MouseButton.LeftButton:
            super().mouseReleaseEvent(event)
            return
        self._long_press_timer.stop()
        if not self._moved and not self._long_press_fired:
            if self.crosshair.tap():
                self.update()
                self.view_changed.emit()
        self._press_pos = None
        self._last_pos = None
        event.accept()

    def _on_long_press(self) -> None:
        if self._moved or self._press_pos is None:
            return
        self._long_press_fired = True
        self.crosshair.long_press(self._press_pos.x(), self._press_pos.y())
        self.update()
        self.view_changed.emit()

    def leaveEvent(self, event) -> None:
        self.crosshair.leave()
        self.update()
        self.view_changed.emit()
        super().leaveEvent(event)

    def wheelEvent(self, event) -> None:
        delta = event.angleDelta().y()
        if delta == 0:
            delta = event.pixelDelta().y()
        if delta == 0:
            event.ignore()
            return
        if self.viewport.scroll_zoom(1 if delta > 0 else -1):
            self.update()
            self.view_changed.emit()
        event.accept()

    def event(self, event) -> bool:
        if event.type() == QEvent.Type.Gesture and isinstance(event, QGestureEvent):
            pinch = event.gesture(Qt.GestureType.PinchGesture)
            if isinstance(pinch, QPinchGesture):
                if pinch.changeFlags() & QPinchGesture.ChangeFlag.ScaleFactorChanged:
                    centroid = self.mapFromGlobal(pinch.centerPoint())
                    self._zoom_about(pinch.scaleFactor(), centroid.x())
                event.accept(pinch)
                return True
        if event.type() == QEvent.Type.NativeGesture:
            if event.gestureType() == Qt.NativeGestureType.ZoomNativeGesture:
                self._zoom_about(1.0 + event.value(), event.position().x())
                event.accept()
                return True
        return super().event(event)

    def _zoom_about(self, factor: float, focal_x: float) -> None:
        if self.viewport.zoom_x(factor, focal_x):
            self.update()
            self.view_changed.emit()


class PriceAxisBar(QWidget):
    def __init__(self, canvas: CandlestickCanvas, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.canvas = canvas
        self.setFixedWidth(PRICE_BAR_WIDTH)
        self.setCursor(Qt.CursorShape.SizeVerCursor)
        self._drag_anchor_y: Optional[float] = None
        self._last_y: Optional[float] = None

    def mousePressEvent(self, event) -> None:
        if event.button() != Qt.MouseButton.LeftButton:
            event.ignore()
            return
        self._drag_anchor_y = event.position().y()
        self._last_y = event.position().y()
        event.accept()

    def mouseMoveEvent(self, event) -> None:
        if self._last_y is None or not (event.buttons() & Qt.MouseButton.LeftButton):
            return
        y = event.position().y()
        dy = y - self._last_y
        self._last_y = y
        if self.canvas.viewport.zoom_y(dy, focal_y=self._drag_anchor_y):
            self.canvas.update()
            self.update()
        event.accept()

    def mouseReleaseEvent(self, event) -> None:
        self._drag_anchor_y = None
        self._last_y = None
        event.accept()

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        try:
            painter.fillRect(self.rect(), QColor(theme.PANEL))
            candles = self.canvas.candles
            if not candles or not self.canvas.viewport.has_canvas:
                return
            vp = self.canvas.viewport
            min_price, max_price = self.canvas.price_range()
            font = QFont()
            font.setPointSize(7)
            painter.setFont(font)
            painter.setPen(QColor(theme.TEXT_MUTED))
            for y, price in vp.price_axis_labels(min_price, max_price, PRICE_STEPS):
                text_y = min(max(y, 6.0), vp.canvas_height - 6.0)
                painter.drawText(QRectF(4, text_y - 8, self.width() - 6, 16), Qt.AlignmentFlag.AlignVCenter, format_axis_price(price))

            ltp = candles[-1].close
            self._draw_tag(painter, vp.price_to_y(ltp, min_price, max_price), ltp, QColor(theme.LTP), QColor('#000000'))

            pos = self.canvas.crosshair.position
            if pos is not None:
                price = vp.y_to_price(pos[1], min_price, max_price)
                self._draw_tag(painter, pos[1], price, QColor(theme.LABEL_BG), QColor(theme.TEXT))
        finally:
            painter.end()

    def _draw_tag(self, painter: QPainter, y: float, price: float, bg: QColor, fg: QColor) -> None:
        if y < 0 or y > self.canvas.height():
            return
        rect = QRectF(2, y - 8, self.width() - 4, 16)
        painter.fillRect(rect, bg)
        painter.setPen(fg)
        painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, format_label_price(price))


class TimeBar(QWidget):
    def __init__(self, canvas: CandlestickCanvas, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.canvas = canvas
        self.setFixedHeight(TIME_BAR_HEIGHT)

    def paintEvent(self, event) -> None:
        painter = QPainter(self)
        try:
            painter.fillRect(self.rect(), QColor(theme.PANEL))
            candles = self.canvas.candles
            if not candles:
                return
            vp = self.canvas.viewport
            font = QFont()
            font.setPointSize(8)
            painter.setFont(font)
            painter.setPen(QColor(theme.TEXT_MUTED))
            for idx in vp.time_axis_indices(len(candles), TIME_STEPS):
                center_x = vp.index_to_x(idx) + vp.candle_width / 2.0
                rect = QRectF(center_x - 30, 0, 60, self.height())
                painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, format_date(candles[idx].open_time))
        finally:
            painter.end()


class CandlestickChart(QWidget):
    """Canvas plus its price axis (right) and time bar (bottom)."""

    panned = pyqtSignal(float)

    def __init__(self, viewport: Optional[ChartViewport] = None, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.viewport = viewport if viewport is not None else ChartViewport()
        self.canvas = CandlestickCanvas(self.viewport)
        self.price_bar = PriceAxisBar(self.canvas)
        self.time_bar = TimeBar(self.canvas)

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)
        column = QVBoxLayout()
        column.setContentsMargins(0, 0, 0, 0)
        column.setSpacing(0)
        column.addWidget(self.canvas, 1)
        column.addWidget(self.time_bar)
        layout.addLayout(column, 1)
        layout.addWidget(self.price_bar)

        self.canvas.panned.connect(self.panned.emit)
        self.canvas.view_changed.connect(self._refresh_axes)

    @property
    def candles(self) -> List[Candle]:
        return self.canvas.candles

    def set_candles(self, candles: Sequence[Candle]) -> None:
        self.canvas.set_candles(candles)

    def refresh(self) -> None:
        self.canvas.update()
        self._refresh_axes()

    def _refresh_axes(self) -> None:
        self.price_bar.update()
        self.time_bar.update()
