from typing import List, Optional

from PyQt6.QtCore import QSize, pyqtSignal
from PyQt6.QtWidgets import QButtonGroup, QHBoxLayout, QLabel, QPushButton, QStyle, QVBoxLayout, QWidget

from core.config import AppConfig
from core.log import get_logger
from core.market_data import BinanceClient
from core.models import Candle, Timeframe
from core.pagination import HistoryPaginator, HistoryRequest
from .charts.candlestick_chart import CandlestickChart
from .workers import CandleFetchWorker

_log = get_logger(__name__)


class ChartView(QWidget):
    back_requested = pyqtSignal()
    timeframe_selected = pyqtSignal(object)

    def __init__(self, client: BinanceClient, config: AppConfig, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.client = client
        self.config = config
        self.symbol = config.default_symbol
        self.timeframe = config.default_timeframe
        self._load_seq = 0
        self._loading = False
        self._alive = True
        self._workers: set = set()

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        self.toolbar = QWidget()
        self.toolbar.setObjectName('TopToolbar')
        toolbar_layout = QHBoxLayout(self.toolbar)
        toolbar_layout.setContentsMargins(6, 6, 6, 4)
        toolbar_layout.setSpacing(6)

        self.back_button = QPushButton('←')
        self.back_button.setToolTip('Back to pairs')
        self.back_button.setFixedSize(28, 28)
        self.back_button.clicked.connect(self.back_requested.emit)
        toolbar_layout.addWidget(self.back_button)

        self.symbol_label = QLabel(self.symbol)
        self.symbol_label.setObjectName('SymbolLabel')
        toolbar_layout.addWidget(self.symbol_label)

        self.status_label = QLabel('')
        toolbar_layout.addWidget(self.status_label)
        toolbar_layout.addStretch(1)

        self.timeframe_buttons: dict[Timeframe, QPushButton] = {}
        self.timeframe_group = QButtonGroup(self)
        self.timeframe_group.setExclusive(True)
        for tf in Timeframe:
            button = QPushButton(tf.display_name)
            button.setCheckable(True)
            button.setMinimumHeight(22)
            button.clicked.connect(lambda _checked, val=tf: self.timeframe_selected.emit(val))
            self.timeframe_buttons[tf] = button
            self.timeframe_group.addButton(button)
            toolbar_layout.addWidget(button)
        self.timeframe_buttons[self.timeframe].setChecked(True)

        self.reset_zoom_button = QPushButton('⌂')
        self.reset_zoom_button.setToolTip('Reset zoom')
        self.reset_zoom_button.setFixedSize(28, 28)
        self.reset_zoom_button.clicked.connect(self.reset_zoom)
        toolbar_layout.addWidget(self.reset_zoom_button)

        self.refresh_button = QPushButton('')
        self.refresh_button.setToolTip('Refresh')
        self.refresh_button.setIcon(self.style().standardIcon(QStyle.StandardPixmap.SP_BrowserReload))
        self.refresh_button.setIconSize(QSize(14, 14))
        self.refresh_button.setFixedSize(28, 28)
        self.refresh_button.clicked.connect(self.refresh)
        toolbar_layout.addWidget(self.refresh_button)

        layout.addWidget(self.toolbar)

        self.chart = CandlestickChart()
        self.chart.panned.connect(self._on_panned)
        layout.addWidget(self.chart, 1)

        self.paginator = HistoryPaginator(
            self.chart.viewport,
            self._launch_history,
            page_size=config.history_page_size,
        )

    @property
    def candles(self) -> List[Candle]:
        return self.chart.candles

    def load(self, symbol: str, timeframe: Timeframe) -> None:
        changed = symbol != self.symbol or timeframe is not self.timeframe
        self.symbol = symbol
        self.timeframe = timeframe
        self.symbol_label.setText(symbol)
        self.timeframe_buttons[timeframe].setChecked(True)
        if changed or not self.candles:
            self.chart.set_candles([])
            self._reload()

    def refresh(self) -> None:
        self._reload()

    def reset_zoom(self) -> None:
        self.chart.viewport.reset()
        self.chart.refresh()

    def _reload(self) -> None:
        if not self._alive:
            return
        # Any history page still in flight belongs to the data being replaced.
        self.paginator.invalidate()
        self._load_seq += 1
        self._set_loading(True, f'Loading {self.symbol} {self.timeframe.display_name}...')
        worker = CandleFetchWorker(
            self.client,
            self.symbol,
            self.timeframe.api_value,
            self.config.initial_candle_limit,
            tag=self._load_seq,
        )
        worker.data_ready.connect(self._on_candles_ready)
        worker.error.connect(self._on_load_error)
        self._start_worker(worker)

    def _start_worker(self, worker: CandleFetchWorker) -> None:
        self._workers.add(worker)
        worker.finished.connect(lambda w=worker: self._workers.discard(w))
        worker.start()

    def _on_candles_ready(self, seq: int, candles: list) -> None:
        if not self._alive or seq != self._load_seq:
            return
        self._set_loading(False, '')
        if not candles:
            self.status_label.setText(f'No data for {self.symbol}')
        # A page requested while this load was in flight was anchored to the old series.
        self.paginator.invalidate()
        self.chart.viewport.reset()
        self.chart.set_candles(candles)
        _log.info('Loaded %d candles for %s %s', len(candles), self.symbol, self.timeframe.api_value)

    def _on_load_error(self, seq: int, message: str) -> None:
        if not self._alive or seq != self._load_seq:
            return
        self._set_loading(False, '')
        # Existing candles stay on screen; the failure goes to the log and the error dock.
        _log.error('Failed to load %s %s: %s', self.symbol, self.timeframe.api_value, message)
        if not self.candles:
            self.status_label.setText(f'Error: {message}')
            self.status_label.setStyleSheet('color: #EF5350;')

    def _set_loading(self, is_loading: bool, message: str) -> None:
        self._loading = is_loading
        self.refresh_button.setEnabled(not is_loading)
        self.status_label.setStyleSheet('color: #B2B5BE;')
        self.status_label.setText(message)

    # -- history ----------------------------------------------------------

    def _on_panned(self, dx: float) -> None:
        if self._alive and not self._loading:
            self.paginator.maybe_request(self.candles, dx)

    def _launch_history(self, request: HistoryRequest) -> None:
        worker = CandleFetchWorker(
            self.client,
            self.symbol,
            self.timeframe.api_value,
            request.limit,
            end_time=request.end_time,
            tag=request,
        )
        worker.data_ready.connect(self._on_history_ready)
        worker.error.connect(self._on_history_error)
        self._start_worker(worker)

    def _on_history_ready(self, request: HistoryRequest, batch: list) -> None:
        if not self._alive:
            return
        merged = self.paginator.complete(request, batch, self.candles)
        if len(merged) != len(self.candles):
            self.chart.set_candles(merged)
        else:
            self.chart.refresh()

    def _on_history_error(self, request: HistoryRequest, message: str) -> None:
        if not self._alive:
            return
        self.paginator.fail(request, message)
        self.chart.refresh()

    def shutdown(self) -> None:
        self._alive = False
        for worker in list(self._workers):
            if worker.isRunning():
                worker.quit()
                worker.wait(1500)
            # A request still blocked in the network call keeps its reference until it finishes.
            if not worker.isRunning():
                self._workers.discard(worker)
