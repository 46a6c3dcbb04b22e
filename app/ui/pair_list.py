from typing import List, Optional

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QColor, QFont
from PyQt6.QtWidgets import (
    QAbstractItemView,
    QButtonGroup,
    QHBoxLayout,
    QHeaderView,
    QLabel,
    QLineEdit,
    QPushButton,
    QStackedWidget,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from core.app_state import AppState
from core.log import get_logger
from core.market_data import BinanceClient
from core.models import Ticker
from core.ranking import MarketCategory, format_percent, format_price, format_volume, rank_tickers, symbol_for_query
from .theme import theme
from .workers import TickerFetchWorker

_log = get_logger(__name__)

_COLUMNS = ('Pair', 'Last Price', '24h Change', 'Volume')


class PairListView(QWidget):
    pair_selected = pyqtSignal(str)

    def __init__(self, client: BinanceClient, state: AppState, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        self.client = client
        self.state = state
        self._worker: Optional[TickerFetchWorker] = None
        self._alive = True
        self._visible_tickers: List[Ticker] = []

        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 8)
        layout.setSpacing(6)

        header = QHBoxLayout()
        title = QLabel('Markets')
        title_font = QFont()
        title_font.setPointSize(14)
        title_font.setBold(True)
        title.setFont(title_font)
        header.addWidget(title)
        self.loading_label = QLabel('')
        self.loading_label.setStyleSheet(f'color: {theme.TEXT_MUTED};')
        header.addWidget(self.loading_label)
        header.addStretch(1)
        self.refresh_button = QPushButton('Refresh')
        self.refresh_button.clicked.connect(self.load_tickers)
        header.addWidget(self.refresh_button)
        layout.addLayout(header)

        self.search_box = QLineEdit()
        self.search_box.setPlaceholderText('Search pairs, Enter to open (e.g. ETH)')
        self.search_box.setClearButtonEnabled(True)
        self.search_box.textChanged.connect(self._apply_filter)
        self.search_box.returnPressed.connect(self._on_search_submitted)
        layout.addWidget(self.search_box)

        categories = QHBoxLayout()
        self.category_buttons: dict[MarketCategory, QPushButton] = {}
        self.category_group = QButtonGroup(self)
        self.category_group.setExclusive(True)
        for category in MarketCategory:
            button = QPushButton(category.label)
            button.setCheckable(True)
            button.clicked.connect(lambda _checked, val=category: self.select_category(val))
            self.category_buttons[category] = button
            self.category_group.addButton(button)
            categories.addWidget(button)
        categories.addStretch(1)
        self.category_buttons[state.selected_category].setChecked(True)
        layout.addLayout(categories)

        # 0: table, 1: error panel, 2: empty label
        self.body = QStackedWidget()
        self.table = QTableWidget(0, len(_COLUMNS))
        self.table.setHorizontalHeaderLabels(list(_COLUMNS))
        self.table.verticalHeader().setVisible(False)
        self.table.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        self.table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self.table.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self.table.horizontalHeader().setSectionResizeMode(QHeaderView.ResizeMode.Stretch)
        self.table.cellClicked.connect(self._on_row_activated)
        self.body.addWidget(self.table)

        self.error_panel = QWidget()
        error_layout = QVBoxLayout(self.error_panel)
        error_layout.addStretch(1)
        self.error_label = QLabel('')
        self.error_label.setWordWrap(True)
        self.error_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.error_label.setStyleSheet(f'color: {theme.DOWN};')
        error_layout.addWidget(self.error_label)
        self.retry_button = QPushButton('Retry')
        self.retry_button.clicked.connect(self.load_tickers)
        error_layout.addWidget(self.retry_button, 0, Qt.AlignmentFlag.AlignHCenter)
        error_layout.addStretch(1)
        self.body.addWidget(self.error_panel)

        self.empty_label = QLabel('No pairs match')
        self.empty_label.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self.empty_label.setStyleSheet(f'color: {theme.TEXT_MUTED};')
        self.body.addWidget(self.empty_label)
        layout.addWidget(self.body, 1)

        if state.cached_tickers:
            self._apply_filter()

    def showEvent(self, event) -> None:
        super().showEvent(event)
        if not self.state.cached_tickers and not self.is_loading:
            self.load_tickers()

    @property
    def is_loading(self) -> bool:
        return self._worker is not None and self._worker.isRunning()

    @property
    def visible_tickers(self) -> List[Ticker]:
        return list(self._visible_tickers)

    def load_tickers(self) -> None:
        if self.is_loading or not self._alive:
            return
        self.refresh_button.setEnabled(False)
        self.loading_label.setText('Loading...')
        self._worker = TickerFetchWorker(self.client)
        self._worker.data_ready.connect(self._on_tickers_ready)
        self._worker.error.connect(self._on_tickers_error)
        self._worker.finished.connect(self._on_fetch_finished)
        self._worker.start()

    def _on_tickers_ready(self, tickers: list) -> None:
        if not self._alive:
            return
        self.state.update_tickers(tickers)
        _log.info('Loaded %d USDT pairs', len(tickers))
        self._apply_filter()

    def _on_tickers_error(self, message: str) -> None:
        if not self._alive:
            return
        _log.error('Failed to load tickers: %s', message)
        self.error_label.setText(f'Could not load markets.\n{message}')
        self.body.setCurrentWidget(self.error_panel)

    def _on_fetch_finished(self) -> None:
        if not self._alive:
            return
        self.refresh_button.setEnabled(True)
        self.loading_label.setText('')

    def select_category(self, category: MarketCategory) -> None:
        self.category_buttons[category].setChecked(True)
        if self.state.change_category(category):
            self._apply_filter()

    def set_tickers(self, tickers: List[Ticker]) -> None:
        self.state.update_tickers(tickers)
        self._apply_filter()

    def _apply_filter(self, *_args) -> None:
        self._visible_tickers = rank_tickers(
            self.state.cached_tickers,
            self.state.selected_category,
            self.search_box.text(),
        )
        self._populate(self._visible_tickers)

    def _populate(self, tickers: List[Ticker]) -> None:
        self.table.setRowCount(len(tickers))
        up = QColor(theme.UP)
        down = QColor(theme.DOWN)
        for row, ticker in enumerate(tickers):
            pct = ticker.price_change_percent_value
            symbol_item = QTableWidgetItem(ticker.symbol)
            symbol_item.setData(Qt.ItemDataRole.UserRole, ticker.symbol)
            price_item = QTableWidgetItem(format_price(ticker.last_price_value))
            change_item = QTableWidgetItem(format_percent(pct))
            change_item.setForeground(up if pct >= 0 else down)
            volume_item = QTableWidgetItem(format_volume(ticker.quote_volume_value))
            for item in (price_item, change_item, volume_item):
                item.setTextAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
            self.table.setItem(row, 0, symbol_item)
            self.table.setItem(row, 1, price_item)
            self.table.setItem(row, 2, change_item)
            self.table.setItem(row, 3, volume_item)
        if tickers:
            self.body.setCurrentWidget(self.table)
        elif self.state.cached_tickers:
            self.body.setCurrentWidget(self.empty_label)

    def _on_row_activated(self, row: int, _column: int) -> None:
        item = self.table.item(row, 0)
        if item is None:
            return
        self.pair_selected.emit(item.data(Qt.ItemDataRole.UserRole))

    def _on_search_submitted(self) -> None:
        symbol = symbol_for_query(self.search_box.text())
        if symbol is None:
            return
        self.pair_selected.emit(symbol)

    def shutdown(self) -> None:
        self._alive = False
        if self._worker is not None and self._worker.isRunning():
            self._worker.quit()
            self._worker.wait(1500)
