from typing import List, Optional

from PyQt6.QtCore import QSettings, Qt
from PyQt6.QtGui import QAction, QKeySequence, QShortcut
from PyQt6.QtWidgets import QDockWidget, QMainWindow, QStackedWidget, QStyle, QWidget

from core.app_state import AppState, BackHandler, Disposer, Page, bind_back_navigation
from core.config import AppConfig
from core.log import get_logger
from core.market_data import BinanceClient
from .chart_view import ChartView
from .error_dock import ErrorDock
from .pair_list import PairListView

_log = get_logger(__name__)

BACK_KEYS = (
    'Esc',
    'Alt+Left',
    'Back',
)


class ShortcutBackHandlerHost:
    """
    Desktop stand-in for a platform back action: Esc, Alt+Left and the Back key.
    The most recently registered handler runs first; if it declines, older ones are tried.
    """

    def __init__(self, window: QWidget) -> None:
        self._handlers: List[BackHandler] = []
        self._shortcuts = []
        for sequence in BACK_KEYS:
            shortcut = QShortcut(QKeySequence(sequence), window)
            shortcut.setContext(Qt.ShortcutContext.ApplicationShortcut)
            shortcut.activated.connect(self.trigger)
            self._shortcuts.append(shortcut)

    def register(self, handler: BackHandler) -> Disposer:
        self._handlers.append(handler)

        def _dispose() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _dispose

    def trigger(self) -> bool:
        for handler in reversed(list(self._handlers)):
            if handler():
                return True
        return False


class MainWindow(QMainWindow):
    def __init__(
        self,
        config: AppConfig,
        settings: Optional[QSettings] = None,
        client: Optional[BinanceClient] = None,
    ) -> None:
        super().__init__()
        self.setWindowTitle('KLineChart')
        self.resize(1200, 800)
        self.config = config
        self._settings = settings if settings is not None else QSettings('KLineChart', 'KLineChart')
        self.client = client if client is not None else BinanceClient(config.base_url, timeout=config.request_timeout)
        self.state = AppState(
            selected_symbol=config.default_symbol,
            selected_timeframe=config.default_timeframe,
            selected_category=config.default_category,
        )

        self.error_dock = ErrorDock()
        self.error_dock.setWindowIcon(self.style().standardIcon(QStyle.StandardPixmap.SP_MessageBoxCritical))
        self.error_dock.attach_to_logging()
        self.addDockWidget(Qt.DockWidgetArea.BottomDockWidgetArea, self.error_dock)
        self.error_dock.hide()

        self.pair_list = PairListView(self.client, self.state)
        self.pair_list.pair_selected.connect(self.open_pair)
        self.chart_view = ChartView(self.client, config)
        self.chart_view.back_requested.connect(self.go_back)
        self.chart_view.timeframe_selected.connect(self.change_timeframe)

        self.stack = QStackedWidget()
        self.stack.addWidget(self.pair_list)
        self.stack.addWidget(self.chart_view)
        self.setCentralWidget(self.stack)

        self.back_host = ShortcutBackHandlerHost(self)
        self._dispose_back: Optional[Disposer] = bind_back_navigation(self.back_host, self.state, self._sync_page)

        self._setup_menu()
        self._restore_layout()
        self._sync_page()

    def _setup_menu(self) -> None:
        menu_bar = self.menuBar()
        file_menu = menu_bar.addMenu('File')
        view_menu = menu_bar.addMenu('View')
        window_menu = menu_bar.addMenu('Window')

        quit_action = QAction('Quit', self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        self.back_action = QAction('Back to Pairs', self)
        self.back_action.triggered.connect(self.go_back)
        view_menu.addAction(self.back_action)

        self.error_action = QAction(self.error_dock.windowTitle(), self)
        self.error_action.setCheckable(True)
        self.error_action.setChecked(not self.error_dock.isHidden())
        self.error_action.triggered.connect(lambda checked: self._toggle_dock(self.error_dock, checked))
        self.error_dock.visibilityChanged.connect(self.error_action.setChecked)
        window_menu.addAction(self.error_action)

    def _toggle_dock(self, dock: QDockWidget, visible: bool) -> None:
        if visible:
            dock.show()
            dock.raise_()
        else:
            dock.hide()

    def open_pair(self, symbol: str) -> None:
        try:
            self.state.select_pair(symbol)
        except ValueError as exc:
            _log.warning('Ignoring pair selection: %s', exc)
            return
        _log.info('Opening chart for %s', self.state.selected_symbol)
        self._sync_page()

    def change_timeframe(self, timeframe) -> None:
        self.state.change_timeframe(timeframe)
        self._sync_page()

    def go_back(self) -> bool:
        handled = self.state.go_back()
        if handled:
            self._sync_page()
        return handled

    def _sync_page(self) -> None:
        if self.state.page is Page.CHART:
            self.chart_view.load(self.state.selected_symbol, self.state.selected_timeframe)
            self.stack.setCurrentWidget(self.chart_view)
            self.setWindowTitle(f'KLineChart - {self.state.selected_symbol}')
        else:
            self.stack.setCurrentWidget(self.pair_list)
            self.setWindowTitle('KLineChart')
        self.back_action.setEnabled(self.state.page is Page.CHART)

    def closeEvent(self, event) -> None:
        self._save_layout()
        if self._dispose_back is not None:
            self._dispose_back()
            self._dispose_back = None
        self.chart_view.shutdown()
        self.pair_list.shutdown()
        self.error_dock.detach_from_logging()
        self.client.close()
        super().closeEvent(event)

    def _save_layout(self) -> None:
        self._settings.setValue('geometry', self.saveGeometry())
        self._settings.setValue('windowState', self.saveState())

    def _restore_layout(self) -> None:
        geometry = self._settings.value('geometry')
        window_state = self._settings.value('windowState')
        if geometry is not None:
            self.restoreGeometry(geometry)
        if window_state is not None:
            self.restoreState(window_state)
