from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Protocol

from .models import Ticker, Timeframe
from .ranking import MarketCategory

BackHandler = Callable[[], bool]
Disposer = Callable[[], None]


class Page(Enum):
    LISTING = "listing"
    CHART = "chart"


class BackNavigationHost(Protocol):
    """Host-provided hook for a platform back action (hardware key, shortcut...)."""

    def register(self, handler: BackHandler) -> Disposer:
        ...


class NullBackNavigationHost:
    """For hosts with no system back action; registering is a no-op."""

    def register(self, handler: BackHandler) -> Disposer:
        return lambda: None


@dataclass
class AppState:
    page: Page = Page.LISTING
    selected_symbol: str = "BTCUSDT"
    selected_timeframe: Timeframe = Timeframe.ONE_DAY
    selected_category: MarketCategory = MarketCategory.VOLUME
    cached_tickers: List[Ticker] = field(default_factory=list)

    def select_pair(self, symbol: str) -> None:
        symbol = symbol.strip().upper()
        if not symbol:
            raise ValueError("Symbol must not be empty")
        self.selected_symbol = symbol
        self.page = Page.CHART

    def change_timeframe(self, timeframe: Timeframe | str) -> bool:
        timeframe = Timeframe.from_token(timeframe)
        if timeframe is self.selected_timeframe:
            return False
        self.selected_timeframe = timeframe
        return True

    def change_category(self, category: MarketCategory) -> bool:
        if category is self.selected_category:
            return False
        self.selected_category = category
        return True

    def update_tickers(self, tickers: List[Ticker]) -> None:
        self.cached_tickers = list(tickers)

    def go_back(self) -> bool:
        if self.page is Page.LISTING:
            return False
        self.page = Page.LISTING
        return True


def bind_back_navigation(host: Optional[BackNavigationHost], state: AppState, on_change: Callable[[], None]) -> Disposer:
    def _handler() -> bool:
        handled = state.go_back()
        if handled:
            on_change()
        return handled

    if host is None:
        host = NullBackNavigationHost()
    return host.register(_handler)
