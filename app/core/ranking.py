from __future__ import annotations

import time
from enum import Enum
from typing import Iterable, List, Optional

from .models import Ticker

DAY_MS = 24 * 60 * 60 * 1000
STALE_AFTER_MS = 2 * DAY_MS
QUOTE_SUFFIX = "USDT"


class MarketCategory(Enum):
    ALL = "All"
    GAINERS = "Gainers"
    LOSERS = "Losers"
    VOLUME = "Volume"

    @property
    def label(self) -> str:
        return self.value


def is_recently_traded(ticker: Ticker, now_ms: int) -> bool:
    # Delisted pairs keep appearing in the 24hr snapshot with a frozen closeTime.
    return ticker.close_time >= now_ms - STALE_AFTER_MS


def rank_tickers(
    tickers: Iterable[Ticker],
    category: MarketCategory,
    search_query: str = "",
    now_ms: Optional[int] = None,
) -> List[Ticker]:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    recent = [t for t in tickers if is_recently_traded(t, now_ms)]

    if category is MarketCategory.ALL:
        ranked = sorted(recent, key=lambda t: t.symbol)
    elif category is MarketCategory.GAINERS:
        ranked = sorted(
            (t for t in recent if t.price_change_percent_value > 0),
            key=lambda t: t.price_change_percent_value,
            reverse=True,
        )
    elif category is MarketCategory.LOSERS:
        ranked = sorted(
            (t for t in recent if t.price_change_percent_value < 0),
            key=lambda t: t.price_change_percent_value,
        )
    elif category is MarketCategory.VOLUME:
        ranked = sorted(recent, key=lambda t: t.quote_volume_value, reverse=True)
    else:
        raise ValueError(f"Unknown market category: {category!r}")

    query = (search_query or "").strip().upper()
    if not query:
        return ranked
    return [t for t in ranked if query in t.symbol.upper()]


def symbol_for_query(query: str) -> Optional[str]:
    """Symbol to open directly when the search box is submitted, e.g. 'eth' -> 'ETHUSDT'."""
    symbol = (query or "").strip().upper()
    if not symbol:
        return None
    if not symbol.endswith(QUOTE_SUFFIX):
        symbol = f"{symbol}{QUOTE_SUFFIX}"
    return symbol


def format_volume(volume: float) -> str:
    # Truncate (not round) to one decimal, matching the exchange app's list cards.
    if volume >= 1_000_000_000:
        return f"{int(volume / 1_000_000_000 * 10) / 10.0}B"
    if volume >= 1_000_000:
        return f"{int(volume / 1_000_000 * 10) / 10.0}M"
    if volume >= 1_000:
        return f"{int(volume / 1_000 * 10) / 10.0}K"
    return f"{int(volume)}"


def format_percent(pct: float) -> str:
    sign = "+" if pct >= 0 else ""
    return f"{sign}{pct:.2f}%"


def format_price(price: float) -> str:
    if price >= 1000:
        return f"{price:,.2f}"
    if price >= 1:
        return f"{price:.4f}"
    return f"{price:.8f}".rstrip("0").rstrip(".") or "0"
