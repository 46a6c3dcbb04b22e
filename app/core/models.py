from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .errors import DecodeError, ParseError


def strip_quotes(value: Any) -> str:
    return str(value).strip().replace('"', "")


def parse_float(field: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ParseError(field, value)
    if isinstance(value, (int, float)):
        result = float(value)
    else:
        try:
            result = float(strip_quotes(value))
        except (TypeError, ValueError):
            raise ParseError(field, value) from None
    # "NaN" and "Infinity" parse as floats but break ordering and price extents.
    if not math.isfinite(result):
        raise ParseError(field, value)
    return result


def parse_int(field: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ParseError(field, value)
    if isinstance(value, int):
        return value
    raw = strip_quotes(value)
    try:
        return int(raw)
    except (TypeError, ValueError):
        pass
    # Some proxies re-encode integers as floats ("1.7e12"); accept whole values only.
    try:
        as_float = float(raw)
    except (TypeError, ValueError):
        raise ParseError(field, value) from None
    if not as_float.is_integer():
        raise ParseError(field, value)
    return int(as_float)


def parse_decimal(value: Any, default: float = 0.0) -> float:
    """Lenient parse for display and ranking fields. Never raises."""
    try:
        return parse_float("decimal", value)
    except ParseError:
        return default


class Timeframe(Enum):
    ONE_MINUTE = ("1m", "1m", 60_000)
    FIVE_MINUTES = ("5m", "5m", 5 * 60_000)
    FIFTEEN_MINUTES = ("15m", "15m", 15 * 60_000)
    ONE_HOUR = ("1h", "1h", 3_600_000)
    FOUR_HOURS = ("4h", "4h", 4 * 3_600_000)
    ONE_DAY = ("1d", "1d", 86_400_000)

    def __init__(self, display_name: str, api_value: str, duration_ms: int) -> None:
        self.display_name = display_name
        self.api_value = api_value
        self.duration_ms = duration_ms

    @classmethod
    def from_token(cls, token: "Timeframe | str") -> "Timeframe":
        if isinstance(token, Timeframe):
            return token
        wanted = str(token).strip()
        for tf in cls:
            if tf.api_value == wanted:
                return tf
        supported = ", ".join(tf.api_value for tf in cls)
        raise ValueError(f"Unsupported interval {token!r}; expected one of: {supported}")


KLINE_ROW_LENGTH = 12


@dataclass(frozen=True)
class Candle:
    open_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    close_time: int
    quote_asset_volume: float
    number_of_trades: int
    taker_buy_base_asset_volume: float
    taker_buy_quote_asset_volume: float
    ignore: str = "0"

    @property
    def mid_price(self) -> float:
        return (self.high + self.low) / 2.0

    @property
    def is_bullish(self) -> bool:
        return self.close > self.open

    @property
    def price_low(self) -> float:
        return min(self.low, self.open, self.close, self.high)

    @property
    def price_high(self) -> float:
        return max(self.high, self.open, self.close, self.low)

    @classmethod
    def from_row(cls, row: Any) -> "Candle":
        """
        Decode one kline row. Binance sends a positional array:
        [openTime, open, high, low, close, volume, closeTime, quoteAssetVolume,
         numberOfTrades, takerBuyBaseAssetVolume, takerBuyQuoteAssetVolume, ignore]
        with the decimal fields encoded as strings.
        """
        if not isinstance(row, (list, tuple)):
            raise DecodeError(f"Kline row is not an array: {row!r}")
        if len(row) < KLINE_ROW_LENGTH:
            raise DecodeError(f"Kline row has {len(row)} fields, expected {KLINE_ROW_LENGTH}")
        return cls(
            open_time=parse_int("openTime", row[0]),
            open=parse_float("open", row[1]),
            high=parse_float("high", row[2]),
            low=parse_float("low", row[3]),
            close=parse_float("close", row[4]),
            volume=parse_float("volume", row[5]),
            close_time=parse_int("closeTime", row[6]),
            quote_asset_volume=parse_float("quoteAssetVolume", row[7]),
            number_of_trades=parse_int("numberOfTrades", row[8]),
            taker_buy_base_asset_volume=parse_float("takerBuyBaseAssetVolume", row[9]),
            taker_buy_quote_asset_volume=parse_float("takerBuyQuoteAssetVolume", row[10]),
            ignore=strip_quotes(row[11]),
        )


# JSON key -> dataclass field for the 24hr ticker object.
_TICKER_KEYS = {
    "symbol": "symbol",
    "priceChange": "price_change",
    "priceChangePercent": "price_change_percent",
    "weightedAvgPrice": "weighted_avg_price",
    "prevClosePrice": "prev_close_price",
    "lastPrice": "last_price",
    "lastQty": "last_qty",
    "bidPrice": "bid_price",
    "askPrice": "ask_price",
    "openPrice": "open_price",
    "highPrice": "high_price",
    "lowPrice": "low_price",
    "volume": "volume",
    "quoteVolume": "quote_volume",
    "openTime": "open_time",
    "closeTime": "close_time",
    "count": "count",
}
_TICKER_INT_FIELDS = {"open_time", "close_time", "count"}


@dataclass
class Ticker:
    symbol: str
    price_change: str = "0"
    price_change_percent: str = "0"
    weighted_avg_price: str = "0"
    prev_close_price: str = "0"
    last_price: str = "0"
    last_qty: str = "0"
    bid_price: str = "0"
    ask_price: str = "0"
    open_price: str = "0"
    high_price: str = "0"
    low_price: str = "0"
    volume: str = "0"
    quote_volume: str = "0"
    open_time: int = 0
    close_time: int = 0
    count: int = 0

    @property
    def last_price_value(self) -> float:
        return parse_decimal(self.last_price)

    @property
    def price_change_percent_value(self) -> float:
        return parse_decimal(self.price_change_percent)

    @property
    def quote_volume_value(self) -> float:
        return parse_decimal(self.quote_volume)

    @classmethod
    def from_json(cls, obj: Any) -> "Ticker":
        if not isinstance(obj, dict):
            raise DecodeError(f"Ticker entry is not an object: {obj!r}")
        symbol = obj.get("symbol")
        if not isinstance(symbol, str) or not symbol:
            raise DecodeError(f"Ticker entry has no symbol: {obj!r}")
        kwargs: dict[str, Any] = {}
        for key, attr in _TICKER_KEYS.items():
            if key not in obj or obj[key] is None:
                continue
            value = obj[key]
            if attr in _TICKER_INT_FIELDS:
                try:
                    kwargs[attr] = parse_int(key, value)
                except ParseError:
                    kwargs[attr] = 0
            else:
                kwargs[attr] = str(value)
        return cls(**kwargs)


def oldest_open_time(candles: list[Candle]) -> Optional[int]:
    if not candles:
        return None
    return candles[0].open_time
