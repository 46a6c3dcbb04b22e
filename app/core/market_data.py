from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from .errors import DecodeError, NetworkError
from .log import get_logger
from .models import Candle, Ticker, Timeframe

DEFAULT_BASE_URL = "https://api.binance.com"
KLINES_PATH = "/api/v3/klines"
TICKER_24HR_PATH = "/api/v3/ticker/24hr"
MAX_KLINE_LIMIT = 1000
QUOTE_ASSET = "USDT"

_log = get_logger(__name__)


def parse_kline_rows(payload: Any) -> List[Candle]:
    if not isinstance(payload, list):
        raise DecodeError(f"Expected a JSON array of klines, got {type(payload).__name__}")
    candles = [Candle.from_row(row) for row in payload]
    # Exchange returns ascending order already; normalize anyway so downstream
    # index math can rely on strictly increasing open_time.
    candles.sort(key=lambda c: c.open_time)
    unique: List[Candle] = []
    for candle in candles:
        if unique and unique[-1].open_time == candle.open_time:
            unique[-1] = candle
            continue
        unique.append(candle)
    return unique


def parse_ticker_rows(payload: Any, quote_asset: str = QUOTE_ASSET) -> List[Ticker]:
    if not isinstance(payload, list):
        raise DecodeError(f"Expected a JSON array of tickers, got {type(payload).__name__}")
    tickers: List[Ticker] = []
    skipped = 0
    for obj in payload:
        try:
            ticker = Ticker.from_json(obj)
        except DecodeError as exc:
            skipped += 1
            _log.debug("Skipping ticker entry: %s", exc)
            continue
        if ticker.symbol.endswith(quote_asset):
            tickers.append(ticker)
    if skipped:
        _log.warning("Skipped %d malformed ticker entries", skipped)
    return tickers


class BinanceClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: Optional[float] = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session if session is not None else requests.Session()
        self._owns_session = session is None

    def __enter__(self) -> "BinanceClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        _log.info("GET %s params=%s", path, params or {})
        try:
            resp = self._session.get(url, params=params, timeout=self.timeout)
        except requests.Timeout as exc:
            _log.warning("GET %s timed out: %s", path, exc)
            raise NetworkError(f"Request to {path} timed out") from exc
        except requests.RequestException as exc:
            _log.warning("GET %s failed: %s", path, exc)
            raise NetworkError(f"Request to {path} failed: {exc}") from exc

        if resp.status_code >= 400:
            detail = resp.text
            try:
                parsed = resp.json()
                if isinstance(parsed, dict) and ("code" in parsed or "msg" in parsed):
                    detail = f"code={parsed.get('code')}, msg={parsed.get('msg')}"
            except ValueError:
                pass
            _log.warning("GET %s returned HTTP %s: %s", path, resp.status_code, detail)
            raise NetworkError(f"HTTP {resp.status_code} from {path}: {detail}", status=resp.status_code)

        try:
            return resp.json()
        except ValueError as exc:
            raise DecodeError(f"Response from {path} is not valid JSON") from exc

    def fetch_candles(
        self,
        symbol: str,
        interval: Timeframe | str,
        limit: int = MAX_KLINE_LIMIT,
        start_time: Optional[int] = None,
        end_time: Optional[int] = None,
    ) -> List[Candle]:
        timeframe = Timeframe.from_token(interval)
        params: Dict[str, Any] = {
            "symbol": symbol.upper(),
            "interval": timeframe.api_value,
            "limit": max(1, min(int(limit), MAX_KLINE_LIMIT)),
        }
        if start_time is not None:
            params["startTime"] = int(start_time)
        if end_time is not None:
            params["endTime"] = int(end_time)
        payload = self._get(KLINES_PATH, params)
        candles = parse_kline_rows(payload)
        _log.debug("Decoded %d candles for %s %s", len(candles), params["symbol"], timeframe.api_value)
        return candles

    def fetch_tickers(self) -> List[Ticker]:
        payload = self._get(TICKER_24HR_PATH)
        return parse_ticker_rows(payload)
