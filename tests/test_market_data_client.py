import os
import sys
import unittest

import requests

# Allow `import core.*` like the app does when running `python app/main.py`.
REPO_ROOT = os.path.dirname(os.path.dirname(__file__))
APP_DIR = os.path.join(REPO_ROOT, "app")
if APP_DIR not in sys.path:
    sys.path.insert(0, APP_DIR)

from core.errors import DecodeError, NetworkError, ParseError
from core.market_data import KLINES_PATH, TICKER_24HR_PATH, BinanceClient, parse_kline_rows


def _row(open_time, o="100.0", h="110.0", l="90.0", c="105.0"):
    return [open_time, o, h, l, c, "12.5", open_time + 59_999, "1250.0", 42, "6.0", "600.0", "0"]


class _FakeResponse:
    def __init__(self, status_code=200, payload=None, text="", bad_json=False):
        self.status_code = status_code
        self._payload = payload
        self.text = text
        self._bad_json = bad_json

    def json(self):
        if self._bad_json:
            raise ValueError("not json")
        return self._payload


class _FakeSession:
    def __init__(self, responses=None, exc=None):
        self.responses = list(responses or [])
        self.exc = exc
        self.calls = []
        self.closed = False

    def get(self, url, params=None, timeout=None):
        self.calls.append({"url": url, "params": params, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.responses.pop(0)

    def close(self):
        self.closed = True


class KlineDecodeTests(unittest.TestCase):
    def test_three_daily_candles_ascending(self):
        day = 86_400_000
        rows = [_row(3 * day), _row(1 * day), _row(2 * day)]
        session = _FakeSession([_FakeResponse(payload=rows)])
        client = BinanceClient("https://api.example", session=session)

        candles = client.fetch_candles("BTCUSDT", "1d", limit=3)

        self.assertEqual([c.open_time for c in candles], [day, 2 * day, 3 * day])
        call = session.calls[0]
        self.assertEqual(call["url"], "https://api.example" + KLINES_PATH)
        self.assertEqual(call["params"], {"symbol": "BTCUSDT", "interval": "1d", "limit": 3})
        self.assertEqual(call["timeout"], 10.0)

    def test_fields_decoded(self):
        candle = parse_kline_rows([_row(1000)])[0]
        self.assertEqual(candle.open, 100.0)
        self.assertEqual(candle.high, 110.0)
        self.assertEqual(candle.low, 90.0)
        self.assertEqual(candle.close, 105.0)
        self.assertEqual(candle.number_of_trades, 42)
        self.assertEqual(candle.close_time, 1000 + 59_999)
        self.assertTrue(candle.is_bullish)
        self.assertEqual(candle.mid_price, 100.0)

    def test_quoted_numbers_accepted(self):
        row = _row(1000, o='"101.5"')
        self.assertEqual(parse_kline_rows([row])[0].open, 101.5)

    def test_short_row_is_decode_error(self):
        with self.assertRaises(DecodeError):
            parse_kline_rows([_row(1000)[:11]])

    def test_non_numeric_field_is_parse_error(self):
        with self.assertRaises(ParseError) as ctx:
            parse_kline_rows([_row(1000, h="abc")])
        self.assertEqual(ctx.exception.field, "high")

    def test_non_finite_field_is_parse_error(self):
        for bad in ("NaN", "inf", "-Infinity"):
            with self.assertRaises(ParseError):
                parse_kline_rows([_row(1000, l=bad)])

    def test_non_array_payload(self):
        with self.assertRaises(DecodeError):
            parse_kline_rows({"code": -1121})

    def test_duplicate_open_times_collapse(self):
        candles = parse_kline_rows([_row(1000), _row(2000), _row(1000, c="99.0")])
        self.assertEqual([c.open_time for c in candles], [1000, 2000])


class ClientRequestTests(unittest.TestCase):
    def test_end_time_and_limit_clamp(self):
        session = _FakeSession([_FakeResponse(payload=[])])
        client = BinanceClient(session=session)
        client.fetch_candles("ethusdt", "1h", limit=5000, end_time=1_699_999_999_999)
        params = session.calls[0]["params"]
        self.assertEqual(params["symbol"], "ETHUSDT")
        self.assertEqual(params["limit"], 1000)
        self.assertEqual(params["endTime"], 1_699_999_999_999)
        self.assertNotIn("startTime", params)

    def test_unsupported_interval(self):
        client = BinanceClient(session=_FakeSession())
        with self.assertRaises(ValueError):
            client.fetch_candles("BTCUSDT", "3d")

    def test_transport_failure_is_network_error(self):
        session = _FakeSession(exc=requests.ConnectionError("boom"))
        client = BinanceClient(session=session)
        with self.assertRaises(NetworkError) as ctx:
            client.fetch_candles("BTCUSDT", "1d")
        self.assertIsNone(ctx.exception.status)

    def test_timeout_is_network_error(self):
        client = BinanceClient(session=_FakeSession(exc=requests.Timeout("slow")))
        with self.assertRaises(NetworkError):
            client.fetch_tickers()

    def test_http_error_carries_status_and_detail(self):
        resp = _FakeResponse(status_code=400, payload={"code": -1121, "msg": "Invalid symbol."})
        client = BinanceClient(session=_FakeSession([resp]))
        with self.assertRaises(NetworkError) as ctx:
            client.fetch_candles("NOPEUSDT", "1d")
        self.assertEqual(ctx.exception.status, 400)
        self.assertIn("Invalid symbol.", str(ctx.exception))

    def test_invalid_json_is_decode_error(self):
        client = BinanceClient(session=_FakeSession([_FakeResponse(bad_json=True)]))
        with self.assertRaises(DecodeError):
            client.fetch_candles("BTCUSDT", "1d")

    def test_injected_session_not_closed(self):
        session = _FakeSession()
        with BinanceClient(session=session):
            pass
        self.assertFalse(session.closed)


class TickerTests(unittest.TestCase):
    def test_only_usdt_pairs_kept(self):
        payload = [
            {"symbol": "BTCUSDT", "lastPrice": "65000.1", "priceChangePercent": "1.5", "quoteVolume": "1000", "closeTime": 1},
            {"symbol": "ETHBTC", "lastPrice": "0.05", "priceChangePercent": "-0.2", "quoteVolume": "10", "closeTime": 1},
            {"symbol": "SOLUSDT", "lastPrice": "150", "priceChangePercent": "-3.1", "quoteVolume": "500", "closeTime": 1},
        ]
        session = _FakeSession([_FakeResponse(payload=payload)])
        tickers = BinanceClient(session=session).fetch_tickers()
        self.assertEqual([t.symbol for t in tickers], ["BTCUSDT", "SOLUSDT"])
        self.assertTrue(session.calls[0]["url"].endswith(TICKER_24HR_PATH))
        self.assertEqual(tickers[0].last_price_value, 65000.1)

    def test_malformed_entries_skipped(self):
        payload = ["junk", {"lastPrice": "1"}, {"symbol": "XRPUSDT", "closeTime": 5}]
        tickers = BinanceClient(session=_FakeSession([_FakeResponse(payload=payload)])).fetch_tickers()
        self.assertEqual([t.symbol for t in tickers], ["XRPUSDT"])
        self.assertEqual(tickers[0].close_time, 5)


if __name__ == "__main__":
    unittest.main()
