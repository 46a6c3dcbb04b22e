from __future__ import annotations

import argparse
from datetime import datetime
from typing import Optional

from core.config import load_config
from core.errors import MarketDataError
from core.log import setup_logging
from core.market_data import BinanceClient, MAX_KLINE_LIMIT
from core.models import Timeframe
from core.ranking import MarketCategory, format_percent, format_price, format_volume, rank_tickers


def _parse_ts(val: str) -> int:
    """
    Parse a timestamp as either:
    - epoch ms integer string
    - ISO date/time (YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS)
    """
    v = val.strip()
    if v.isdigit():
        return int(v)
    try:
        dt = datetime.fromisoformat(v)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid timestamp {val!r}; use epoch ms or YYYY-MM-DD[THH:MM:SS]") from None
    return int(dt.timestamp() * 1000)


def _fmt_ts(ts_ms: int) -> str:
    return datetime.fromtimestamp(ts_ms / 1000.0).strftime("%Y-%m-%d %H:%M")


def _run_klines(client: BinanceClient, args: argparse.Namespace) -> int:
    candles = client.fetch_candles(
        args.symbol,
        args.interval,
        limit=args.limit,
        start_time=args.start_time,
        end_time=args.end_time,
    )
    for c in candles:
        print(
            f"{c.open_time} {_fmt_ts(c.open_time)} o={c.open} h={c.high} l={c.low} c={c.close} "
            f"v={c.volume} trades={c.number_of_trades}"
        )
    print(f"candles={len(candles)}")
    return 0


def _run_tickers(client: BinanceClient, args: argparse.Namespace) -> int:
    tickers = client.fetch_tickers()
    category = MarketCategory[args.category.upper()]
    ranked = rank_tickers(tickers, category, args.search or "")
    if args.top > 0:
        ranked = ranked[: args.top]
    for t in ranked:
        print(
            f"{t.symbol:<14} {format_price(t.last_price_value):>16} "
            f"{format_percent(t.price_change_percent_value):>9} vol={format_volume(t.quote_volume_value)}"
        )
    print(f"pairs={len(ranked)} of {len(tickers)}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    config = load_config()
    ap = argparse.ArgumentParser(description="Headless market data queries (no UI).")
    ap.add_argument("--base-url", default=config.base_url)
    ap.add_argument("--timeout", type=float, default=config.request_timeout)
    ap.add_argument("--log-level", default="WARNING")
    sub = ap.add_subparsers(dest="command", required=True)

    kp = sub.add_parser("klines", help="Print candles for a symbol")
    kp.add_argument("symbol", help="Symbol, e.g. BTCUSDT")
    kp.add_argument(
        "--interval",
        default=config.default_timeframe.api_value,
        choices=[tf.api_value for tf in Timeframe],
    )
    kp.add_argument("--limit", type=int, default=MAX_KLINE_LIMIT)
    kp.add_argument("--start-time", type=_parse_ts, help="Start ts (epoch ms) or ISO date/time")
    kp.add_argument("--end-time", type=_parse_ts, help="End ts (epoch ms) or ISO date/time")

    tp = sub.add_parser("tickers", help="Print ranked USDT pairs")
    tp.add_argument(
        "--category",
        default=config.default_category.name.lower(),
        choices=[c.name.lower() for c in MarketCategory],
    )
    tp.add_argument("--search", default="")
    tp.add_argument("--top", type=int, default=20, help="Limit rows (0 = all)")

    args = ap.parse_args(argv)
    setup_logging(args.log_level)

    with BinanceClient(args.base_url, timeout=args.timeout) as client:
        try:
            if args.command == "klines":
                return _run_klines(client, args)
            return _run_tickers(client, args)
        except MarketDataError as exc:
            print(f"error={exc}")
            return 1


if __name__ == "__main__":
    raise SystemExit(main())
