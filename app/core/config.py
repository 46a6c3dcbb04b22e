from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Optional

from .models import Timeframe
from .ranking import MarketCategory


def default_log_dir() -> str:
    return os.path.join(os.path.expanduser("~"), ".klinechart", "logs")


@dataclass(frozen=True)
class AppConfig:
    base_url: str = "https://api.binance.com"
    request_timeout: float = 10.0
    initial_candle_limit: int = 1000
    history_page_size: int = 500
    default_symbol: str = "BTCUSDT"
    default_timeframe: Timeframe = Timeframe.ONE_DAY
    default_category: MarketCategory = MarketCategory.VOLUME
    log_level: str = "INFO"
    log_dir: str = ""


def _coerce(raw: Any, default: Any) -> Any:
    if isinstance(default, Timeframe):
        return Timeframe.from_token(str(raw))
    if isinstance(default, MarketCategory):
        return MarketCategory[str(raw).upper()]
    if isinstance(default, int):
        return int(raw)
    if isinstance(default, float):
        return float(raw)
    return str(raw)


def load_config(settings: Optional[Any] = None) -> AppConfig:
    """
    Build the app config, overlaying anything stored in a QSettings-like object
    (anything with `.value(key, default)`). Values that fail to coerce keep the default.
    """
    config = AppConfig(log_dir=default_log_dir())
    if settings is None:
        return config
    overrides: dict[str, Any] = {}
    for f in fields(AppConfig):
        default = getattr(config, f.name)
        raw = settings.value(f.name, None)
        if raw is None or raw == "":
            continue
        try:
            overrides[f.name] = _coerce(raw, default)
        except (KeyError, TypeError, ValueError):
            continue
    config = replace(config, **overrides)
    if config.initial_candle_limit < 1 or config.initial_candle_limit > 1000:
        config = replace(config, initial_candle_limit=AppConfig.initial_candle_limit)
    if config.history_page_size < 1 or config.history_page_size > 1000:
        config = replace(config, history_page_size=AppConfig.history_page_size)
    return config
