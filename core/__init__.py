"""
Convenience package shim.

The app lives under `app/` and is usually started with `python app/main.py`,
which puts `app/` on `sys.path` so `import core.*` resolves to `app/core`.

From the repo root (e.g. `python -m core.cli klines BTCUSDT`) `app/` is not on
`sys.path`, so this shim extends the package search path to include `app/core`.
"""

from __future__ import annotations

import os

_HERE = os.path.abspath(os.path.dirname(__file__))
_APP_CORE = os.path.normpath(os.path.join(_HERE, "..", "app", "core"))

if os.path.isdir(_APP_CORE):
    __path__.append(_APP_CORE)  # type: ignore[name-defined]
