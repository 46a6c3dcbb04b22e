from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .log import get_logger
from .models import Candle
from .viewport import ChartViewport

DEFAULT_PAGE_SIZE = 500

_log = get_logger(__name__)


@dataclass(frozen=True)
class HistoryRequest:
    end_time: int
    limit: int
    generation: int


def prepend_history(batch: Sequence[Candle], candles: Sequence[Candle]) -> List[Candle]:
    """
    Older candles from `batch` followed by `candles`. Anything in the batch at or after
    the current oldest open_time is dropped, so the result stays strictly increasing.
    """
    oldest = candles[0].open_time if candles else None
    older: dict[int, Candle] = {}
    for candle in batch:
        if oldest is not None and candle.open_time >= oldest:
            continue
        older[candle.open_time] = candle
    return [older[ts] for ts in sorted(older)] + list(candles)


class HistoryPaginator:
    """
    Backward pagination for the chart: at most one page in flight.

    `launcher` starts the fetch for a HistoryRequest and must eventually report back
    through `complete()` or `fail()` on the GUI thread. `invalidate()` bumps the
    generation so results of a request issued before a refresh, symbol change or
    timeframe change are discarded.
    """

    def __init__(
        self,
        viewport: ChartViewport,
        launcher: Callable[[HistoryRequest], None],
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        self.viewport = viewport
        self.launcher = launcher
        self.page_size = page_size
        self.is_loading_historical = False
        self.has_requested_historical_data = False
        self.exhausted = False
        self.generation = 0

    @property
    def pending(self) -> bool:
        return self.is_loading_historical or self.has_requested_historical_data

    def maybe_request(self, candles: Sequence[Candle], dx: float) -> Optional[HistoryRequest]:
        if dx <= 0 or self.pending or self.exhausted:
            return None
        if not self.viewport.near_history_start():
            return None
        return self.request(candles)

    def request(self, candles: Sequence[Candle]) -> Optional[HistoryRequest]:
        if not candles or self.pending:
            return None
        if not self.viewport.use_stable_viewport:
            min_price, max_price = self.viewport.price_range(candles)
            self.viewport.lock_price_range(min_price, max_price)
        self.has_requested_historical_data = True
        self.is_loading_historical = True
        request = HistoryRequest(
            end_time=candles[0].open_time - 1,
            limit=self.page_size,
            generation=self.generation,
        )
        _log.info("Requesting %d candles ending at %d", request.limit, request.end_time)
        try:
            self.launcher(request)
        except Exception as exc:
            self.fail(request, str(exc))
            return None
        return request

    def complete(self, request: HistoryRequest, batch: Sequence[Candle], candles: Sequence[Candle]) -> List[Candle]:
        if request.generation != self.generation:
            _log.debug("Dropping stale history page (generation %d != %d)", request.generation, self.generation)
            return list(candles)
        merged = prepend_history(batch, candles)
        added = len(merged) - len(candles)
        if added > 0:
            self.viewport.shift_for_prepended(added)
            _log.info("Prepended %d historical candles", added)
        else:
            self.exhausted = True
            _log.info("No older candles before %d", request.end_time)
        self._finish()
        return merged

    def fail(self, request: HistoryRequest, message: str) -> None:
        if request.generation != self.generation:
            return
        _log.warning("History page failed: %s", message)
        self._finish()

    def invalidate(self) -> None:
        self.generation += 1
        self.exhausted = False
        self._finish()

    def _finish(self) -> None:
        self.is_loading_historical = False
        self.has_requested_historical_data = False
        self.viewport.unlock_price_range()
