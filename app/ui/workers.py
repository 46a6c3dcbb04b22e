from typing import Optional

from PyQt6.QtCore import QThread, pyqtSignal

from core.market_data import BinanceClient


class CandleFetchWorker(QThread):
    """Runs one klines request off the GUI thread; `tag` is echoed back with the result."""

    data_ready = pyqtSignal(object, list)
    error = pyqtSignal(object, str)

    def __init__(
        self,
        client: BinanceClient,
        symbol: str,
        interval: str,
        limit: int,
        end_time: Optional[int] = None,
        tag: object = None,
    ) -> None:
        super().__init__()
        self.client = client
        self.symbol = symbol
        self.interval = interval
        self.limit = limit
        self.end_time = end_time
        self.tag = tag

    def run(self) -> None:
        try:
            candles = self.client.fetch_candles(
                self.symbol,
                self.interval,
                limit=self.limit,
                end_time=self.end_time,
            )
            self.data_ready.emit(self.tag, candles)
        except Exception as exc:
            self.error.emit(self.tag, str(exc))


class TickerFetchWorker(QThread):
    data_ready = pyqtSignal(list)
    error = pyqtSignal(str)

    def __init__(self, client: BinanceClient) -> None:
        super().__init__()
        self.client = client

    def run(self) -> None:
        try:
            tickers = self.client.fetch_tickers()
            self.data_ready.emit(tickers)
        except Exception as exc:
            self.error.emit(str(exc))
