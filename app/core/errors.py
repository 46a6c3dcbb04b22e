from __future__ import annotations


class MarketDataError(Exception):
    pass


class NetworkError(MarketDataError):
    """Transport failure, timeout, or an HTTP error status from the exchange."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class DecodeError(MarketDataError):
    """Response body is not the shape the exchange documents."""


class ParseError(DecodeError):
    def __init__(self, field: str, value: object) -> None:
        super().__init__(f"Field {field!r} is not numeric: {value!r}")
        self.field = field
        self.value = value
