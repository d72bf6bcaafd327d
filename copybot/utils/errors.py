"""
Exception types shared across the copy bot.
"""
from __future__ import annotations


class CopyBotError(Exception):
    """Base class for every error raised by the copy bot."""

    code = "COPYBOT_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        if code:
            self.code = code


class ConfigurationError(CopyBotError, ValueError):
    code = "CONFIG_ERROR"


class ApiError(CopyBotError):
    """A Data API request failed or returned something we could not decode."""

    code = "API_ERROR"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TradeExecutionError(CopyBotError):
    """The order gateway could not be set up or could not place an order."""

    code = "TRADE_EXECUTION_ERROR"

    def __init__(self, message: str, position_id: str | None = None) -> None:
        super().__init__(message)
        self.position_id = position_id
