# swingsim/errors.py
"""
Engine errors.

All of these are state-guard or validation failures. The TradingEngine
recovers them locally and turns them into a single `validation-failed`
notification; none of them are fatal.

    TradingError
    ├── ValidationError
    └── InvalidStateError
        └── NoPriceAvailableError
"""

from typing import Any, Optional


class TradingError(Exception):
    """Base class for engine errors."""

    def __init__(self, message: str, code: str = "TRADING_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "error": type(self).__name__,
            "code": self.code,
            "message": self.message,
        }


class ValidationError(TradingError):
    """A settings value was rejected."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field
        self.value = value


class InvalidStateError(TradingError):
    """The operation is not allowed in the current trading state."""

    def __init__(self, message: str, code: str = "INVALID_STATE"):
        super().__init__(message, code=code)


class NoPriceAvailableError(InvalidStateError):
    def __init__(self, message: str = "No current price available"):
        super().__init__(message, code="NO_PRICE")
