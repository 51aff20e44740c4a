"""
Error types for the sheet sync job and the order workflow.
"""
from typing import Iterable, Optional


class OrdersError(Exception):
    """Base class for every error raised by the order backend."""


class MalformedFeed(OrdersError):
    """Feed envelope or JSON could not be decoded."""


class MissingColumn(OrdersError):
    """Wrapped feed lacks a required header."""

    def __init__(self, column: str):
        self.column = column
        super().__init__(f"Missing column: {column}")


class FetchFailure(OrdersError):
    """Feed endpoint answered with a non-success status or was unreachable."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class StoreFailure(OrdersError):
    """A DynamoDB operation failed. The underlying message is kept verbatim."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)


class ConfigError(OrdersError):
    """Required configuration is absent."""

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(f"Missing configuration: {', '.join(self.missing)}")


class OrderUnavailable(OrdersError):
    """A conditional order transition lost: the order is no longer in the expected state."""

    def __init__(self, order_id: str, message: str = 'Order is no longer available'):
        self.order_id = order_id
        super().__init__(message)
