"""Custom exception types for domain and API layers."""
from __future__ import annotations


class AppError(Exception):
    """Base app exception."""


class ConfigError(AppError):
    """Configuration could not be loaded or failed validation."""


class DatabaseUnavailableError(AppError):
    """The relational store could not be reached at startup."""


class SubscriptionNotFoundError(AppError):
    """No subscription matches the requested identifier.

    ``reason`` keeps the internal cause (``malformed_id``, ``no_match`` or
    ``store_error``) for logging; clients only ever see "not found".
    """

    def __init__(self, subscription_id: str, reason: str = "no_match") -> None:
        super().__init__(f"subscription {subscription_id} not found ({reason})")
        self.subscription_id = subscription_id
        self.reason = reason


class PersistenceError(AppError):
    """A statement against the store failed."""

    def __init__(self, operation: str, public_message: str) -> None:
        super().__init__(f"{operation} failed")
        self.operation = operation
        self.public_message = public_message
