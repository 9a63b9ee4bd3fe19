"""
Custom exceptions for the Whop forwarder.

This module defines custom exception classes for better error handling
and debugging across the application.
"""

from typing import Any


class ForwarderError(Exception):
    """Base exception for Whop forwarder errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code or "FORWARDER_ERROR"
        self.context = context or {}


class WhopAPIError(ForwarderError):
    """Exception for Whop GraphQL API related errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, "WHOP_API_ERROR", context)
        self.status_code = status_code


class AuthenticationError(WhopAPIError):
    """Exception for rejected or misconfigured Whop credentials."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, status_code, context)
        self.code = "AUTHENTICATION_ERROR"


class ConfigurationError(ForwarderError):
    """Exception for configuration related errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message, "CONFIGURATION_ERROR", context)


class StateStoreError(ForwarderError):
    """Exception for seen-message state persistence errors."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, "STATE_STORE_ERROR", context)
        self.path = path


class DeliveryError(ForwarderError):
    """Exception for a single failed webhook delivery."""

    def __init__(
        self,
        message: str,
        message_id: str | None = None,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, "DELIVERY_ERROR", context)
        self.message_id = message_id
        self.status_code = status_code


class BatchDeliveryError(ForwarderError):
    """Raised after a batch was fully attempted but some deliveries failed."""

    def __init__(
        self,
        failures: list[tuple[str, Exception]],
        attempted: int,
        context: dict[str, Any] | None = None,
    ):
        failed_ids = ", ".join(message_id for message_id, _ in failures)
        super().__init__(
            f"{len(failures)} of {attempted} deliveries failed: {failed_ids}",
            "BATCH_DELIVERY_ERROR",
            context,
        )
        self.failures = failures
        self.attempted = attempted
