"""Exceptions raised by ltgrid."""
from __future__ import annotations

LT_AUTH_ERROR = (
    "Authentication failed. Please assign the correct username and access key "
    "to the LT_USERNAME and LT_ACCESS_KEY environment variables."
)


class LTError(Exception):
    """Base class for ltgrid errors."""


class LTAuthError(LTError):
    """Raised when LambdaTest credentials are missing."""

    def __init__(self, message: str = LT_AUTH_ERROR):
        super().__init__(message)


class CapabilityError(LTError):
    """Raised when a browser name or capability file cannot be turned into capabilities."""


class TunnelError(LTError):
    """Raised when the LT tunnel binary fails to start or stop."""


class SessionNotFoundError(LTError, KeyError):
    """Raised when an operation targets a browser id with no open session."""

    def __init__(self, browser_id: str):
        self.browser_id = browser_id
        super().__init__(f"No open browser session for id {browser_id!r}")

    def __str__(self) -> str:
        return self.args[0]


class LambdaTestAPIError(LTError):
    """Raised when the LambdaTest REST API fails or returns a non-2xx status.

    ``status`` is 0 when no HTTP response was received.
    """

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"LambdaTest API error {status}: {message}")
