"""
Custom exceptions for the Chzzk Open API client.
"""

from typing import Any, Optional


class ChzzkError(Exception):
    """Base exception for all Chzzk client errors."""
    pass


class ConfigurationError(ChzzkError):
    """Invalid argument or setup, such as an unknown event name."""
    pass


class AuthorizationError(ChzzkError):
    """Access token missing, expired, or not refreshable."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ApiError(ChzzkError):
    """
    REST call failed.

    ``status`` is None when no response was received at all.
    """

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[Any] = None,
        data: Optional[Any] = None,
    ):
        super().__init__(message)
        self.status = status
        self.code = code
        self.data = data


class TransportError(ChzzkError):
    """Chat socket failed to open, send, or receive."""
    pass


class ConnectionError(TransportError):
    """Explicit chat connect could not open the transport."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ProtocolError(ChzzkError):
    """Server sent something the client could not understand."""

    def __init__(self, message: str, raw: Optional[Any] = None):
        super().__init__(message)
        self.raw = raw
