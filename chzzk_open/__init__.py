"""Chzzk Open API client with a realtime chat session."""

from chzzk_open.client import ChzzkClient
from chzzk_open.config import load_config
from chzzk_open.events import EventDispatcher, EventName
from chzzk_open.exceptions import (
    ApiError,
    AuthorizationError,
    ChzzkError,
    ConfigurationError,
    ConnectionError,
    ProtocolError,
    TransportError,
)
from chzzk_open.models import Config, TokenPair

__version__ = "0.1.0"

__all__ = [
    "ChzzkClient",
    "load_config",
    "EventDispatcher",
    "EventName",
    "ApiError",
    "AuthorizationError",
    "ChzzkError",
    "ConfigurationError",
    "ConnectionError",
    "ProtocolError",
    "TransportError",
    "Config",
    "TokenPair",
]
