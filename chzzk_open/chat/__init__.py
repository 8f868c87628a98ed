"""
Chzzk realtime chat session with bounded reconnection.
"""

from chzzk_open.chat.client import ChzzkChatClient, Session, SessionState
from chzzk_open.chat.http import get_chat_access_token
from chzzk_open.chat.models import (
    ChatConnected,
    ChatDisconnected,
    ChatDonation,
    ChatErrorEvent,
    ChatMessage,
    ChatNotice,
    ChatSubscription,
    FrameType,
    InboundFrame,
    parse_frame,
)
from chzzk_open.chat.transport import AiohttpTransport, Transport

__all__ = [
    "ChzzkChatClient",
    "Session",
    "SessionState",
    "get_chat_access_token",
    "ChatConnected",
    "ChatDisconnected",
    "ChatDonation",
    "ChatErrorEvent",
    "ChatMessage",
    "ChatNotice",
    "ChatSubscription",
    "FrameType",
    "InboundFrame",
    "parse_frame",
    "AiohttpTransport",
    "Transport",
]
