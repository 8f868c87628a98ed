"""
Frame and event models for Chzzk chat.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from chzzk_open.exceptions import ProtocolError


class FrameType(str, Enum):
    """Server to client frame tags."""

    CHAT = "CHAT"
    DONATION = "DONATION"
    SUBSCRIPTION = "SUBSCRIPTION"
    NOTICE = "NOTICE"
    PONG = "PONG"
    UNKNOWN = "UNKNOWN"


@dataclass
class InboundFrame:
    """One received frame. raw_type keeps the received tag for UNKNOWN frames."""
    type: FrameType
    payload: Dict[str, Any]
    raw_type: Optional[str] = None


def parse_frame(raw: str) -> InboundFrame:
    """
    Parse a raw text frame into an InboundFrame.

    Raises:
        ProtocolError: If raw is not a JSON object
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise ProtocolError(f"Malformed chat frame: {e}", raw=raw) from e

    if not isinstance(data, dict):
        raise ProtocolError("Chat frame is not a JSON object", raw=raw)

    raw_type = data.get("type")
    try:
        frame_type = FrameType(raw_type)
    except ValueError:
        frame_type = FrameType.UNKNOWN

    # "UNKNOWN" sent by the server is still an unknown frame
    return InboundFrame(type=frame_type, payload=data, raw_type=raw_type)


def auth_frame(token: str, channel_id: str) -> str:
    """Frame sent once right after the socket opens."""
    return json.dumps({"type": "AUTH", "token": token, "channelId": channel_id})


def ping_frame() -> str:
    return json.dumps({"type": "PING"})


def _str(data: Dict[str, Any], key: str, default: str = "") -> str:
    value = data.get(key)
    return default if value is None else str(value)


def _int(data: Dict[str, Any], key: str, default: int) -> int:
    value = data.get(key)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ProtocolError(f"Field {key!r} is not a number: {value!r}", raw=data)


def _badges(data: Dict[str, Any]) -> List[Any]:
    badges = data.get("badges")
    if not badges:
        return []
    if not isinstance(badges, list):
        raise ProtocolError("Field 'badges' is not a list", raw=data)
    return list(badges)


def _timestamp(data: Dict[str, Any], received_at: int) -> int:
    """Server timestamp in epoch ms; receipt time if missing or unparsable."""
    try:
        return _int(data, "timestamp", 0) or received_at
    except ProtocolError:
        return received_at


@dataclass
class ChatMessage:
    """Represents a chat message."""
    channel_id: str
    user_id: str
    nickname: str
    message: str
    timestamp: int
    badges: List[Any] = field(default_factory=list)

    @classmethod
    def from_raw(
        cls, data: Dict[str, Any], channel_id: str, received_at: int
    ) -> "ChatMessage":
        """
        Build from a CHAT frame.

        Args:
            data: Frame payload
            channel_id: Channel the session is connected to
            received_at: Receipt time in epoch milliseconds, used when the
                frame carries no timestamp
        """
        return cls(
            channel_id=channel_id,
            user_id=_str(data, "userId"),
            nickname=_str(data, "nickname"),
            message=_str(data, "content"),
            badges=_badges(data),
            timestamp=_timestamp(data, received_at),
        )


@dataclass
class ChatDonation:
    """Represents a donation."""
    channel_id: str
    user_id: str
    nickname: str
    message: str
    amount: int
    timestamp: int
    currency: str = "KRW"
    is_anonymous: bool = False
    badges: List[Any] = field(default_factory=list)

    @classmethod
    def from_raw(
        cls, data: Dict[str, Any], channel_id: str, received_at: int
    ) -> "ChatDonation":
        return cls(
            channel_id=channel_id,
            user_id=_str(data, "userId"),
            nickname=_str(data, "nickname"),
            message=_str(data, "content"),
            amount=_int(data, "amount", 0),
            currency=_str(data, "currency") or "KRW",
            is_anonymous=bool(data.get("isAnonymous")),
            badges=_badges(data),
            timestamp=_timestamp(data, received_at),
        )


@dataclass
class ChatSubscription:
    """Represents a subscription announcement."""
    channel_id: str
    user_id: str
    nickname: str
    message: str
    timestamp: int
    months: int = 1
    tier: int = 1
    tier_name: str = "basic"
    badges: List[Any] = field(default_factory=list)

    @classmethod
    def from_raw(
        cls, data: Dict[str, Any], channel_id: str, received_at: int
    ) -> "ChatSubscription":
        return cls(
            channel_id=channel_id,
            user_id=_str(data, "userId"),
            nickname=_str(data, "nickname"),
            message=_str(data, "content"),
            months=_int(data, "months", 0) or 1,
            tier=_int(data, "tier", 0) or 1,
            tier_name=_str(data, "tierName") or "basic",
            badges=_badges(data),
            timestamp=_timestamp(data, received_at),
        )


@dataclass
class ChatNotice:
    """Represents a channel notice."""
    channel_id: str
    message: str
    timestamp: int
    notice_type: str = "NORMAL"

    @classmethod
    def from_raw(
        cls, data: Dict[str, Any], channel_id: str, received_at: int
    ) -> "ChatNotice":
        return cls(
            channel_id=channel_id,
            message=_str(data, "content"),
            notice_type=_str(data, "noticeType") or "NORMAL",
            timestamp=_timestamp(data, received_at),
        )


@dataclass
class ChatConnected:
    channel_id: str


@dataclass
class ChatDisconnected:
    """
    Socket closed.

    will_reconnect is False both for caller-initiated disconnects and for
    the terminal event after the reconnect budget is spent; the two are
    told apart by `explicit`.
    """
    channel_id: str
    code: Optional[int]
    reason: str
    will_reconnect: bool
    explicit: bool = False


@dataclass
class ChatErrorEvent:
    error: Exception
    raw_message: Optional[str] = None
