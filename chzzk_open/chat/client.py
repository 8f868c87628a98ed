"""
Chzzk chat client: connect, authenticate, heartbeat, dispatch, reconnect.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from chzzk_open.chat.heartbeat import Heartbeat
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
    auth_frame,
    parse_frame,
    ping_frame,
)
from chzzk_open.chat.reconnect import ReconnectionManager
from chzzk_open.chat.transport import AiohttpTransport, Transport
from chzzk_open.events import EventDispatcher, EventName
from chzzk_open.exceptions import (
    ChzzkError,
    ConfigurationError,
    ConnectionError as ChzzkConnectionError,
    ProtocolError,
    TransportError,
)

logger = logging.getLogger(__name__)

TokenFetcher = Callable[[str], Awaitable[str]]
TransportFactory = Callable[[], Transport]

FRAME_EVENTS = {
    FrameType.CHAT: (EventName.CHAT_MESSAGE, ChatMessage),
    FrameType.DONATION: (EventName.CHAT_DONATION, ChatDonation),
    FrameType.SUBSCRIPTION: (EventName.CHAT_SUBSCRIPTION, ChatSubscription),
    FrameType.NOTICE: (EventName.CHAT_NOTICE, ChatNotice),
}


class SessionState(str, Enum):
    IDLE = "IDLE"
    CONNECTING = "CONNECTING"
    AUTHENTICATING = "AUTHENTICATING"
    CONNECTED = "CONNECTED"
    RECONNECT_PENDING = "RECONNECT_PENDING"
    CLOSING = "CLOSING"


@dataclass(eq=False)
class Session:
    """
    One logical chat connection to one channel.

    Reconnects reuse the Session but replace transport and chat_token.
    """
    channel_id: str
    heartbeat: Heartbeat
    reconnection: ReconnectionManager
    state: SessionState = SessionState.IDLE
    transport: Optional[Transport] = None
    chat_token: Optional[str] = None


class ChzzkChatClient:
    """
    Realtime chat session for a single client instance.

    At most one Session, and therefore at most one live Transport, exists at
    a time. Closures after a successful open are retried with bounded
    exponential backoff; failures of the initial connect() are raised.
    """

    def __init__(
        self,
        token_fetcher: TokenFetcher,
        events: Optional[EventDispatcher] = None,
        *,
        transport_factory: Optional[TransportFactory] = None,
        chat_url: str = "wss://chat.chzzk.naver.com/chat",
        connect_timeout: float = 10.0,
        max_reconnect_attempts: int = 5,
        reconnect_base_delay: float = 1.0,
        heartbeat_interval: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize chat client.

        Args:
            token_fetcher: Coroutine function returning a fresh chat token
                for a channel ID
            events: Dispatcher to emit chat events on
            transport_factory: Builds a new, unopened Transport per attempt
            chat_url: WebSocket URL used by the default transport
            connect_timeout: Socket open timeout for the default transport
            max_reconnect_attempts: Reconnection budget per session
            reconnect_base_delay: Backoff base in seconds
            heartbeat_interval: Seconds between PING frames
            sleep: Awaitable sleep for heartbeat and backoff timers
            clock: Wall clock in seconds, used for receipt timestamps
        """
        self._token_fetcher = token_fetcher
        self.events = events or EventDispatcher()
        self._transport_factory = transport_factory or (
            lambda: AiohttpTransport(chat_url, connect_timeout=connect_timeout)
        )
        self._max_reconnect_attempts = max_reconnect_attempts
        self._reconnect_base_delay = reconnect_base_delay
        self._heartbeat_interval = heartbeat_interval
        self._sleep = sleep
        self._clock = clock

        self._session: Optional[Session] = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def connect(self, channel_id: str) -> None:
        """
        Connect to a channel's chat, replacing any existing session.

        Raises:
            ConfigurationError: If channel_id is empty
            AuthorizationError: If no chat token could be obtained
            ProtocolError: If the token response was malformed
            ConnectionError: If the socket could not be opened, or a
                disconnect() or newer connect() took over first
        """
        if not channel_id:
            raise ConfigurationError("Channel ID is required")

        if self._session is not None:
            await self.disconnect()

        session = Session(
            channel_id=channel_id,
            heartbeat=Heartbeat(self._heartbeat_interval, sleep=self._sleep),
            reconnection=ReconnectionManager(
                base_delay=self._reconnect_base_delay,
                max_attempts=self._max_reconnect_attempts,
                sleep=self._sleep,
            ),
        )
        self._session = session

        try:
            await self._open(session)
        except BaseException:
            if self._session is session:
                session.state = SessionState.IDLE
                self._session = None
            raise

        if self._session is not session or session.state in (
            SessionState.IDLE,
            SessionState.CLOSING,
        ):
            raise ChzzkConnectionError(
                f"Connection to channel {channel_id} was superseded before it was established"
            )

    async def disconnect(self) -> None:
        """Close the current session. Safe to call when not connected."""
        session = self._session
        if session is None:
            return

        logger.info(f"Disconnecting from channel {session.channel_id}")
        session.state = SessionState.CLOSING
        session.reconnection.reset()
        session.heartbeat.stop()

        transport = session.transport
        if transport is not None:
            await transport.close()

        session.transport = None
        session.chat_token = None
        session.state = SessionState.IDLE
        if self._session is session:
            self._session = None

    def on(self, event_name, handler):
        return self.events.on(event_name, handler)

    def off(self, event_name, handler) -> None:
        self.events.off(event_name, handler)

    def once(self, event_name, handler):
        return self.events.once(event_name, handler)

    @property
    def state(self) -> SessionState:
        return self._session.state if self._session else SessionState.IDLE

    @property
    def channel_id(self) -> Optional[str]:
        return self._session.channel_id if self._session else None

    @property
    def is_connected(self) -> bool:
        return self.state is SessionState.CONNECTED

    @property
    def reconnect_attempts(self) -> int:
        return self._session.reconnection.attempts if self._session else 0

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def _open(self, session: Session) -> None:
        """Fetch a fresh chat token, open a transport and authenticate."""
        session.state = SessionState.CONNECTING
        channel_id = session.channel_id
        logger.info(f"Connecting to chat for channel {channel_id}...")

        token = await self._token_fetcher(channel_id)
        if session is not self._session or session.state is not SessionState.CONNECTING:
            # torn down while the token was being fetched
            return

        transport = self._transport_factory()
        transport.set_handlers(
            on_message=lambda raw: self._on_transport_message(session, transport, raw),
            on_close=lambda code, reason: self._on_transport_closed(
                session, transport, code, reason
            ),
            on_error=lambda error: self._on_transport_error(session, transport, error),
        )
        session.transport = transport

        try:
            await transport.open()
        except TransportError as e:
            session.transport = None
            self.events.emit(EventName.CHAT_ERROR, ChatErrorEvent(error=e))
            raise ChzzkConnectionError(
                f"Failed to connect to chat for channel {channel_id}: {e}",
                cause=e,
            ) from e

        if session is not self._session or session.state is not SessionState.CONNECTING:
            await transport.close()
            return

        session.state = SessionState.AUTHENTICATING
        session.chat_token = token
        await self._send(session, auth_frame(token, channel_id))
        if session.transport is not transport:
            # closed while authenticating; the close handler owns recovery
            return

        session.heartbeat.start(lambda: self._send_ping(session, transport))
        session.state = SessionState.CONNECTED

        logger.info(f"Connected to chat for channel {channel_id}")
        self.events.emit(EventName.CHAT_CONNECTED, ChatConnected(channel_id=channel_id))

    async def _reconnect(self, session: Session) -> None:
        """Scheduled attempt; failures feed back into the backoff loop."""
        try:
            await self._open(session)
        except Exception as e:
            logger.warning(
                f"Reconnection attempt {session.reconnection.attempts} failed: {e}",
                exc_info=not isinstance(e, ChzzkError),
            )
            self._on_transport_closed(session, None, None, str(e))

    async def _send(self, session: Session, text: str) -> None:
        transport = session.transport
        if transport is None or not transport.is_open:
            return
        try:
            await transport.send(text)
        except TransportError as e:
            logger.warning(f"Failed to send frame: {e}")
            self.events.emit(EventName.CHAT_ERROR, ChatErrorEvent(error=e))

    async def _send_ping(self, session: Session, transport: Transport) -> None:
        if session.transport is not transport or not transport.is_open:
            return
        await self._send(session, ping_frame())
        logger.debug("Sent PING")

    # ------------------------------------------------------------------
    # Transport callbacks
    # ------------------------------------------------------------------

    def _is_current(self, session: Session, transport: Optional[Transport]) -> bool:
        return session is self._session and session.transport is transport

    def _on_transport_closed(
        self,
        session: Session,
        transport: Optional[Transport],
        code: Optional[int],
        reason: str,
    ) -> None:
        if not self._is_current(session, transport):
            return

        session.heartbeat.stop()
        session.transport = None
        session.chat_token = None

        explicit = session.state is SessionState.CLOSING
        will_reconnect = not explicit and session.reconnection.can_retry

        if explicit:
            logger.info(f"Chat connection closed (code={code})")
        else:
            logger.warning(f"Chat connection lost (code={code}, reason={reason!r})")

        self.events.emit(
            EventName.CHAT_DISCONNECTED,
            ChatDisconnected(
                channel_id=session.channel_id,
                code=code,
                reason=reason,
                will_reconnect=will_reconnect,
                explicit=explicit,
            ),
        )

        if explicit or session is not self._session or session.state is SessionState.CLOSING:
            return

        if will_reconnect:
            session.state = SessionState.RECONNECT_PENDING
            session.reconnection.schedule(lambda: self._reconnect(session))
        else:
            session.state = SessionState.IDLE
            logger.error(
                f"Giving up on channel {session.channel_id} after "
                f"{session.reconnection.attempts} reconnection attempts"
            )

    def _on_transport_error(
        self,
        session: Session,
        transport: Transport,
        error: Exception,
    ) -> None:
        if not self._is_current(session, transport):
            return
        logger.error(f"Chat transport error: {error}")
        self.events.emit(EventName.CHAT_ERROR, ChatErrorEvent(error=error))

    def _on_transport_message(
        self,
        session: Session,
        transport: Transport,
        raw: str,
    ) -> None:
        if not self._is_current(session, transport):
            return

        received_at = int(self._clock() * 1000)
        try:
            frame = parse_frame(raw)
            self._dispatch_frame(session, frame, received_at)
        except ProtocolError as e:
            logger.warning(f"Discarding chat frame: {e}")
            self.events.emit(
                EventName.CHAT_ERROR,
                ChatErrorEvent(error=e, raw_message=raw),
            )

    def _dispatch_frame(
        self,
        session: Session,
        frame: InboundFrame,
        received_at: int,
    ) -> None:
        if frame.type is FrameType.PONG:
            logger.debug("Received PONG")
            return

        if frame.type is FrameType.UNKNOWN:
            logger.debug(f"Ignoring frame with type={frame.raw_type!r}")
            return

        event_name, model = FRAME_EVENTS[frame.type]
        event = model.from_raw(frame.payload, session.channel_id, received_at)
        self.events.emit(event_name, event)
