"""
WebSocket transport for Chzzk chat.
"""

import asyncio
import logging
from typing import Callable, Optional

import aiohttp

from chzzk_open.exceptions import TransportError

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str], None]
CloseHandler = Callable[[Optional[int], str], None]
ErrorHandler = Callable[[Exception], None]


class Transport:
    """
    Bidirectional text-frame socket.

    Subclasses implement open/send/close and call the _notify_* helpers;
    _notify_close fires at most once per transport.
    """

    def __init__(self):
        self._on_message: Optional[MessageHandler] = None
        self._on_close: Optional[CloseHandler] = None
        self._on_error: Optional[ErrorHandler] = None
        self._close_notified = False

    def set_handlers(
        self,
        on_message: MessageHandler,
        on_close: CloseHandler,
        on_error: ErrorHandler,
    ) -> None:
        self._on_message = on_message
        self._on_close = on_close
        self._on_error = on_error

    def _notify_message(self, data: str) -> None:
        if self._on_message is not None:
            self._on_message(data)

    def _notify_error(self, error: Exception) -> None:
        if self._on_error is not None:
            self._on_error(error)

    def _notify_close(self, code: Optional[int], reason: str) -> None:
        if self._close_notified:
            return
        self._close_notified = True
        if self._on_close is not None:
            self._on_close(code, reason)

    @property
    def is_open(self) -> bool:
        raise NotImplementedError

    async def open(self) -> None:
        """Open the socket. Raises TransportError on failure."""
        raise NotImplementedError

    async def send(self, text: str) -> None:
        """Send one text frame. Raises TransportError on failure."""
        raise NotImplementedError

    async def close(self) -> None:
        """Close the socket and return once the close handler has run."""
        raise NotImplementedError


class AiohttpTransport(Transport):
    """Transport over aiohttp's client WebSocket."""

    def __init__(self, url: str, connect_timeout: float = 10.0):
        super().__init__()
        self._url = url
        self._connect_timeout = connect_timeout
        self._session: Optional[aiohttp.ClientSession] = None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._reader: Optional[asyncio.Task] = None

    @property
    def is_open(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def open(self) -> None:
        logger.info(f"Connecting to {self._url}")

        self._session = aiohttp.ClientSession()
        try:
            self._ws = await asyncio.wait_for(
                self._session.ws_connect(self._url),
                timeout=self._connect_timeout,
            )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            await self._close_session()
            raise TransportError(f"WebSocket connection failed: {e!r}") from e
        except asyncio.CancelledError:
            await self._close_session()
            raise

        self._reader = asyncio.create_task(self._read_loop())

    async def _read_loop(self) -> None:
        ws = self._ws
        try:
            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    self._notify_message(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.error(f"WebSocket error: {ws.exception()}")
                    self._notify_error(TransportError(f"WebSocket error: {ws.exception()}"))
                else:
                    logger.debug(f"Ignoring WebSocket message type {msg.type}")
        except aiohttp.ClientError as e:
            logger.error(f"Error receiving message: {e}")
            self._notify_error(TransportError(f"Error receiving message: {e}"))
        finally:
            if not ws.closed:
                await ws.close()
            await self._close_session()

            reason = ""
            exc = ws.exception()
            if exc is not None:
                reason = str(exc)
            logger.info(f"WebSocket closed (code={ws.close_code})")
            self._notify_close(ws.close_code, reason)

    async def send(self, text: str) -> None:
        if not self.is_open:
            raise TransportError("WebSocket is not open")
        try:
            await self._ws.send_str(text)
        except (aiohttp.ClientError, ConnectionResetError) as e:
            logger.error(f"Failed to send message: {e}")
            raise TransportError(f"Failed to send message: {e}") from e

    async def close(self) -> None:
        if self._ws is None:
            return

        if not self._ws.closed:
            try:
                await self._ws.close()
            except aiohttp.ClientError as e:
                logger.warning(f"Error closing WebSocket: {e}")

        if self._reader is not None and self._reader is not asyncio.current_task():
            await self._reader

    async def _close_session(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
