"""
Typed publish/subscribe registry shared by chat and token events.
"""

import asyncio
import inspect
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Set, Union

from chzzk_open.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Any]

_subscription_ids = itertools.count(1)


class EventName(str, Enum):
    """Recognized event names."""

    TOKEN_REFRESH = "tokenRefresh"
    TOKEN_EXPIRED = "tokenExpired"
    CHAT_MESSAGE = "chatMessage"
    CHAT_DONATION = "chatDonation"
    CHAT_SUBSCRIPTION = "chatSubscription"
    CHAT_NOTICE = "chatNotice"
    CHAT_ERROR = "chatError"
    CHAT_CONNECTED = "chatConnected"
    CHAT_DISCONNECTED = "chatDisconnected"


@dataclass(eq=False)
class Subscription:
    """One registered handler."""
    event: EventName
    handler: Handler
    once: bool = False
    subscription_id: int = field(default_factory=lambda: next(_subscription_ids))


class EventDispatcher:
    """
    Maps each event name to an ordered list of subscriptions.

    Handlers run synchronously, in registration order, on the emitting
    context. A handler that raises is logged and skipped. Coroutine
    handlers are scheduled on the running loop.
    """

    def __init__(self):
        self._subscriptions: Dict[EventName, List[Subscription]] = {
            name: [] for name in EventName
        }
        self._pending: Set[asyncio.Task] = set()

    @staticmethod
    def _resolve(event_name: Union[EventName, str]) -> EventName:
        try:
            return EventName(event_name)
        except ValueError:
            raise ConfigurationError(f"Unsupported event: {event_name}") from None

    def on(
        self,
        event_name: Union[EventName, str],
        handler: Handler,
    ) -> Callable[[], None]:
        """
        Register a handler.

        Returns:
            A callable that removes this handler again

        Raises:
            ConfigurationError: If event_name is not recognized
        """
        return self._add(event_name, handler, once=False)

    def once(
        self,
        event_name: Union[EventName, str],
        handler: Handler,
    ) -> Callable[[], None]:
        """Register a handler that removes itself after its first call."""
        return self._add(event_name, handler, once=True)

    def off(self, event_name: Union[EventName, str], handler: Handler) -> None:
        """Remove the first registration of handler, if any."""
        try:
            name = EventName(event_name)
        except ValueError:
            return

        for subscription in self._subscriptions[name]:
            if subscription.handler is handler:
                self._subscriptions[name].remove(subscription)
                return

    def _add(
        self,
        event_name: Union[EventName, str],
        handler: Handler,
        once: bool,
    ) -> Callable[[], None]:
        name = self._resolve(event_name)
        if not callable(handler):
            raise ConfigurationError(f"Handler for {name.value} is not callable")

        subscription = Subscription(event=name, handler=handler, once=once)
        self._subscriptions[name].append(subscription)
        logger.debug(
            f"Registered handler #{subscription.subscription_id} for {name.value}"
        )

        def unsubscribe() -> None:
            self._discard(subscription)

        return unsubscribe

    def _discard(self, subscription: Subscription) -> bool:
        registered = self._subscriptions[subscription.event]
        if subscription in registered:
            registered.remove(subscription)
            return True
        return False

    def handlers(self, event_name: Union[EventName, str]) -> List[Handler]:
        """Currently registered handlers, in registration order."""
        name = self._resolve(event_name)
        return [s.handler for s in self._subscriptions[name]]

    def emit(self, event_name: Union[EventName, str], data: Any = None) -> None:
        """Deliver data to every handler registered at call time."""
        name = self._resolve(event_name)

        for subscription in list(self._subscriptions[name]):
            if subscription.once and not self._discard(subscription):
                # already consumed by a re-entrant emit
                continue

            try:
                result = subscription.handler(data)
                if inspect.isawaitable(result):
                    self._schedule(name, result)
            except Exception as e:
                logger.error(
                    f"Error in event handler {name.value}: {e}", exc_info=True
                )

    def _schedule(self, name: EventName, awaitable) -> None:
        task = asyncio.ensure_future(awaitable)
        self._pending.add(task)

        def done(t: asyncio.Task) -> None:
            self._pending.discard(t)
            if t.cancelled():
                return
            exc = t.exception()
            if exc is not None:
                logger.error(
                    f"Error in event handler {name.value}: {exc}",
                    exc_info=exc,
                )

        task.add_done_callback(done)
