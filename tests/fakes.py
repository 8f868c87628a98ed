"""Test doubles: manual clock, in-memory transport, scripted HTTP."""

import asyncio
import json

from chzzk_open.chat.transport import Transport
from chzzk_open.exceptions import TransportError


async def settle(rounds: int = 20):
    """Let ready tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ManualClock:
    """Drop-in for asyncio.sleep and time.time that only moves on advance()."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start
        self.sleeps = []
        self._waiters = []

    def time(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        waiter = (self.now + delay, asyncio.get_running_loop().create_future())
        self._waiters.append(waiter)
        try:
            await waiter[1]
        finally:
            if waiter in self._waiters:
                self._waiters.remove(waiter)

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        await settle()
        while True:
            due = [w for w in self._waiters if w[0] <= target and not w[1].done()]
            if not due:
                break
            deadline, future = min(due, key=lambda w: w[0])
            self.now = max(self.now, deadline)
            future.set_result(None)
            await settle()
        self.now = target

    @property
    def pending(self) -> int:
        return sum(1 for _, future in self._waiters if not future.done())


class FakeTransport(Transport):
    def __init__(self, fail_open: bool = False):
        super().__init__()
        self.fail_open = fail_open
        self.opened = False
        self.closed = False
        self.stalled = False
        self.sent = []

    @property
    def is_open(self) -> bool:
        return self.opened and not self.closed and not self.stalled

    async def open(self) -> None:
        if self.fail_open:
            raise TransportError("connection refused")
        self.opened = True

    async def send(self, text: str) -> None:
        if not self.is_open:
            raise TransportError("not open")
        self.sent.append(json.loads(text))

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._notify_close(1000, "normal closure")

    # server side

    def receive(self, payload) -> None:
        text = payload if isinstance(payload, str) else json.dumps(payload)
        self._notify_message(text)

    def drop(self, code: int = 1006, reason: str = "abnormal closure") -> None:
        self.closed = True
        self._notify_close(code, reason)

    def fail(self, error: Exception) -> None:
        self._notify_error(error)

    def frames(self, frame_type: str):
        return [f for f in self.sent if f.get("type") == frame_type]


class TransportFactory:
    def __init__(self):
        self.created = []
        self.fail_open = False

    def __call__(self) -> FakeTransport:
        transport = FakeTransport(fail_open=self.fail_open)
        self.created.append(transport)
        return transport

    @property
    def last(self) -> FakeTransport:
        return self.created[-1]

    @property
    def live(self):
        return [t for t in self.created if t.is_open]


class FakeTokenFetcher:
    def __init__(self, error: Exception = None):
        self.calls = []
        self.error = error

    async def __call__(self, channel_id: str) -> str:
        self.calls.append(channel_id)
        if self.error is not None:
            raise self.error
        return f"chat-token-{len(self.calls)}"


class FakeHttp:
    """Replays scripted responses; exceptions in the script are raised."""

    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.calls = []

    async def request(
        self,
        method,
        path,
        *,
        headers=None,
        params=None,
        json_body=None,
        action="",
    ):
        self.calls.append({
            "method": method,
            "path": path,
            "headers": dict(headers or {}),
            "params": params,
            "json": json_body,
        })
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self):
        pass


class Recorder:
    """Event handler that remembers what it was given."""

    def __init__(self):
        self.events = []

    def __call__(self, data):
        self.events.append(data)

    def __len__(self):
        return len(self.events)

    @property
    def last(self):
        return self.events[-1]
