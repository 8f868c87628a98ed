"""Tests for the event dispatcher."""

import asyncio
import logging

import pytest

from chzzk_open.events import EventDispatcher, EventName
from chzzk_open.exceptions import ConfigurationError

from .fakes import Recorder, settle


def test_emit_calls_handlers_in_registration_order():
    """Handlers run in the order they were registered."""
    events = EventDispatcher()
    calls = []

    events.on("chatMessage", lambda data: calls.append(("first", data)))
    events.on(EventName.CHAT_MESSAGE, lambda data: calls.append(("second", data)))

    events.emit(EventName.CHAT_MESSAGE, "hello")

    assert calls == [("first", "hello"), ("second", "hello")]


def test_unknown_event_name_is_rejected():
    """Registering against an unknown name raises immediately."""
    events = EventDispatcher()

    with pytest.raises(ConfigurationError):
        events.on("chatWhisper", lambda data: None)

    with pytest.raises(ConfigurationError):
        events.once("nope", lambda data: None)


def test_off_removes_first_matching_handler_only():
    events = EventDispatcher()
    recorder = Recorder()

    events.on("chatNotice", recorder)
    events.on("chatNotice", recorder)
    events.off("chatNotice", recorder)

    events.emit("chatNotice", 1)

    assert recorder.events == [1]


def test_off_absent_handler_is_noop():
    events = EventDispatcher()
    events.off("chatNotice", lambda data: None)
    events.off("notAnEvent", lambda data: None)

    assert events.handlers("chatNotice") == []


def test_on_returns_unsubscribe():
    events = EventDispatcher()
    recorder = Recorder()

    unsubscribe = events.on("chatError", recorder)
    events.emit("chatError", "a")
    unsubscribe()
    events.emit("chatError", "b")

    assert recorder.events == ["a"]


def test_emit_matches_registered_set_after_on_off_sequence():
    """Only the handlers registered at emit time are invoked."""
    events = EventDispatcher()
    calls = []
    handlers = [lambda data, i=i: calls.append(i) for i in range(4)]

    for handler in handlers:
        events.on("chatMessage", handler)
    events.off("chatMessage", handlers[1])
    events.off("chatMessage", handlers[3])
    events.on("chatMessage", handlers[1])

    events.emit("chatMessage", None)

    assert calls == [0, 2, 1]


def test_handler_added_during_emit_waits_for_next_emit():
    events = EventDispatcher()
    late = Recorder()

    def register_late(data):
        events.on("chatMessage", late)

    events.once("chatMessage", register_late)
    events.emit("chatMessage", 1)
    events.emit("chatMessage", 2)

    assert late.events == [2]


def test_once_fires_at_most_once():
    events = EventDispatcher()
    recorder = Recorder()

    events.once("chatConnected", recorder)
    for i in range(3):
        events.emit("chatConnected", i)

    assert recorder.events == [0]
    assert events.handlers("chatConnected") == []


def test_once_survives_reentrant_emit():
    """A once handler that triggers the same event is not called twice."""
    events = EventDispatcher()
    calls = []

    def handler(data):
        calls.append(data)
        events.emit("chatNotice", data + 1)

    events.once("chatNotice", handler)
    events.emit("chatNotice", 0)

    assert calls == [0]


def test_once_unsubscribe_before_emit():
    events = EventDispatcher()
    recorder = Recorder()

    unsubscribe = events.once("chatDonation", recorder)
    unsubscribe()
    events.emit("chatDonation", 1)

    assert len(recorder) == 0


def test_raising_handler_does_not_block_others(caplog):
    """A failing subscriber is logged and the rest still receive the event."""
    events = EventDispatcher()
    recorder = Recorder()

    def broken(data):
        raise RuntimeError("boom")

    events.on("chatMessage", broken)
    events.on("chatMessage", recorder)

    with caplog.at_level(logging.ERROR, logger="chzzk_open.events"):
        events.emit("chatMessage", "payload")

    assert recorder.events == ["payload"]
    assert "boom" in caplog.text


def test_dispatchers_are_isolated():
    first = EventDispatcher()
    second = EventDispatcher()
    recorder = Recorder()

    first.on("tokenRefresh", recorder)
    second.emit("tokenRefresh", {})

    assert len(recorder) == 0


@pytest.mark.asyncio
async def test_coroutine_handler_is_scheduled():
    events = EventDispatcher()
    received = []

    async def handler(data):
        await asyncio.sleep(0)
        received.append(data)

    events.on("chatMessage", handler)
    events.emit("chatMessage", "async")
    await settle()

    assert received == ["async"]


@pytest.mark.asyncio
async def test_failing_coroutine_handler_is_logged(caplog):
    events = EventDispatcher()

    async def handler(data):
        raise ValueError("async boom")

    events.on("chatMessage", handler)
    with caplog.at_level(logging.ERROR, logger="chzzk_open.events"):
        events.emit("chatMessage", None)
        await settle()

    assert "async boom" in caplog.text
