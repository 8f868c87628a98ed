"""Tests for chat frame parsing and event payloads."""

import json

import pytest

from chzzk_open.chat.models import (
    ChatDonation,
    ChatMessage,
    ChatNotice,
    ChatSubscription,
    FrameType,
    auth_frame,
    parse_frame,
    ping_frame,
)
from chzzk_open.exceptions import ProtocolError

RECEIVED_AT = 1_700_000_000_000


def test_parse_known_frame_types():
    for tag in ("CHAT", "DONATION", "SUBSCRIPTION", "NOTICE", "PONG"):
        frame = parse_frame(json.dumps({"type": tag}))
        assert frame.type == FrameType(tag)
        assert frame.raw_type == tag


def test_parse_unknown_frame_type():
    frame = parse_frame('{"type": "WHISPER", "content": "psst"}')

    assert frame.type == FrameType.UNKNOWN
    assert frame.raw_type == "WHISPER"
    assert frame.payload["content"] == "psst"


def test_parse_frame_without_type_is_unknown():
    assert parse_frame("{}").type == FrameType.UNKNOWN


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", '"CHAT"', ""])
def test_parse_malformed_frame(raw):
    with pytest.raises(ProtocolError) as exc_info:
        parse_frame(raw)

    assert exc_info.value.raw == raw


def test_outbound_frames():
    assert json.loads(auth_frame("tok", "c1")) == {
        "type": "AUTH",
        "token": "tok",
        "channelId": "c1",
    }
    assert json.loads(ping_frame()) == {"type": "PING"}


def test_chat_message_defaults():
    """Missing badges and timestamp are filled in."""
    message = ChatMessage.from_raw(
        {"type": "CHAT", "userId": "u1", "nickname": "n", "content": "hi"},
        "c1",
        RECEIVED_AT,
    )

    assert message.channel_id == "c1"
    assert message.user_id == "u1"
    assert message.nickname == "n"
    assert message.message == "hi"
    assert message.badges == []
    assert message.timestamp == RECEIVED_AT


def test_chat_message_keeps_server_values():
    message = ChatMessage.from_raw(
        {"userId": "u1", "content": "hi", "badges": ["vip"], "timestamp": 42},
        "c1",
        RECEIVED_AT,
    )

    assert message.badges == ["vip"]
    assert message.timestamp == 42
    assert message.nickname == ""


def test_unparsable_timestamp_falls_back_to_receipt_time():
    message = ChatMessage.from_raw(
        {"userId": "u1", "content": "hi", "timestamp": "2024-01-01T00:00:00Z"},
        "c1",
        RECEIVED_AT,
    )
    donation = ChatDonation.from_raw(
        {"amount": 500, "timestamp": "soon"}, "c1", RECEIVED_AT
    )

    assert message.message == "hi"
    assert message.timestamp == RECEIVED_AT
    assert donation.amount == 500
    assert donation.timestamp == RECEIVED_AT


def test_donation_defaults():
    donation = ChatDonation.from_raw(
        {"userId": "u1", "nickname": "n", "content": "gg", "amount": 1000},
        "c1",
        RECEIVED_AT,
    )

    assert donation.amount == 1000
    assert donation.currency == "KRW"
    assert donation.is_anonymous is False
    assert donation.badges == []
    assert donation.timestamp == RECEIVED_AT


def test_donation_anonymous_and_currency():
    donation = ChatDonation.from_raw(
        {"amount": "500", "currency": "USD", "isAnonymous": True},
        "c1",
        RECEIVED_AT,
    )

    assert donation.amount == 500
    assert donation.currency == "USD"
    assert donation.is_anonymous is True


def test_donation_with_bad_amount():
    with pytest.raises(ProtocolError):
        ChatDonation.from_raw({"amount": "lots"}, "c1", RECEIVED_AT)


def test_subscription_defaults():
    subscription = ChatSubscription.from_raw({"userId": "u1"}, "c1", RECEIVED_AT)

    assert subscription.months == 1
    assert subscription.tier == 1
    assert subscription.tier_name == "basic"
    assert subscription.message == ""


def test_subscription_values():
    subscription = ChatSubscription.from_raw(
        {"months": 12, "tier": 2, "tierName": "premium"},
        "c1",
        RECEIVED_AT,
    )

    assert (subscription.months, subscription.tier, subscription.tier_name) == (
        12,
        2,
        "premium",
    )


def test_notice_defaults():
    notice = ChatNotice.from_raw({"content": "welcome"}, "c1", RECEIVED_AT)

    assert notice.message == "welcome"
    assert notice.notice_type == "NORMAL"
    assert notice.timestamp == RECEIVED_AT


def test_badges_must_be_a_list():
    with pytest.raises(ProtocolError):
        ChatMessage.from_raw({"badges": "vip"}, "c1", RECEIVED_AT)
