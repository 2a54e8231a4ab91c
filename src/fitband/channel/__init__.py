"""Authenticated real-time telemetry channel (Socket.IO)."""

from __future__ import annotations

from fitband.channel.errors import (
    ChannelClosedError,
    ChannelError,
    ChannelTimeoutError,
    ChannelTransportError,
    SigningError,
)
from fitband.channel.registry import SubscriberRegistry
from fitband.channel.session import ChannelSession, ChannelState
from fitband.channel.signer import build_join_message, build_join_payload, sign_join

__all__ = [
    "ChannelClosedError",
    "ChannelError",
    "ChannelSession",
    "ChannelState",
    "ChannelTimeoutError",
    "ChannelTransportError",
    "SigningError",
    "SubscriberRegistry",
    "build_join_message",
    "build_join_payload",
    "sign_join",
]
