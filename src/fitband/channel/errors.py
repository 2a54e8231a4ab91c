"""Failures raised by :meth:`ChannelSession.connect`.

Every failure is local to one connection attempt; a fresh ``connect()``
recovers from any of them.
"""

from __future__ import annotations


class ChannelError(Exception):
    """Failed to establish or keep a joined telemetry channel."""


class ChannelTimeoutError(ChannelError):
    """No ``joined`` acknowledgment arrived before the deadline."""


class ChannelTransportError(ChannelError):
    """The transport reported ``connect_error`` or ``error``."""


class ChannelClosedError(ChannelError):
    """The connection was closed while the join was still pending."""


class SigningError(ChannelError):
    """The join payload could not be signed; nothing was sent."""
