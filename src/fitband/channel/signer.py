"""HMAC-SHA256 join signing for the telemetry channel.

Signing flow:

1. ``message = f"{device_id}:{timestamp}"`` (ISO-8601 timestamp)
2. ``signature = hex(HMAC-SHA256(secret, message))``, lowercase
3. Send ``{deviceId, timestamp, signature}`` as the ``join`` event

The backend recomputes the tag with the secret registered for the device.
The secret itself never leaves the client.
"""

from __future__ import annotations

import hashlib
import hmac

from fitband._internal.timeutil import iso_now
from fitband.channel.errors import SigningError
from fitband.models.telemetry import JoinPayload


def build_join_message(device_id: str, timestamp: str) -> str:
    """Return the colon-joined string that gets signed."""
    return f"{device_id}:{timestamp}"


def sign_join(secret: str, message: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of *message* keyed by *secret*.

    Raises :class:`SigningError` if the secret is empty or not text.
    """
    if not isinstance(secret, str) or not secret:
        raise SigningError("Device secret must be a non-empty string")
    try:
        key = secret.encode("utf-8")
        data = message.encode("utf-8")
    except (AttributeError, UnicodeEncodeError) as exc:
        raise SigningError(f"Cannot encode join payload: {exc}") from exc
    return hmac.new(key, data, hashlib.sha256).hexdigest()


def build_join_payload(
    device_id: str,
    secret: str,
    timestamp: str | None = None,
) -> JoinPayload:
    """Build the signed ``join`` payload for *device_id*.

    *timestamp* defaults to the current time.
    """
    ts = timestamp or iso_now()
    signature = sign_join(secret, build_join_message(device_id, ts))
    return JoinPayload(device_id=device_id, timestamp=ts, signature=signature)


def verify_join_signature(secret: str, payload: JoinPayload) -> bool:
    """Return True if *payload* carries a valid signature for *secret*."""
    try:
        expected = sign_join(secret, build_join_message(payload.device_id, payload.timestamp))
    except SigningError:
        return False
    return hmac.compare_digest(expected, payload.signature)
