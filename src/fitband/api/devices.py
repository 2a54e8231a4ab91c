"""Device and telemetry-history operations.

Telemetry history rows come straight from the database layer, so numeric
columns arrive in several shapes: JSON numbers, numeric strings, or
serialised Decimal.js objects ``{"s": sign, "e": exponent, "d": digits}``.
:func:`parse_number` flattens all of them and :func:`row_to_sample` turns a
row into the same :class:`TelemetrySample` the live channel carries.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from fitband._internal.timeutil import iso_now, to_iso
from fitband.models.api import Device
from fitband.models.telemetry import Metrics, Motion, TelemetrySample

if TYPE_CHECKING:
    from fitband.api.client import FitbandClient

logger = logging.getLogger(__name__)

DEFAULT_TELEMETRY_LIMIT = 20


def parse_number(value: Any, default: float = 0.0) -> float:
    """Coerce a REST numeric value to ``float``, falling back to *default*."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int | float):
        return default if math.isnan(value) else float(value)
    if isinstance(value, dict) and {"s", "e", "d"} <= value.keys():
        try:
            digits = float("".join(str(d) for d in value["d"]))
            result = float(value["s"]) * digits * math.pow(10, float(value["e"]))
        except (TypeError, ValueError, OverflowError):
            return default
        return default if math.isnan(result) else result
    if isinstance(value, str):
        trimmed = value.strip()
        if trimmed in ("", "null", "undefined"):
            return default
        try:
            parsed = float(trimmed)
        except ValueError:
            return default
        return default if math.isnan(parsed) else parsed
    return default


def _optional_number(value: Any) -> float | None:
    return None if value is None else parse_number(value)


def parse_timestamp(ts_device: Any, ts_server: Any) -> str | None:
    """Prefer the device timestamp, then the server one."""
    for candidate in (ts_device, ts_server):
        if candidate is None:
            continue
        if hasattr(candidate, "isoformat"):
            return to_iso(candidate)
        if isinstance(candidate, str) and candidate.strip():
            return candidate
    return None


def row_to_sample(row: dict[str, Any]) -> TelemetrySample:
    """Convert one ``/telemetry/device/{id}`` row into a sample.

    Raises :class:`pydantic.ValidationError` for rows that cannot form a
    valid sample (e.g. negative step counts).
    """
    axes = {axis: _optional_number(row.get(axis)) for axis in ("ax", "ay", "az")}
    motion = Motion(**axes) if any(v is not None for v in axes.values()) else None
    return TelemetrySample(
        device_id=str(row.get("deviceId", "")),
        timestamp=parse_timestamp(row.get("tsDevice"), row.get("tsServer")) or iso_now(),
        message_id=row.get("messageId") or f"api-{row.get('id')}",
        metrics=Metrics(
            heart_rate=round(parse_number(row.get("heartRate"))),
            steps_delta=round(parse_number(row.get("stepsDelta"))),
            calories_delta=parse_number(row.get("caloriesDelta")),
            battery=parse_number(row.get("battery")),
        ),
        motion=motion,
    )


class DeviceAPI:
    """Device-related API operations (composition over FitbandClient)."""

    def __init__(self, client: FitbandClient) -> None:
        self._client = client

    async def list_devices(self) -> list[Device]:
        """Return every registered device."""
        data = await self._client.get("/devices")
        return [Device.model_validate(d) for d in data or []]

    async def get_my_device(self) -> Device:
        """Return the caller's own device, including its secret."""
        data = await self._client.get("/devices/my-device")
        return Device.model_validate(data)

    async def get_device(self, device_id: str) -> Device:
        data = await self._client.get(f"/devices/{device_id}")
        return Device.model_validate(data)

    async def get_device_telemetry(
        self,
        device_id: str,
        limit: int = DEFAULT_TELEMETRY_LIMIT,
    ) -> list[TelemetrySample]:
        """Fetch the most recent samples for *device_id*, newest first.

        Rows that cannot be normalised are skipped with a warning.
        """
        data = await self._client.get(f"/telemetry/device/{device_id}", params={"limit": limit})
        if not isinstance(data, list):
            if data is not None:
                logger.warning("Unexpected telemetry response for %s: %r", device_id, data)
            return []
        samples: list[TelemetrySample] = []
        for row in data:
            if not isinstance(row, dict):
                logger.warning("Skipping non-object telemetry row %r", row)
                continue
            try:
                samples.append(row_to_sample(row))
            except ValidationError:
                logger.warning("Skipping malformed telemetry row %r", row.get("id"))
        return samples
