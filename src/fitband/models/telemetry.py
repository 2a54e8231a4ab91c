"""Wire models for the telemetry channel.

Attribute names are snake_case; the JSON exchanged with the backend uses
camelCase (``deviceId``, ``heartRate``, ...). Models accept either spelling
on input and :meth:`TelemetrySample.to_wire` emits camelCase.
"""

from __future__ import annotations

import dataclasses
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

_WIRE = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

DEFAULT_BATTERY = 0.95
MIN_BATTERY = 0.05


class Metrics(BaseModel):
    model_config = _WIRE

    heart_rate: int = Field(ge=0)
    steps_delta: int = Field(ge=0)
    calories_delta: float = Field(ge=0)
    battery: float = Field(ge=0, le=1)


class Motion(BaseModel):
    """Accelerometer noise sample; any axis may be missing on REST rows."""

    model_config = _WIRE

    ax: float | None = None
    ay: float | None = None
    az: float | None = None


class TelemetrySample(BaseModel):
    """One timestamped synthetic sensor reading."""

    model_config = _WIRE

    device_id: str = Field(min_length=1)
    timestamp: str
    message_id: str = Field(min_length=1)
    metrics: Metrics
    motion: Motion | None = None

    def to_wire(self) -> dict[str, Any]:
        """Return the camelCase JSON payload sent on the ``telemetry`` event."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class TelemetryBroadcast(BaseModel):
    """Backend relay of a sample to every viewer (``telemetry:new``)."""

    model_config = _WIRE

    device_id: str
    telemetry: TelemetrySample


class CommandName(StrEnum):
    START_SESSION = "startSession"
    STOP_SESSION = "stopSession"
    VIBRATE = "vibrate"


class Command(BaseModel):
    """Remote command pushed by the backend to the device owner."""

    model_config = ConfigDict(frozen=True)

    name: CommandName
    payload: dict[str, Any] | None = None


class JoinPayload(BaseModel):
    """Signed proof that the client holds the device secret."""

    model_config = _WIRE

    device_id: str
    timestamp: str
    signature: str

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclasses.dataclass(slots=True)
class DeviceState:
    """Generator-owned simulated device state.

    ``session_active`` is carried for the session commands but no generation
    step changes it.
    """

    battery: float = DEFAULT_BATTERY
    session_active: bool = False
    steps_total: int = 0

    def copy(self) -> DeviceState:
        return dataclasses.replace(self)
