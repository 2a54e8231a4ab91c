"""Synthetic fitness-band telemetry.

Each call to :meth:`TelemetryGenerator.generate_telemetry` flips an activity
coin, derives steps, calories and heart rate from it, drains the battery a
little and adds accelerometer noise. Cumulative state (battery, total steps)
lives on the generator and is only reset explicitly.
"""

from __future__ import annotations

import logging
import math
import random
import uuid

from fitband._internal.timeutil import iso_now
from fitband.models.telemetry import (
    DEFAULT_BATTERY,
    MIN_BATTERY,
    DeviceState,
    Metrics,
    Motion,
    TelemetrySample,
)

logger = logging.getLogger(__name__)

_ACTIVE_PROBABILITY = 0.5

_STEPS_MEAN = 3.0
_STEPS_STDDEV = 2.0
_CALORIES_PER_STEP = 0.04

_BATTERY_DRAIN_MIN = 0.0002
_BATTERY_DRAIN_SPAN = 0.0008

_HEART_RATE_ACTIVE = 110.0
_HEART_RATE_RESTING = 70.0
_HEART_RATE_STDDEV = 10.0
_HEART_RATE_MIN = 60
_HEART_RATE_MAX = 180

# Per-axis accelerometer noise (ax, ay, az).
_MOTION_STDDEV = (0.05, 0.06, 0.05)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


class TelemetryGenerator:
    """Stateful producer of :class:`TelemetrySample` values.

    Not safe for concurrent mutation: callers driving it from several tasks
    must serialise calls. Pass *rng* to make output reproducible.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()
        self._state = DeviceState()

    def _random_normal(self, mu: float, sigma: float) -> float:
        """Box-Muller transform over two uniforms in (0, 1]."""
        u = 1.0 - self._rng.random()
        v = 1.0 - self._rng.random()
        return mu + sigma * math.sqrt(-2.0 * math.log(u)) * math.cos(2.0 * math.pi * v)

    def generate_telemetry(self, device_id: str) -> TelemetrySample:
        """Produce one sample for *device_id* and advance the device state."""
        active = self._rng.random() < _ACTIVE_PROBABILITY
        steps_delta = (
            max(0, _round_half_up(self._random_normal(_STEPS_MEAN, _STEPS_STDDEV)))
            if active
            else 0
        )
        self._state.steps_total += steps_delta

        drain = self._rng.random() * _BATTERY_DRAIN_SPAN + _BATTERY_DRAIN_MIN
        self._state.battery = max(MIN_BATTERY, self._state.battery - drain)

        base = _HEART_RATE_ACTIVE if active else _HEART_RATE_RESTING
        heart_rate = _round_half_up(base + self._random_normal(0.0, _HEART_RATE_STDDEV))
        heart_rate = max(_HEART_RATE_MIN, min(_HEART_RATE_MAX, heart_rate))

        ax, ay, az = (round(self._random_normal(0.0, sigma), 3) for sigma in _MOTION_STDDEV)

        sample = TelemetrySample(
            device_id=device_id,
            timestamp=iso_now(),
            message_id=str(uuid.uuid4()),
            metrics=Metrics(
                heart_rate=heart_rate,
                steps_delta=steps_delta,
                calories_delta=round(steps_delta * _CALORIES_PER_STEP, 3),
                battery=round(self._state.battery, 3),
            ),
            motion=Motion(ax=ax, ay=ay, az=az),
        )
        logger.debug(
            "Generated sample %s: hr=%d steps=%d battery=%.3f",
            sample.message_id,
            heart_rate,
            steps_delta,
            self._state.battery,
        )
        return sample

    def get_device_state(self) -> DeviceState:
        """Return a copy of the current device state."""
        return self._state.copy()

    def reset_state(self) -> None:
        """Restore the freshly-charged, idle defaults."""
        self._state = DeviceState(battery=DEFAULT_BATTERY, session_active=False, steps_total=0)
