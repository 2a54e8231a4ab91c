"""Bounded, newest-first logs backing the device screen."""

from __future__ import annotations

from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from fitband.models.telemetry import Command, TelemetrySample

T = TypeVar("T")

TELEMETRY_LOG_SIZE = 20
COMMAND_LOG_SIZE = 10


class BoundedLog(Generic[T]):
    """Keeps the *capacity* most recent entries, newest first."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._entries: list[T] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    def push(self, entry: T) -> bool:
        """Prepend *entry*, dropping the oldest beyond capacity."""
        self._entries = [entry, *self._entries][: self._capacity]
        return True

    def replace(self, entries: Iterable[T]) -> None:
        """Swap the whole log for *entries* (already newest first)."""
        self._entries = list(entries)[: self._capacity]

    def clear(self) -> None:
        self._entries = []

    def entries(self) -> list[T]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[T]:
        return iter(list(self._entries))


class TelemetryLog(BoundedLog["TelemetrySample"]):
    """Sample log shared by the live (socket) and polled (REST) paths.

    Entries are unique by ``message_id``: the owner's own sample echoed back
    by the backend does not appear twice.
    """

    def __init__(self, capacity: int = TELEMETRY_LOG_SIZE) -> None:
        super().__init__(capacity)

    def push(self, entry: TelemetrySample) -> bool:
        """Prepend *entry*; returns False when it is already present."""
        if any(e.message_id == entry.message_id for e in self._entries):
            return False
        return super().push(entry)

    def replace(self, entries: Iterable[TelemetrySample]) -> None:
        seen: set[str] = set()
        unique: list[TelemetrySample] = []
        for entry in entries:
            if entry.message_id in seen:
                continue
            seen.add(entry.message_id)
            unique.append(entry)
        super().replace(unique)


class CommandLog(BoundedLog["Command"]):
    def __init__(self, capacity: int = COMMAND_LOG_SIZE) -> None:
        super().__init__(capacity)
