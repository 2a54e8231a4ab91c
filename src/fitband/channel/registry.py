"""Ordered subscriber registry for inbound channel events.

Multiplexes one inbound event to N callbacks, each error-isolated. One
callback failing does not affect the others.
"""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from fitband._internal.async_utils import maybe_await

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SubscriberRegistry(Generic[T]):
    """Callbacks in subscription order, each removable through its own handle."""

    def __init__(self, name: str = "event") -> None:
        self._name = name
        self._subscribers: list[tuple[int, Callable[[T], Any]]] = []
        self._ids = itertools.count()

    def subscribe(self, callback: Callable[[T], Any]) -> Callable[[], None]:
        """Register *callback* and return a function that removes it.

        The returned function only removes this registration, even when the
        same callback was subscribed more than once, and may be called
        repeatedly.
        """
        token = next(self._ids)
        self._subscribers.append((token, callback))

        def _unsubscribe() -> None:
            self._subscribers = [entry for entry in self._subscribers if entry[0] != token]

        return _unsubscribe

    def clear(self) -> None:
        """Remove every subscriber."""
        self._subscribers = []

    def __len__(self) -> int:
        return len(self._subscribers)

    async def dispatch(self, item: T) -> None:
        """Deliver *item* to every subscriber registered at call time.

        Plain functions and coroutine functions are both accepted. A raising
        callback is logged and the remaining callbacks still run.
        """
        for _token, callback in list(self._subscribers):
            try:
                await maybe_await(callback(item))
            except Exception:
                logger.warning("%s subscriber %r failed", self._name, callback, exc_info=True)
