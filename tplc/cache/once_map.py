"""
Thread-safe memo with get-or-insert-compute semantics.

The first caller for a key computes the value outside the lock while
concurrent callers for the same key wait for it. Successful values are
retained until clear(), and a compute still running when clear() is
called does not store its value. Failures are never stored, so the next caller
for that key computes again.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Generic, Hashable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class _InFlight:
    """A computation in progress for one key."""

    __slots__ = ("done",)

    def __init__(self) -> None:
        self.done = threading.Event()


class OnceMap(Generic[K, V]):
    """
    Content-addressed store: at most one retained value per key.

    Requests for different keys never wait on each other; the internal
    lock is only held for dictionary bookkeeping.
    """

    def __init__(self, name: str = "once-map"):
        self._name = name
        self._lock = threading.Lock()
        self._values: Dict[K, V] = {}
        self._pending: Dict[K, _InFlight] = {}

    def get_or_try_insert(self, key: K, compute: Callable[[K], V]) -> V:
        """
        Return the value stored for key, computing it on first request.

        Args:
            key: Hashable cache key
            compute: Called with the key by exactly one caller at a time

        Returns:
            The shared value (the identical object for every caller)

        Raises:
            Whatever compute raises, only to the caller that ran it
        """
        while True:
            with self._lock:
                if key in self._values:
                    logger.debug("%s: hit", self._name)
                    return self._values[key]
                waiting = self._pending.get(key)
                if waiting is None:
                    flight = _InFlight()
                    self._pending[key] = flight
                    break

            # Another caller is computing this key: wait, then look again.
            # If it failed nothing was stored and one waiter takes over.
            waiting.done.wait()

        logger.debug("%s: miss, computing", self._name)
        try:
            value = compute(key)
        except BaseException:
            with self._lock:
                if self._pending.get(key) is flight:
                    del self._pending[key]
            flight.done.set()
            raise

        with self._lock:
            # A clear() during the compute unregisters the flight; the value
            # then goes to this caller only.
            if self._pending.get(key) is flight:
                self._values[key] = value
                del self._pending[key]
            else:
                logger.debug("%s: cleared while computing, not stored", self._name)
        flight.done.set()
        return value

    def get(self, key: K) -> Optional[V]:
        with self._lock:
            return self._values.get(key)

    def values(self) -> List[V]:
        """Snapshot of the stored values."""
        with self._lock:
            return list(self._values.values())

    def clear(self) -> None:
        """Drop stored values; computations still running will not store theirs."""
        with self._lock:
            self._values.clear()
            self._pending.clear()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._values

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)


__all__ = ["OnceMap"]
