"""Shared message types and the typed message queue used by every actor."""
from __future__ import annotations

import queue
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, Generic, Tuple, TypeVar

PAINT = 1
ERASE = 0
IN = 1
OUT = 0

ON_BUS = 0
SIDEWALK = 7

BUS = 1
PASSENGER = 2
RUDE_PASSENGER = 3

DELAY = 0.2
"""Seconds each drawing step is held so it can be seen."""

T = TypeVar("T")


class QueueClosed(Exception):
    """Raised when a closed queue is used."""


@dataclass
class DrawRequest:
    """A request to the display server to draw or erase something.

    ``stop`` 0 is the bus and 7 the sidewalk; 1 to 6 are ordinary stops.
    For the bus, values of 10 and above mean "travelling" between stops.
    """

    kind: int
    pid: int
    stop: int
    inout: int = OUT
    paint: int = ERASE
    destination: int = 0


@dataclass
class BoardingRequest:
    """A passenger waiting at ``stop`` to travel to ``destination``."""

    stop: int
    pid: int
    destination: int
    rude: bool = False


@dataclass
class BusParams:
    capacity: int
    num_stops: int
    travel_time: int


@dataclass
class ClientParams:
    num_stops: int
    boredom_max: int
    boredom_min: int


class TypedQueue(Generic[T]):
    """A thread-safe queue whose messages carry a positive integer type.

    ``get`` with kind 0 takes the oldest message; a positive kind takes the
    oldest message of exactly that type; a negative kind takes the oldest
    message of the lowest type not above its absolute value.
    """

    def __init__(self) -> None:
        self._items: Deque[Tuple[int, T]] = deque()
        self._cond = threading.Condition()
        self._closed = False

    def __len__(self) -> int:
        with self._cond:
            return len(self._items)

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, kind: int, message: T) -> None:
        if kind < 1:
            raise ValueError(f"message type must be positive, got {kind}")
        with self._cond:
            if self._closed:
                raise QueueClosed("queue has been removed")
            self._items.append((kind, message))
            self._cond.notify_all()

    def get(self, kind: int = 0, block: bool = True) -> T:
        with self._cond:
            while True:
                if self._closed:
                    raise QueueClosed("queue has been removed")
                found, message = self._take(kind)
                if found:
                    return message
                if not block:
                    raise queue.Empty
                self._cond.wait()

    def close(self) -> None:
        """Remove the queue: pending messages are dropped, waiters woken."""
        with self._cond:
            self._closed = True
            self._items.clear()
            self._cond.notify_all()

    def _take(self, kind: int) -> Tuple[bool, T]:
        chosen = None
        if kind == 0:
            chosen = 0 if self._items else None
        elif kind > 0:
            chosen = next(
                (pos for pos, (k, _) in enumerate(self._items) if k == kind), None
            )
        else:
            limit = -kind
            best_type = None
            for pos, (k, _) in enumerate(self._items):
                if k <= limit and (best_type is None or k < best_type):
                    best_type, chosen = k, pos
        if chosen is None:
            return False, None  # type: ignore[return-value]
        _, message = self._items[chosen]
        del self._items[chosen]
        return True, message