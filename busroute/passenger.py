"""Passengers: wait at a stop, ride the bus or give up and walk."""
from __future__ import annotations

import logging
import queue
import random
import threading
from enum import Enum
from typing import Mapping, Optional, Tuple

from .common import (
    ERASE,
    IN,
    ON_BUS,
    OUT,
    PAINT,
    PASSENGER,
    RUDE_PASSENGER,
    SIDEWALK,
    BoardingRequest,
    ClientParams,
    DrawRequest,
    QueueClosed,
    TypedQueue,
)

log = logging.getLogger(__name__)


class Outcome(Enum):
    """How a passenger's trip ended."""

    ARRIVED = "arrived"
    WALKED = "walked"
    EXPELLED = "expelled"


def choose_stops(num_stops: int, rng: random.Random) -> Tuple[int, int]:
    """Pick a random origin and a different random destination in 1..num_stops."""
    if num_stops < 2:
        raise ValueError(f"need at least 2 stops, got {num_stops}")
    origin = rng.randrange(num_stops) + 1
    destination = rng.randrange(num_stops) + 1
    while destination == origin:
        destination = rng.randrange(num_stops) + 1
    return origin, destination


class Passenger:
    """Waits at a stop; gets bored after a random time and walks instead."""

    kind = PASSENGER
    rude = False

    def __init__(
        self,
        params: ClientParams,
        draw_queue: TypedQueue[DrawRequest],
        stop_queue: TypedQueue[BoardingRequest],
        exits: Mapping[int, "queue.Queue[int]"],
        *,
        pid: int,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.params = params
        self.draw_queue = draw_queue
        self.stop_queue = stop_queue
        self.exits = exits
        self.pid = pid
        self._rng = rng if rng is not None else random.Random()
        self.origin, self.destination = choose_stops(params.num_stops, self._rng)
        self._acked = threading.Event()
        self._picked = threading.Event()
        self._lock = threading.Lock()
        self._bored = False

    def acknowledge(self) -> None:
        """The display has drawn this passenger."""
        self._acked.set()

    def pick_up(self) -> bool:
        """The bus has arrived; True unless the passenger already walked off."""
        with self._lock:
            answer = not self._bored
            self._picked.set()
        return answer

    def _show(self, stop: int, inout: int, paint: int) -> None:
        self.draw_queue.put(
            self.kind,
            DrawRequest(self.kind, self.pid, stop, inout, paint, self.destination),
        )
        if paint == PAINT:
            self._acked.wait()
            self._acked.clear()

    def _queue_up(self) -> None:
        self._show(self.origin, IN, PAINT)
        request = BoardingRequest(self.origin, self.pid, self.destination, self.rude)
        try:
            self.stop_queue.put(self.origin, request)
        except QueueClosed:
            log.error("Error al escribir en la cola de paradas")

    def _ride(self, exit_channel: "queue.Queue[int]") -> Outcome:
        self._show(self.origin, IN, ERASE)
        self._show(ON_BUS, OUT, PAINT)
        exit_channel.get()
        self._show(ON_BUS, OUT, ERASE)
        self._show(self.destination, OUT, PAINT)
        return Outcome.ARRIVED

    def _walk(self) -> None:
        self._show(self.origin, IN, ERASE)
        self._show(SIDEWALK, OUT, PAINT)

    def run(self) -> Outcome:
        """Make the trip and report how it ended."""
        exit_channel = self.exits[self.destination]
        self._queue_up()
        patience = self._rng.randint(self.params.boredom_min, self.params.boredom_max)
        self._picked.wait(patience)
        with self._lock:
            boarded = self._picked.is_set()
            if not boarded:
                self._bored = True
        if boarded:
            return self._ride(exit_channel)
        self._walk()
        # Our request is still queued: wait for the bus to call so it learns we left.
        self._picked.wait()
        return Outcome.WALKED


class RudePassenger(Passenger):
    """Never gets bored, always tries to board, and may be thrown off."""

    kind = RUDE_PASSENGER
    rude = True

    def __init__(
        self,
        params: ClientParams,
        draw_queue: TypedQueue[DrawRequest],
        stop_queue: TypedQueue[BoardingRequest],
        exits: Mapping[int, "queue.Queue[int]"],
        *,
        pid: int,
        rng: Optional[random.Random] = None,
        settle: float = 1.0,
    ) -> None:
        super().__init__(params, draw_queue, stop_queue, exits, pid=pid, rng=rng)
        self._settle = settle
        self._expelled = threading.Event()

    def pick_up(self) -> bool:
        self._picked.set()
        return True

    def expel(self) -> None:
        """The bus driver throws this passenger off."""
        self._expelled.set()

    def run(self) -> Outcome:
        exit_channel = self.exits[self.destination]
        self._queue_up()
        self._picked.wait()
        if self._expelled.wait(self._settle):
            self._walk()
            return Outcome.EXPELLED
        return self._ride(exit_channel)