"""The bus: drives round the stops, dropping off and picking up passengers."""
from __future__ import annotations

import logging
import queue
import random
import threading
from typing import Dict, Mapping, Optional, Protocol

from .common import (
    BUS,
    DELAY,
    BoardingRequest,
    BusParams,
    DrawRequest,
    QueueClosed,
    TypedQueue,
)

log = logging.getLogger(__name__)

TOKEN = 1
"""What the bus drops into a stop's exit channel for each passenger leaving."""


class Rider(Protocol):
    """What the bus needs from a waiting passenger."""

    def pick_up(self) -> bool:
        """Tell the passenger the bus is here; True if they get on."""

    def expel(self) -> None:
        """Throw the passenger off before the bus leaves."""


class BusStopped(Exception):
    """The bus has been told to stop its rounds."""


def travel_position(stop: int, num_stops: int) -> int:
    """Road position drawn while the bus travels on from ``stop``."""
    if stop == num_stops:
        return stop * 10 + 1
    return stop * 10 + stop + 1


class Bus:
    """Goes round stops 1..``num_stops`` until :meth:`stop` is called.

    ``exits`` maps each stop to the channel where a token is dropped for
    every passenger leaving there; ``riders`` maps passenger ids to the
    passengers the bus calls when it picks them up.
    """

    def __init__(
        self,
        params: BusParams,
        draw_queue: TypedQueue[DrawRequest],
        stop_queue: TypedQueue[BoardingRequest],
        exits: Mapping[int, "queue.Queue[int]"],
        riders: Mapping[int, Rider],
        *,
        pid: int = 1,
        rng: Optional[random.Random] = None,
        delay: float = DELAY,
    ) -> None:
        self.params = params
        self.draw_queue = draw_queue
        self.stop_queue = stop_queue
        self.exits = exits
        self.riders = riders
        self.pid = pid
        self.delay = delay
        self.free = params.capacity
        self.onboard: Dict[int, int] = {
            stop: 0 for stop in range(1, params.num_stops + 1)
        }
        self.expelled = 0
        self._rng = rng if rng is not None else random.Random()
        self._acked = threading.Event()
        self._stopping = threading.Event()

    def acknowledge(self) -> None:
        """The display has drawn the bus."""
        self._acked.set()

    def stop(self) -> None:
        """End the rounds as soon as the bus is next waiting."""
        self._stopping.set()
        self._acked.set()

    def _pause(self, seconds: float) -> None:
        if self._stopping.wait(seconds):
            raise BusStopped

    def _show(self, position: int) -> None:
        self.draw_queue.put(BUS, DrawRequest(BUS, self.pid, position))
        self._acked.wait()
        self._acked.clear()
        if self._stopping.is_set():
            raise BusStopped

    def _drop_off(self, stop: int) -> None:
        exit_channel = self.exits[stop]
        for _ in range(self.onboard[stop]):
            exit_channel.put(TOKEN)
            self.free += 1
            self._pause(self.delay)
        self.onboard[stop] = 0

    def _board(self, stop: int) -> None:
        while self.free > 0:
            try:
                request = self.stop_queue.get(stop, block=False)
            except queue.Empty:
                return
            try:
                rider = self.riders[request.pid]
            except KeyError:
                log.error("No se puede enviar kill a cliente %d", request.pid)
                continue
            if not rider.pick_up():
                continue
            if request.rude and self._rng.randrange(2) == 0:
                self.expelled += 1
                rider.expel()
            else:
                self.free -= 1
                self.onboard[request.destination] += 1
                self._pause(self.delay)

    def visit(self, stop: int) -> None:
        """Stop at ``stop``, let people off and on, then drive on."""
        self._show(stop)
        self._drop_off(stop)
        self._board(stop)
        self._show(travel_position(stop, self.params.num_stops))
        self._pause(self.params.travel_time)

    def run(self) -> int:
        """Drive until stopped; return how many rude passengers were thrown off."""
        try:
            while True:
                for stop in range(1, self.params.num_stops + 1):
                    self.visit(stop)
        except (BusStopped, QueueClosed):
            pass
        finally:
            self.stop_queue.close()
        return self.expelled