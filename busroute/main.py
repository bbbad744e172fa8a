"""Entry point: reads the settings and runs the whole bus-route simulation."""
from __future__ import annotations

import argparse
import itertools
import queue
import random
import sys
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Sequence, TextIO

from .bus import Bus
from .common import (
    DELAY,
    BoardingRequest,
    BusParams,
    ClientParams,
    DrawRequest,
    TypedQueue,
)
from .display import DisplayServer
from .passenger import Passenger, RudePassenger

RUDE_PERCENT = 30
"""Chance, in percent, that a new passenger is a rude one."""

FINAL_WAIT = 2.0
"""Seconds the route keeps running after the last passenger finished."""

BUS_PID = 1
FIRST_PASSENGER_PID = 100


@dataclass
class Settings:
    """Everything that can be tuned before the simulation starts.

    ``speed`` divides travel times, creation intervals and drawing delays;
    ``terminal`` turns the curses display on; ``seed`` makes runs repeatable.
    """

    max_clients: int = 60
    create_min: int = 1
    create_max: int = 2
    num_stops: int = 6
    capacity: int = 4
    travel_time: int = 2
    boredom_max: int = 8
    boredom_min: int = 4
    terminal: bool = False
    speed: float = 1.0
    seed: Optional[int] = None

    @property
    def bus_params(self) -> BusParams:
        return BusParams(self.capacity, self.num_stops, self.travel_time)

    @property
    def client_params(self) -> ClientParams:
        return ClientParams(self.num_stops, self.boredom_max, self.boredom_min)

    def summary(self) -> str:
        return (
            "Valores de los parámetros...\n\n"
            f"Numero de pasajeros que se crearan: {self.max_clients}\n"
            "Intervalo de tiempo para crear nuevos pasajeros: "
            f"[{self.create_min}-{self.create_max}] \n"
            f"Número de paradas: {self.num_stops}\n"
            f"Capacidad del Bus: {self.capacity}\n"
            f"Tiempo en el trayecto entre paradas: {self.travel_time}\n"
            "Intervalo de tiempo de aburrimiento: "
            f"[{self.boredom_min}-{self.boredom_max}]\n"
        )


def _integers(stream: TextIO) -> Iterator[int]:
    for line in stream:
        for token in line.split():
            try:
                yield int(token)
            except ValueError:
                continue


def _next_int(numbers: Iterator[int]) -> int:
    try:
        return next(numbers)
    except StopIteration:
        raise EOFError("no more input while reading settings") from None


def _ask(
    numbers: Iterator[int], out: TextIO, prompt: str, valid: Callable[[int], bool]
) -> int:
    while True:
        out.write(prompt)
        value = _next_int(numbers)
        if valid(value):
            return value


def read_settings(stdin: TextIO, stdout: TextIO) -> Settings:
    """Show the current settings and let the user change them until accepted."""
    settings = Settings()
    numbers = _integers(stdin)
    while True:
        if stdout.isatty():
            stdout.write("\033[H\033[2J")
        stdout.write(settings.summary())
        stdout.write(
            "Pulse 0 si desea introducir nuevos valores, cualquier otro valor "
            "si desea continuar.\n"
        )
        stdout.flush()
        if _next_int(numbers) != 0:
            return settings

        settings.max_clients = _ask(
            numbers, stdout,
            "Numero de pasajeros que se crearan [maximo 50]:\n",
            lambda v: 0 < v <= 50,
        )
        settings.create_min = _ask(
            numbers, stdout,
            "Intervalo de tiempo para crear nuevos pasajeros MIN [entre 1 y 8]: \n",
            lambda v: 1 <= v <= 8,
        )
        settings.create_max = _ask(
            numbers, stdout,
            "Intervalo de tiempo para crear nuevos pasajeros MAX [entre 2 y 20]: \n",
            lambda v: 2 <= v <= 20 and v > settings.create_min,
        )
        settings.num_stops = _ask(
            numbers, stdout, "Número de paradas: \n", lambda v: 2 <= v <= 6
        )
        settings.capacity = _ask(
            numbers, stdout, "Capacidad del bus [maximo 10]: \n", lambda v: 0 < v <= 10
        )
        settings.travel_time = _ask(
            numbers, stdout,
            "Tiempo en el trayecto entre paradas [maximo 10]:\n",
            lambda v: 1 <= v <= 10,
        )
        settings.boredom_min = _ask(
            numbers, stdout,
            "Intervalo de tiempo en esperar para aburrirse MIN [entre 1 y 10]:\n",
            lambda v: 1 <= v <= 10,
        )
        settings.boredom_max = _ask(
            numbers, stdout,
            "Intervalo de tiempo en esperar para aburrirse MAX [entre 5 y 200]:\n",
            lambda v: 5 <= v <= 20 and settings.boredom_min <= v,
        )


class DisplayStartError(RuntimeError):
    """The display server could not be started."""


def run_simulation(settings: Settings) -> int:
    """Run the route until every passenger is done; return how many were expelled."""
    speed = settings.speed
    if speed <= 0:
        raise ValueError(f"speed must be positive, got {speed}")
    rng = random.Random(settings.seed)

    draw_queue: TypedQueue[DrawRequest] = TypedQueue()
    stop_queue: TypedQueue[BoardingRequest] = TypedQueue()
    exits: Dict[int, "queue.Queue[int]"] = {
        stop: queue.Queue() for stop in range(1, settings.num_stops + 1)
    }
    actors: Dict[int, object] = {}
    riders: Dict[int, Passenger] = {}

    def acknowledge(pid: int) -> None:
        actor = actors.get(pid)
        if actor is not None:
            actor.acknowledge()  # type: ignore[attr-defined]

    started = threading.Event()
    failures: List[BaseException] = []
    display = DisplayServer(
        draw_queue,
        acknowledge,
        settings.num_stops,
        on_ready=started.set,
        terminal=settings.terminal,
        delay=DELAY / speed,
    )

    def serve() -> None:
        try:
            display.run()
        except Exception as exc:  # reported to the caller below
            failures.append(exc)
            started.set()

    display_thread = threading.Thread(target=serve, name="display", daemon=True)
    display_thread.start()
    started.wait()
    if failures:
        raise DisplayStartError(str(failures[0])) from failures[0]

    params = settings.bus_params
    params.travel_time = settings.travel_time / speed  # type: ignore[assignment]
    bus = Bus(
        params,
        draw_queue,
        stop_queue,
        exits,
        riders,
        pid=BUS_PID,
        rng=random.Random(rng.getrandbits(64)),
        delay=DELAY / speed,
    )
    actors[BUS_PID] = bus
    expelled: List[int] = []
    bus_thread = threading.Thread(
        target=lambda: expelled.append(bus.run()), name="bus", daemon=True
    )
    bus_thread.start()

    passengers: List[threading.Thread] = []
    client_params = settings.client_params
    for pid in itertools.islice(itertools.count(FIRST_PASSENGER_PID), settings.max_clients):
        own_rng = random.Random(rng.getrandbits(64))
        passenger: Passenger
        if rng.randrange(100) < RUDE_PERCENT:
            passenger = RudePassenger(
                client_params, draw_queue, stop_queue, exits,
                pid=pid, rng=own_rng, settle=1.0 / speed,
            )
        else:
            passenger = Passenger(
                client_params, draw_queue, stop_queue, exits, pid=pid, rng=own_rng
            )
        actors[pid] = passenger
        riders[pid] = passenger
        thread = threading.Thread(target=passenger.run, name=f"passenger-{pid}", daemon=True)
        thread.start()
        passengers.append(thread)
        time.sleep(rng.randint(settings.create_min, settings.create_max) / speed)

    for thread in passengers:
        thread.join()
    time.sleep(FINAL_WAIT / speed)

    bus.stop()
    bus_thread.join()
    draw_queue.close()
    display_thread.join()
    return expelled[0] if expelled else bus.expelled


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="busroute", description="Simulate a bus route with passengers."
    )
    parser.add_argument(
        "--no-screen", action="store_true", help="run without the curses display"
    )
    parser.add_argument(
        "--speed", type=float, default=1.0, help="speed-up factor for all timings"
    )
    args = parser.parse_args(argv)

    try:
        settings = read_settings(sys.stdin, sys.stdout)
    except EOFError:
        print("Entrada terminada antes de leer los parámetros", file=sys.stderr)
        return 1
    settings.terminal = not args.no_screen
    settings.speed = args.speed
    try:
        expelled = run_simulation(settings)
    except DisplayStartError as exc:
        print(exc, file=sys.stderr)
        print("No es posible arrancar el servidor gráfico", file=sys.stderr)
        return 1
    print(f"Clientes maleducados expulsados: {expelled}")
    return 0


if __name__ == "__main__":
    sys.exit(main())