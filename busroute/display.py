"""Display server: keeps the stop columns and draws them, plus the bus."""
from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from .common import (
    BUS,
    DELAY,
    ERASE,
    IN,
    ON_BUS,
    PAINT,
    SIDEWALK,
    DrawRequest,
    QueueClosed,
    TypedQueue,
)

MAX_CLIENTS = 50
MAX_STOPS = 8
HEIGHT = 25
WIDTH = 6

MIN_LINES = 40
MIN_COLS = 120

_PAIR_STOP_IN = 1
_PAIR_STOP_OUT = 2
_PAIR_BUS = 3
_PAIR_BACKGROUND = 4
_PAIR_BUS_DRAWING = 5
_PAIR_SIDEWALK = 6

_HEADER = (
    "       . Parada 1 .      . Parada 2 .      . Parada 3 ."
    "      . Parada 4 .      . Parada 5 .      . Parada 6 ."
)

log = logging.getLogger(__name__)

Sprite = List[Tuple[int, int, str]]


class DisplayError(RuntimeError):
    """The terminal cannot host the display."""


class ColumnFull(OverflowError):
    """A stop column has no room for another passenger."""


class NotInColumn(LookupError):
    """The passenger to remove is not in the column."""


class ClientEntry(NamedTuple):
    pid: int
    destination: int


class StopColumns:
    """One column of passengers per stop, each holding at most ``capacity``."""

    def __init__(self, stops: int = MAX_STOPS, capacity: int = MAX_CLIENTS) -> None:
        self.capacity = capacity
        self._columns: List[List[ClientEntry]] = [[] for _ in range(stops)]

    def _column(self, stop: int) -> List[ClientEntry]:
        if not 0 <= stop < len(self._columns):
            raise IndexError(f"stop {stop} out of range")
        return self._columns[stop]

    def insert(self, stop: int, pid: int, destination: int) -> None:
        column = self._column(stop)
        if len(column) >= self.capacity:
            raise ColumnFull(
                "No es posible incluir el proceso en el array ... desbordamiento"
            )
        column.append(ClientEntry(pid, destination))

    def remove(self, stop: int, pid: int) -> None:
        column = self._column(stop)
        for pos, entry in enumerate(column):
            if entry.pid == pid:
                del column[pos]
                return
        raise NotInColumn("Error, se intenta borrar un pid que no esta")

    def entries(self, stop: int) -> List[ClientEntry]:
        return list(self._column(stop))


def format_request(request: DrawRequest) -> str:
    """The text shown in the message panel for a received request."""
    return (
        "Recibido mensaje:\n"
        f"\t tipo: {request.kind}\n"
        f"\t pid: {request.pid}\n"
        f"\t parada: {request.stop}\n"
        f"\t in-out: {request.inout}\n"
        f"\t operacion: {request.paint}\n"
        f"\t destino: {request.destination}\n"
    )


def bus_sprite(position: int) -> Sprite:
    """Rows, columns and text of the bus drawing on the road.

    Below 10 the bus stands at that stop; otherwise it is travelling from
    stop ``position // 10`` and is drawn after stop ``position % 10``.
    """
    if position < 10:
        col = WIDTH * 3 * (position - 1) + WIDTH + WIDTH // 2
        lines = ["_____ ", "|- - \\", "######", " O  O "]
        first_row = 0
    else:
        col = WIDTH * 3 * (position % 10 - 1)
        lines = ["_____ ", "|- - \\", "######", " O  O"]
        first_row = 1
    return [(first_row + offset, col, text) for offset, text in enumerate(lines)]


def _label(entry: ClientEntry) -> str:
    return f"{entry.pid % 100:02d}-{entry.destination}"


def render_waiting(entries: List[ClientEntry]) -> str:
    """Waiting column text: the first passenger at the bottom, one per line."""
    visible = list(entries[:HEIGHT])
    visible += [None] * (HEIGHT - len(visible))
    return "".join(
        f" {_label(entry)}\n" if entry is not None else "\n"
        for entry in reversed(visible)
    )


def render_arrived(entries: List[ClientEntry], stop: int) -> str:
    """Arrival panel text; the sidewalk shows everyone, stops only the first rows."""
    shown = entries if stop == SIDEWALK else entries[:HEIGHT]
    return "".join(f" {_label(entry)} " for entry in shown)


class _Screen:
    """The curses layout: stops, bus, sidewalk, road and message panel."""

    def __init__(self, last_stop: int) -> None:
        import curses

        self._curses = curses
        self._stdscr = curses.initscr()
        try:
            curses.start_color()
            if not curses.has_colors():
                raise DisplayError("Esta terminal no tiene colores")
            if curses.LINES < MIN_LINES or curses.COLS < MIN_COLS:
                raise DisplayError(
                    f"Se necesitan, al menos {MIN_LINES} lineas y {MIN_COLS} "
                    f"columnas, y tienes {curses.LINES} lineas y "
                    f"{curses.COLS} columnas"
                )
            self._build(last_stop)
        except BaseException:
            curses.endwin()
            raise

    def _window(self, lines: int, cols: int, y: int, x: int, pair: int):
        curses = self._curses
        window = curses.newwin(lines, cols, y, x)
        window.bkgd(" ", curses.color_pair(pair))
        window.attron(curses.A_BOLD)
        window.refresh()
        return window

    def _build(self, last_stop: int) -> None:
        curses = self._curses
        self._stdscr.attron(curses.A_BOLD)
        self._stdscr.addstr(0, 0, _HEADER)
        self._stdscr.refresh()

        curses.init_pair(_PAIR_STOP_IN, curses.COLOR_WHITE, curses.COLOR_BLUE)
        curses.init_pair(_PAIR_STOP_OUT, curses.COLOR_RED, curses.COLOR_WHITE)
        curses.init_pair(_PAIR_BUS, curses.COLOR_WHITE, curses.COLOR_CYAN)
        curses.init_pair(_PAIR_BACKGROUND, curses.COLOR_WHITE, curses.COLOR_BLACK)
        curses.init_pair(_PAIR_BUS_DRAWING, curses.COLOR_YELLOW, curses.COLOR_BLACK)
        curses.init_pair(_PAIR_SIDEWALK, curses.COLOR_YELLOW, curses.COLOR_BLUE)

        self.waiting: Dict[int, object] = {}
        self.arrived: Dict[int, object] = {
            ON_BUS: self._window(6, WIDTH * 4, HEIGHT + 7, 30, _PAIR_BUS)
        }
        for stop in range(1, MAX_STOPS - 1):
            self.waiting[stop] = self._window(
                HEIGHT, WIDTH, 1, WIDTH * (3 * stop - 2) + 1, _PAIR_STOP_IN
            )
            self.arrived[stop] = self._window(
                HEIGHT, WIDTH, 1, WIDTH * (3 * stop - 1) + 1, _PAIR_STOP_OUT
            )
        self.arrived[SIDEWALK] = self._window(8, WIDTH * 8, HEIGHT + 7, 60, _PAIR_SIDEWALK)
        self.messages = self._window(6, 24, HEIGHT + 7, 1, _PAIR_BACKGROUND)
        self.road = self._window(
            5, WIDTH * 3 * (MAX_STOPS - 1), HEIGHT + 1, 1, _PAIR_BUS_DRAWING
        )

        for stop in range(last_stop + 1, MAX_STOPS - 1):
            for window in (self.waiting[stop], self.arrived[stop]):
                window.bkgd(" ", curses.color_pair(_PAIR_BACKGROUND))
                window.erase()
                window.refresh()

    def _write(self, window, text: str, pair: int) -> None:
        curses = self._curses
        window.erase()
        try:
            window.addstr(text, curses.color_pair(pair) | curses.A_BOLD)
        except curses.error:
            pass
        window.refresh()

    def message(self, text: str) -> None:
        self._write(self.messages, text, _PAIR_BACKGROUND)

    def show_waiting(self, stop: int, text: str) -> None:
        window = self.waiting.get(stop)
        if window is not None:
            self._write(window, text, _PAIR_STOP_IN)

    def show_arrived(self, stop: int, text: str) -> None:
        window = self.arrived.get(stop)
        if window is None:
            return
        if stop == ON_BUS:
            pair = _PAIR_BUS
        elif stop == SIDEWALK:
            pair = _PAIR_SIDEWALK
        else:
            pair = _PAIR_STOP_OUT
        self._write(window, text, pair)

    def show_bus(self, sprite: Sprite) -> None:
        curses = self._curses
        self.road.erase()
        for row, col, text in sprite:
            try:
                self.road.addstr(row, col, text)
            except curses.error:
                pass
        self.road.refresh()

    def close(self) -> None:
        self._curses.endwin()


class DisplayServer:
    """Serves draw requests from a queue, acknowledging each drawn item.

    The drawn state is kept in ``message``, ``bus``, ``waiting_view`` and
    ``arrived_view``; with ``terminal=True`` it is also drawn with curses.
    """

    def __init__(
        self,
        queue: TypedQueue,
        acknowledge: Callable[[int], None],
        last_stop: int = 6,
        *,
        on_ready: Optional[Callable[[], None]] = None,
        terminal: bool = False,
        delay: float = DELAY,
    ) -> None:
        self.queue = queue
        self.last_stop = last_stop
        self.waiting = StopColumns()
        self.arrived = StopColumns()
        self.message = ""
        self.bus: Sprite = []
        self.waiting_view: Dict[int, str] = {}
        self.arrived_view: Dict[int, str] = {}
        self._acknowledge = acknowledge
        self._on_ready = on_ready
        self._terminal = terminal
        self._delay = delay
        self._screen: Optional[_Screen] = None

    def handle(self, request: DrawRequest) -> None:
        self.message = format_request(request)
        if self._screen:
            self._screen.message(self.message)

        if request.kind == BUS:
            self.bus = bus_sprite(request.stop)
            if self._screen:
                self._screen.show_bus(self.bus)
            self._acknowledge(request.pid)
            return

        columns = self.waiting if request.inout == IN else self.arrived
        if request.paint == PAINT:
            try:
                columns.insert(request.stop, request.pid, request.destination)
            except ColumnFull as exc:
                log.warning("%s", exc)
            else:
                self._acknowledge(request.pid)
        elif request.paint == ERASE:
            try:
                columns.remove(request.stop, request.pid)
            except NotInColumn as exc:
                log.warning("%s", exc)

        if request.inout == IN:
            text = render_waiting(self.waiting.entries(request.stop))
            self.waiting_view[request.stop] = text
            if self._screen:
                self._screen.show_waiting(request.stop, text)
        else:
            text = render_arrived(self.arrived.entries(request.stop), request.stop)
            self.arrived_view[request.stop] = text
            if self._screen:
                self._screen.show_arrived(request.stop, text)

    def run(self) -> None:
        """Serve requests until the queue is closed."""
        if self._terminal:
            self._screen = _Screen(self.last_stop)
        try:
            if self._on_ready:
                self._on_ready()
            while True:
                try:
                    request = self.queue.get(0)
                except QueueClosed:
                    break
                time.sleep(self._delay)
                self.handle(request)
        finally:
            if self._screen:
                self._screen.close()
                self._screen = None