import threading

import pytest

from busroute.common import (
    BUS,
    ERASE,
    IN,
    OUT,
    PAINT,
    PASSENGER,
    RUDE_PASSENGER,
    SIDEWALK,
    DrawRequest,
    TypedQueue,
)
from busroute.display import (
    HEIGHT,
    MAX_CLIENTS,
    ClientEntry,
    ColumnFull,
    DisplayServer,
    NotInColumn,
    StopColumns,
    bus_sprite,
    format_request,
    render_arrived,
    render_waiting,
)


def make_server():
    acks = []
    server = DisplayServer(TypedQueue(), acks.append, delay=0)
    return server, acks


def test_insert_keeps_arrival_order():
    columns = StopColumns()
    columns.insert(2, 100, 4)
    columns.insert(2, 200, 5)
    assert columns.entries(2) == [ClientEntry(100, 4), ClientEntry(200, 5)]
    assert columns.entries(3) == []


def test_remove_shifts_remaining_entries():
    columns = StopColumns()
    for pid in (1, 2, 3):
        columns.insert(1, pid, 6)
    columns.remove(1, 2)
    assert [entry.pid for entry in columns.entries(1)] == [1, 3]


def test_remove_missing_pid_raises():
    columns = StopColumns()
    columns.insert(1, 5, 2)
    with pytest.raises(NotInColumn):
        columns.remove(1, 6)
    assert len(columns.entries(1)) == 1


def test_insert_into_full_column_raises():
    columns = StopColumns()
    for pid in range(1, MAX_CLIENTS + 1):
        columns.insert(4, pid, 1)
    with pytest.raises(ColumnFull):
        columns.insert(4, 999, 1)
    assert len(columns.entries(4)) == MAX_CLIENTS


def test_stop_out_of_range_raises():
    columns = StopColumns()
    with pytest.raises(IndexError):
        columns.insert(8, 1, 1)
    with pytest.raises(IndexError):
        columns.entries(-1)


def test_format_request_lists_every_field():
    text = format_request(
        DrawRequest(kind=2, pid=777, stop=3, inout=IN, paint=PAINT, destination=5)
    )
    lines = text.splitlines()
    assert lines[0] == "Recibido mensaje:"
    assert "\t pid: 777" in lines
    assert "\t parada: 3" in lines
    assert "\t destino: 5" in lines
    assert len(lines) == 7


def test_bus_sprite_at_stop_uses_four_rows():
    sprite = bus_sprite(2)
    assert [row for row, _, _ in sprite] == [0, 1, 2, 3]
    assert [text for _, _, text in sprite] == ["_____ ", "|- - \\", "######", " O  O "]
    assert len({col for _, col, _ in sprite}) == 1


def test_travelling_bus_is_one_row_lower():
    sprite = bus_sprite(23)
    assert [row for row, _, _ in sprite] == [1, 2, 3, 4]
    assert sprite[-1][2] == " O  O"


def test_return_trip_is_drawn_like_first_leg():
    assert bus_sprite(61) == bus_sprite(11)


def test_stop_sprites_move_right_along_route():
    columns = [bus_sprite(stop)[0][1] for stop in range(1, 7)]
    assert columns == sorted(columns)
    assert bus_sprite(2)[0][1] - bus_sprite(1)[0][1] == bus_sprite(12)[0][1] - bus_sprite(11)[0][1]


def test_render_waiting_puts_first_passenger_at_bottom():
    text = render_waiting([ClientEntry(1234, 3), ClientEntry(5, 1)])
    lines = text.split("\n")[:-1]
    assert len(lines) == HEIGHT
    assert lines[-1] == " 34-3"
    assert lines[-2] == " 05-1"
    assert all(line == "" for line in lines[:-2])


def test_render_waiting_shows_at_most_height():
    entries = [ClientEntry(pid, 1) for pid in range(40)]
    assert render_waiting(entries).count("\n") == HEIGHT


def test_render_arrived_pads_pid():
    assert render_arrived([ClientEntry(107, 2)], 3) == " 07-2 "


def test_render_arrived_sidewalk_shows_everyone():
    entries = [ClientEntry(pid, 1) for pid in range(MAX_CLIENTS)]
    assert render_arrived(entries, SIDEWALK).count("-") == MAX_CLIENTS
    assert render_arrived(entries, 2).count("-") == HEIGHT


def test_passenger_paint_is_acknowledged_and_drawn():
    server, acks = make_server()
    server.handle(DrawRequest(PASSENGER, 4321, 2, IN, PAINT, 5))
    assert acks == [4321]
    assert server.waiting.entries(2) == [ClientEntry(4321, 5)]
    assert server.waiting_view[2].endswith(" 21-5\n")


def test_erase_is_not_acknowledged():
    server, acks = make_server()
    server.handle(DrawRequest(PASSENGER, 50, 0, OUT, PAINT, 4))
    server.handle(DrawRequest(PASSENGER, 50, 0, OUT, ERASE, 4))
    assert acks == [50]
    assert server.arrived.entries(0) == []
    assert server.arrived_view[0] == ""


def test_rude_passenger_drawn_as_passenger():
    server, acks = make_server()
    server.handle(DrawRequest(RUDE_PASSENGER, 61, SIDEWALK, OUT, PAINT, 3))
    assert acks == [61]
    assert server.arrived.entries(SIDEWALK) == [ClientEntry(61, 3)]
    assert server.bus == []


def test_bus_request_draws_sprite_and_acknowledges():
    server, acks = make_server()
    server.handle(DrawRequest(BUS, 900, 34))
    assert acks == [900]
    assert server.bus == bus_sprite(34)
    assert "\t tipo: 1" in server.message.splitlines()


def test_overflow_is_not_acknowledged():
    server, acks = make_server()
    for pid in range(1, MAX_CLIENTS + 2):
        server.handle(DrawRequest(PASSENGER, pid, 1, IN, PAINT, 2))
    assert len(acks) == MAX_CLIENTS
    assert MAX_CLIENTS + 1 not in acks


def test_run_serves_until_queue_closed():
    queue = TypedQueue()
    acks = []
    ready = threading.Event()

    def acknowledge(pid):
        acks.append(pid)
        if len(acks) == 2:
            queue.close()

    server = DisplayServer(queue, acknowledge, on_ready=ready.set, delay=0)
    queue.put(PASSENGER, DrawRequest(PASSENGER, 11, 1, IN, PAINT, 2))
    queue.put(BUS, DrawRequest(BUS, 12, 1))
    worker = threading.Thread(target=server.run)
    worker.start()
    worker.join(timeout=5)
    assert not worker.is_alive()
    assert ready.is_set()
    assert acks == [11, 12]
    assert server.bus == bus_sprite(1)