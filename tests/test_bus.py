import queue
import threading
import time
from types import SimpleNamespace

import pytest

from busroute.bus import TOKEN, Bus, BusStopped, travel_position
from busroute.common import BoardingRequest, BusParams, QueueClosed, TypedQueue
from busroute.display import DisplayServer, bus_sprite

BUS_PID = 4242


class FakeRider:
    def __init__(self, answer=True):
        self.answer = answer
        self.calls = 0
        self.expelled = False

    def pick_up(self):
        self.calls += 1
        return self.answer

    def expel(self):
        self.expelled = True


class FixedRng:
    def __init__(self, value):
        self.value = value

    def randrange(self, n):
        return self.value % n


@pytest.fixture
def world():
    draw_queue = TypedQueue()
    stop_queue = TypedQueue()
    actors = {}
    display = DisplayServer(
        draw_queue, lambda pid: actors[pid].acknowledge(), delay=0
    )
    thread = threading.Thread(target=display.run, daemon=True)
    thread.start()
    yield SimpleNamespace(
        draw_queue=draw_queue, stop_queue=stop_queue, display=display, actors=actors
    )
    draw_queue.close()
    thread.join(5)


def make_bus(world, capacity=4, num_stops=6, riders=None, rng=None):
    exits = {stop: queue.Queue() for stop in range(1, num_stops + 1)}
    bus = Bus(
        BusParams(capacity, num_stops, 0),
        world.draw_queue,
        world.stop_queue,
        exits,
        riders if riders is not None else {},
        pid=BUS_PID,
        rng=rng,
        delay=0,
    )
    world.actors[BUS_PID] = bus
    return bus, exits


@pytest.mark.parametrize("stop,num_stops", [(1, 6), (2, 6), (5, 6), (6, 6), (2, 2), (3, 4)])
def test_travel_position_encodes_from_and_next_stop(stop, num_stops):
    position = travel_position(stop, num_stops)
    assert position // 10 == stop
    assert position % 10 == stop % num_stops + 1


def test_travel_position_pinned():
    assert travel_position(1, 6) == 12
    assert travel_position(6, 6) == 61


def test_visit_without_passengers_draws_bus_travelling(world):
    bus, _ = make_bus(world)
    bus.visit(2)
    assert world.display.bus == bus_sprite(travel_position(2, 6))
    assert bus.free == 4


def test_boarding_and_drop_off(world):
    riders = {101: FakeRider(), 102: FakeRider()}
    bus, exits = make_bus(world, riders=riders)
    world.stop_queue.put(1, BoardingRequest(1, 101, 3))
    world.stop_queue.put(1, BoardingRequest(1, 102, 3))
    bus.visit(1)
    assert bus.free == 2
    assert bus.onboard[3] == 2
    assert len(world.stop_queue) == 0
    bus.visit(2)
    assert exits[3].qsize() == 0
    bus.visit(3)
    assert exits[3].qsize() == 2
    assert exits[3].get_nowait() == TOKEN
    assert bus.free == 4
    assert bus.onboard[3] == 0


def test_capacity_limits_boarding(world):
    riders = {101: FakeRider(), 102: FakeRider()}
    bus, _ = make_bus(world, capacity=1, riders=riders)
    world.stop_queue.put(1, BoardingRequest(1, 101, 2))
    world.stop_queue.put(1, BoardingRequest(1, 102, 2))
    bus.visit(1)
    assert bus.free == 0
    assert bus.onboard[2] == 1
    assert len(world.stop_queue) == 1
    assert riders[102].calls == 0


def test_only_passengers_of_this_stop_are_called(world):
    rider = FakeRider()
    bus, _ = make_bus(world, riders={101: rider})
    world.stop_queue.put(2, BoardingRequest(2, 101, 4))
    bus.visit(1)
    assert rider.calls == 0
    assert len(world.stop_queue) == 1


def test_declining_passenger_does_not_board(world):
    rider = FakeRider(answer=False)
    bus, _ = make_bus(world, riders={101: rider})
    world.stop_queue.put(1, BoardingRequest(1, 101, 4))
    bus.visit(1)
    assert rider.calls == 1
    assert bus.free == 4
    assert len(world.stop_queue) == 0


def test_rude_passenger_expelled_on_even_draw(world):
    rider = FakeRider()
    bus, _ = make_bus(world, riders={101: rider}, rng=FixedRng(0))
    world.stop_queue.put(1, BoardingRequest(1, 101, 4, rude=True))
    bus.visit(1)
    assert rider.expelled is True
    assert bus.expelled == 1
    assert bus.free == 4


def test_rude_passenger_kept_on_odd_draw(world):
    rider = FakeRider()
    bus, _ = make_bus(world, riders={101: rider}, rng=FixedRng(1))
    world.stop_queue.put(1, BoardingRequest(1, 101, 4, rude=True))
    bus.visit(1)
    assert rider.expelled is False
    assert bus.expelled == 0
    assert bus.free == 3
    assert bus.onboard[4] == 1


def test_unknown_passenger_is_skipped(world):
    bus, _ = make_bus(world)
    world.stop_queue.put(1, BoardingRequest(1, 999, 4))
    bus.visit(1)
    assert len(world.stop_queue) == 0
    assert bus.free == 4


def test_visit_after_stop_raises(world):
    bus, _ = make_bus(world)
    bus.stop()
    with pytest.raises(BusStopped):
        bus.visit(1)


def test_run_until_stopped_returns_expelled_and_closes_stop_queue(world):
    bus, _ = make_bus(world)
    result = []
    thread = threading.Thread(target=lambda: result.append(bus.run()), daemon=True)
    thread.start()
    deadline = time.monotonic() + 5
    while not world.display.bus and time.monotonic() < deadline:
        time.sleep(0.01)
    bus.stop()
    thread.join(5)
    assert not thread.is_alive()
    assert result == [0]
    assert world.stop_queue.closed
    with pytest.raises(QueueClosed):
        world.stop_queue.put(1, BoardingRequest(1, 5, 2))