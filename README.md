# busroute

A simulation of a circular bus route, drawn in the terminal with curses.

One bus runs round a ring of stops (2 to 6), dropping passengers off at their
destinations and picking up those waiting, as long as it has free seats.
Passengers appear one after another at random stops, each wanting to go to a
different random stop.

- **Passengers** queue at their stop and wait. If the bus has not called for
  them within a random time (between the boredom minimum and maximum), they
  give up and walk to the pavement.
- **Rude passengers** (each new passenger has a 30% chance of being one) never
  get bored and always try to board, but the driver throws each of them off
  with a chance of one in two.
- The **bus** has a fixed capacity and takes a set time to travel between stops.

When every passenger has arrived, walked away or been thrown off, the route
keeps going for two more seconds, then the bus and display stop and the number
of rude passengers thrown off is printed:

```
Clientes maleducados expulsados: 7
```

Every actor (display, bus, each passenger) runs in its own thread inside one
Python process; they talk through in-memory message queues.

## Installation

```
pip install .
```

The screen uses the standard `curses` module, so it needs a POSIX system and a
colour terminal of at least 40 lines and 120 columns. If the terminal is too
small or has no colours, the program says so and exits with status 1.

## Running

```
busroute [--no-screen] [--speed FACTOR]
```

- `--no-screen` runs the simulation without drawing anything; only the final
  count is printed.
- `--speed FACTOR` divides every timing (travel times, the interval between new
  passengers, drawing delays and the pause at the end) by `FACTOR`.
  Passengers' boredom times are not scaled. Default `1.0`.

On start, the current settings are printed (the dialogue is in Spanish):

| Setting                                  | Default | Accepted when entered                |
|------------------------------------------|---------|--------------------------------------|
| Number of passengers created             | 60      | 1–50                                 |
| Interval between new passengers (s)      | 1–2     | min 1–8, max 2–20 and above the min  |
| Number of stops                          | 6       | 2–6                                  |
| Bus capacity                             | 4       | 1–10                                 |
| Travel time between stops (s)            | 2       | 1–10                                 |
| Time before a passenger gets bored (s)   | 4–8     | min 1–10, max 5–20 and not below min |

Enter `0` to change them, or any other number to start. Each value is asked
for again until it is within range; anything that is not an integer is
skipped. If input ends before the dialogue is finished, the program prints an
error and exits with status 1.

## The screen

- A header with one column pair per stop: the left column (blue) shows the
  passengers waiting there, the first arrival at the bottom; the right column
  shows those who got off there. Unused stops are blanked.
- A road below the stops, where the bus is drawn at a stop or between two.
- A panel for the passengers on the bus, a pavement panel for those who
  walked off or were thrown off, and a panel showing the last message the
  display received.

Each passenger appears as the last two digits of its id and its destination,
for example ` 07-3`.

## Using it from Python

- `busroute.main.Settings` holds all settings, plus `terminal` (draw with
  curses), `speed` and `seed` (repeatable runs).
  `busroute.main.read_settings(stdin, stdout)` runs the settings dialogue on
  any pair of text streams and returns a `Settings`.
  `busroute.main.run_simulation(settings)` runs a whole simulation and returns
  the number of rude passengers thrown off; it raises `ValueError` for a speed
  that is not positive and `DisplayStartError` if the screen cannot start.
- `busroute.common.TypedQueue` is a thread-safe queue of typed messages:
  `put(kind, message)`, `get(kind=0, block=True)` (0 takes the oldest, a
  positive kind the oldest of that type, a negative kind the oldest of the
  lowest type not above its absolute value) and `close()`, after which use
  raises `QueueClosed`. The messages are `DrawRequest` and `BoardingRequest`;
  `BusParams` and `ClientParams` hold the actors' settings.
- `busroute.display.DisplayServer` serves draw requests from a queue:
  `handle(request)` applies one, `run()` serves until the queue is closed.
  Without `terminal=True` it only keeps what would be drawn, in `message`,
  `bus`, `waiting_view` and `arrived_view`.
- `busroute.display.StopColumns` (`insert`, `remove`, `entries`; at most 50
  passengers per stop), `render_waiting`, `render_arrived`, `bus_sprite` and
  `format_request` produce screen contents without a terminal.
- `busroute.bus.Bus` drives the route (`visit(stop)`, `run()`, `stop()`), and
  `busroute.bus.travel_position(stop, num_stops)` gives the road position
  code used while the bus is between two stops.
- `busroute.passenger.Passenger` and `RudePassenger` make one trip each;
  `run()` returns an `Outcome` (`ARRIVED`, `WALKED` or `EXPELLED`).
  `busroute.passenger.choose_stops(num_stops, rng)` picks an origin and a
  different destination, and needs at least 2 stops.

## Tests

```
pip install ".[test]"
pytest
```