"""Bus-route simulation: a bus, waiting, bored and rude passengers, and a curses display."""

__version__ = "0.1.0"