"""Timing utilities used to profile the reconstruction algorithms."""

import time
from dataclasses import dataclass


@dataclass
class Time:
    """Simple dataclass to hold time information.

    Attributes
    ----------
    wall : float
         Wall time
    cpu : float
         CPU time
    """

    wall: float = 0.0
    cpu: float = 0.0

    def __add__(self, other):
        return Time(wall=self.wall + other.wall, cpu=self.cpu + other.cpu)

    def __sub__(self, other):
        return Time(wall=self.wall - other.wall, cpu=self.cpu - other.cpu)

    @classmethod
    def current(cls):
        """Returns the current time (wall and cpu).

        Returns
        -------
        Time
           Current time
        """
        return cls(time.time(), time.process_time())


class Stopwatch:
    """Holds timing information for a specific process.

    Attributes
    ----------
    time : Time
        Duration of the last start/stop cycle
    time_sum : Time
        Sum of the durations of all start/stop cycles
    count : int
        Number of completed start/stop cycles
    """

    def __init__(self):
        """Give default values to the underlying class attributes."""
        self._start = None
        self.time = Time()
        self.time_sum = Time()
        self.count = 0

    @property
    def running(self):
        """Whether the stopwatch is currently running."""
        return self._start is not None

    def start(self):
        """Starts the clock."""
        if self.running:
            raise ValueError("Cannot restart a watch that has not been stopped.")

        self._start = Time.current()

    def stop(self):
        """Stops the clock and records the elapsed time."""
        if not self.running:
            raise ValueError("Cannot stop a watch that has not been started.")

        self.time = Time.current() - self._start
        self.time_sum = self.time_sum + self.time
        self.count += 1
        self._start = None


class StopwatchManager:
    """Organizes a set of named stopwatches."""

    def __init__(self):
        """Initalize the basic private stopwatch attributes."""
        self._watch = {}

    def keys(self):
        """List of initialized stopwatch names."""
        return self._watch.keys()

    def items(self):
        """List of (name, stopwatch) pairs."""
        return self._watch.items()

    def initialize(self, key):
        """Initialize one stopwatch, resetting it if it already exists.

        Parameters
        ----------
        key : Union[str, List[str]]
            Key or list of keys to initialize a `Stopwatch` for
        """
        keys = [key] if isinstance(key, str) else key
        for k in keys:
            self._watch[k] = Stopwatch()

    def start(self, key):
        """Starts the stopwatch of a given name.

        Parameters
        ----------
        key : str
            Name of the stopwatch
        """
        if key not in self._watch:
            raise KeyError(f"No stopwatch initialized under the name: {key}")

        self._watch[key].start()

    def stop(self, key):
        """Stops the stopwatch of a given name.

        Parameters
        ----------
        key : str
            Name of the stopwatch
        """
        if key not in self._watch:
            raise KeyError(f"No stopwatch initialized under the name: {key}")

        self._watch[key].stop()

    def time(self, key):
        """Time elapsed during the last cycle of a stopwatch.

        Parameters
        ----------
        key : str
            Name of the stopwatch

        Returns
        -------
        Time
            Duration of the last start/stop cycle
        """
        return self._watch[key].time

    def time_sum(self, key):
        """Total time elapsed on a stopwatch.

        Parameters
        ----------
        key : str
            Name of the stopwatch

        Returns
        -------
        Time
            Sum of all start/stop cycles
        """
        return self._watch[key].time_sum
