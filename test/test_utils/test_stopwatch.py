"""Tests for the profiling stopwatches."""

import pytest

from calofrag.utils.stopwatch import StopwatchManager


def test_stopwatch_cycles():
    """Each cycle is recorded and accumulated."""
    watch = StopwatchManager()
    watch.initialize(["a", "b"])
    assert list(watch.keys()) == ["a", "b"]
    for _ in range(2):
        watch.start("a")
        sum(range(1000))
        watch.stop("a")

    assert watch.time("a").wall >= 0.0
    assert watch.time_sum("a").wall >= watch.time("a").wall
    assert watch.time_sum("a").cpu >= 0.0


def test_unknown_stopwatch():
    """Stopwatches must be initialized first."""
    watch = StopwatchManager()
    with pytest.raises(KeyError):
        watch.start("a")
    with pytest.raises(KeyError):
        watch.stop("a")
