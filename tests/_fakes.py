"""Deterministic stand-ins for the clock and memory reader.

Only these external capabilities are faked; everything else in the tests
uses the real profiler classes.
"""

from collections.abc import Iterable

from codon_profiler import MemoryReading


class FakeClock:
    """Manually advanced clock.

    Args:
        step: Seconds added automatically after every read (0 = frozen)
    """

    def __init__(self, step: float = 0.0) -> None:
        self.now = 0.0
        self.step = step
        self.reads = 0

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        self.reads += 1
        return value

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeMemoryReader:
    """Replays a fixed sequence of (current, peak) readings."""

    def __init__(self, readings: Iterable[tuple[int, int]]) -> None:
        self._readings = list(readings)
        self._index = 0

    def read(self) -> MemoryReading:
        current, peak = self._readings[self._index % len(self._readings)]
        self._index += 1
        return MemoryReading(current=current, peak=peak)
