"""Raw measurement collection.

The collector owns the sample maps. Every call goes to the test named by the
bound ``RunContext``; without a bound context (or between tests) the
instrumentation calls raise ``NoActiveTest``.

Samples are running sums across iterations. They are turned into averages
by ``_aggregate.average_samples`` once the test's last iteration finishes.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime

from codon_profiler._capabilities import Clock, MemoryReader
from codon_profiler._errors import (
    NoActiveTest,
    NoActiveTotalTimer,
    ReservedMarkerName,
    TimerNotStarted,
)


class Marker(enum.Enum):
    """Reserved timer names."""

    TOTAL = "total"


TimerKey = str | Marker


@dataclass
class RunContext:
    """State of one ``Profiler.run()`` call.

    Attributes:
        started_at: Wall-clock time the run began
        ended_at: Wall-clock time the run finished (None while running or
            when the run aborted)
        total_iterations: Iterations executed so far, across all tests
        test_name: The test currently iterating, None between tests
    """

    started_at: datetime
    ended_at: datetime | None = None
    total_iterations: int = 0
    test_name: str | None = None


@dataclass
class TimerSample:
    start: float | None = None
    total: float = 0.0


@dataclass
class MemorySample:
    current: float = 0.0
    peak: float = 0.0


@dataclass
class TestSamples:
    """Accumulated samples of one test, in first-recorded order."""

    __test__ = False

    timers: dict[TimerKey, TimerSample] = field(default_factory=dict)
    checkpoints: dict[str, float] = field(default_factory=dict)
    memory: dict[str, MemorySample] = field(default_factory=dict)


class MeasurementCollector:
    """Accumulates timer, checkpoint and memory samples per test.

    Args:
        clock: Zero-argument callable returning seconds as a float
        memory_reader: Object whose ``read()`` returns a ``MemoryReading``

    Design by Contract:
        - timer increments are >= 0 (crash if the clock went backwards)
        - tare is >= 0
    """

    def __init__(self, clock: Clock, memory_reader: MemoryReader) -> None:
        self._clock = clock
        self._memory_reader = memory_reader
        self._context: RunContext | None = None
        self._samples: dict[str, TestSamples] = {}
        self.tare: float = 0.0

    def bind(self, context: RunContext | None) -> None:
        self._context = context

    def begin_test(self, name: str) -> None:
        """Open a fresh sample bucket for ``name`` and make it current."""
        assert self._context is not None, "begin_test() requires a bound RunContext"
        self._samples[name] = TestSamples()
        self._context.test_name = name

    def finish_test(self) -> TestSamples:
        """Detach the current test and hand its samples over for averaging."""
        name = self._current()
        self._context.test_name = None
        return self._samples.pop(name)

    def abandon_test(self) -> None:
        """Drop the current test's samples after a failed iteration."""
        if self._context is not None and self._context.test_name is not None:
            self._samples.pop(self._context.test_name, None)
            self._context.test_name = None

    def _current(self) -> str:
        if self._context is None or self._context.test_name is None:
            raise NoActiveTest("Instrumentation is only available while a test is running")
        return self._context.test_name

    def start_timer(self, name: TimerKey) -> None:
        _check_timer_name(name)
        samples = self._samples[self._current()]
        if name is Marker.TOTAL:
            # a new iteration: timers left running in the previous one cannot be ended
            for running in samples.timers.values():
                running.start = None
        timer = samples.timers.setdefault(name, TimerSample())
        timer.start = self._clock()

    def end_timer(self, name: TimerKey) -> None:
        _check_timer_name(name)
        end = self._clock()
        samples = self._samples[self._current()]
        timer = samples.timers.get(name)
        if timer is None or timer.start is None:
            raise TimerNotStarted(f"Timer {_display(name)!r} was ended before it was started")

        elapsed = end - timer.start
        assert elapsed >= 0, (
            f"Elapsed time cannot be negative: {elapsed:.9f}s. "
            f"Clock went backwards or timing bug."
        )
        if name is Marker.TOTAL:
            assert self.tare >= 0, f"Tare must be non-negative: {self.tare}"
            elapsed = max(elapsed - self.tare, 0.0)

        timer.total += elapsed
        timer.start = None

    def checkpoint(self, name: str) -> None:
        now = self._clock()
        samples = self._samples[self._current()]
        total = samples.timers.get(Marker.TOTAL)
        if total is None or total.start is None:
            raise NoActiveTotalTimer(
                f"Checkpoint {name!r} requested outside of a running iteration"
            )
        samples.checkpoints[name] = samples.checkpoints.get(name, 0.0) + (now - total.start)

    def mark_memory_usage(self, name: str) -> None:
        samples = self._samples[self._current()]
        reading = self._memory_reader.read()
        sample = samples.memory.setdefault(name, MemorySample())
        sample.current += reading.current
        sample.peak += reading.peak


def _check_timer_name(name: TimerKey) -> None:
    if isinstance(name, str) and name == Marker.TOTAL.value:
        raise ReservedMarkerName(
            f"Timer name {name!r} is reserved for the per-iteration total"
        )


def _display(name: TimerKey) -> str:
    return name.value if isinstance(name, Marker) else name
