"""Process-level primitives the profiler measures with.

The clock and the memory reader are injected into ``Profiler`` so tests can
replace them with deterministic fakes. Memory tracking via psutil is the
default.
"""

import io
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager, redirect_stdout
from dataclasses import dataclass
from typing import Protocol

import psutil

Clock = Callable[[], float]

default_clock: Clock = time.perf_counter


@dataclass(frozen=True)
class MemoryReading:
    """One memory sample in bytes."""

    current: int
    peak: int


class MemoryReader(Protocol):
    def read(self) -> MemoryReading: ...


class ProcessMemoryReader:
    """Reads resident memory of the current process via psutil.

    ``current`` is the RSS at the time of the call. ``peak`` is the largest RSS
    this reader has observed so far (psutil exposes no portable peak value).
    """

    def __init__(self) -> None:
        self._process = psutil.Process()
        self._peak = 0

    def read(self) -> MemoryReading:
        rss = self._process.memory_info().rss
        self._peak = max(self._peak, rss)
        return MemoryReading(current=rss, peak=self._peak)


@contextmanager
def discard_stdout() -> Generator[io.StringIO, None, None]:
    """Capture everything written to stdout inside the block and drop it."""
    buffer = io.StringIO()
    try:
        with redirect_stdout(buffer):
            yield buffer
    finally:
        buffer.close()
