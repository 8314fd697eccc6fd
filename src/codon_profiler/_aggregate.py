"""Per-test averaging of accumulated samples."""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from codon_profiler._collector import Marker, TestSamples


@dataclass(frozen=True)
class MemoryUsage:
    """Averaged memory reading in bytes."""

    current: float
    peak: float


@dataclass(frozen=True)
class TestResult:
    """Averaged measurements of one test.

    Attributes:
        name: Test name
        iterations: Number of iterations the averages are taken over
        timers: Timer name -> mean seconds per iteration; the iteration total
            is keyed ``"total"`` and ordered last
        checkpoints: Checkpoint name -> mean seconds since iteration start
        memory: Mark name -> mean ``MemoryUsage``
    """

    __test__ = False

    name: str
    iterations: int
    timers: Mapping[str, float]
    checkpoints: Mapping[str, float]
    memory: Mapping[str, MemoryUsage]

    @property
    def total(self) -> float:
        return self.timers.get(Marker.TOTAL.value, 0.0)


def average_samples(name: str, iterations: int, samples: TestSamples) -> TestResult:
    """Divide every accumulated sample of a test by its iteration count.

    Keys that were not recorded in every iteration are still divided by the
    full ``iterations``, so a checkpoint hit in half of the iterations
    reports half of its mean per-hit value.
    """
    assert iterations > 0, f"Iterations must be positive: {iterations}"

    timers: dict[str, float] = {}
    total = None
    for key, sample in samples.timers.items():
        if key is Marker.TOTAL:
            total = sample.total / iterations
        else:
            timers[key] = sample.total / iterations
    if total is not None:
        timers[Marker.TOTAL.value] = total

    checkpoints = {key: value / iterations for key, value in samples.checkpoints.items()}
    memory = {
        key: MemoryUsage(current=sample.current / iterations, peak=sample.peak / iterations)
        for key, sample in samples.memory.items()
    }

    return TestResult(
        name=name,
        iterations=iterations,
        timers=MappingProxyType(timers),
        checkpoints=MappingProxyType(checkpoints),
        memory=MappingProxyType(memory),
    )
