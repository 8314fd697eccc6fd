"""Test registry and run engine.

Design by Contract:
- Tare MUST be non-negative (crash if negative)
- Every registered test has a non-empty name and a callable unit of work
- Instrumentation outside a running test fails fast (NoActiveTest)

Public methods use beartype for runtime type enforcement.
"""

import enum
import sys
from collections.abc import Callable, Generator
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from beartype import beartype
from loguru import logger

from codon_profiler._aggregate import TestResult, average_samples
from codon_profiler._capabilities import (
    Clock,
    MemoryReader,
    ProcessMemoryReader,
    default_clock,
    discard_stdout,
)
from codon_profiler._collector import Marker, MeasurementCollector, RunContext
from codon_profiler._config import ProfilerConfig
from codon_profiler._errors import InvalidDefinition
from codon_profiler._report import render_report

TARE_RUNS = 100


@dataclass(frozen=True)
class TestDefinition:
    """A named unit of work and how many times to run it."""

    __test__ = False

    name: str
    work: Callable[[], Any]
    iterations: int = 1


class RunState(enum.Enum):
    IDLE = "idle"
    CALIBRATING = "calibrating"
    SETUP = "setup"
    ITERATING = "iterating"
    AVERAGING = "averaging"


def _noop() -> None:
    pass


@beartype
def calibrate_tare(clock: Callable[[], float], runs: int = TARE_RUNS) -> float:
    """Mean cost of timing an empty call, in seconds.

    Args:
        clock: Clock used by the measurements the tare will correct
        runs: Number of empty calls to average over (MUST be > 0)
    """
    assert runs > 0, f"Calibration runs must be positive: {runs}"
    total = 0.0
    for _ in range(runs):
        start = clock()
        _noop()
        total += clock() - start
    tare = total / runs
    assert tare >= 0, f"Tare cannot be negative: {tare:.9f}s. Clock went backwards."
    return tare


class Profiler:
    """Registers tests, runs them repeatedly and averages what they measure.

    Args:
        config: Initial configuration (default: ``ProfilerConfig()``)
        clock: Timestamp source in seconds (default: ``time.perf_counter``)
        memory_reader: Memory source (default: psutil-backed ``ProcessMemoryReader``)
        **options: Merged into ``config`` as with ``configure()``

    Example:
        profiler = Profiler(show_output=False)

        def count_loop():
            profiler.start_timer("Loop only")
            for i in range(1000):
                if i == 500:
                    profiler.checkpoint("halfway")
            profiler.end_timer("Loop only")

        profiler.register("Count loop", count_loop, iterations=100).run()
        print(profiler.render())

    Units of work call back into ``start_timer``, ``end_timer``, ``checkpoint``
    and ``mark_memory_usage`` while they run. Every iteration is wrapped in an
    implicit ``total`` timer.
    """

    def __init__(
        self,
        config: ProfilerConfig | None = None,
        *,
        clock: Clock | None = None,
        memory_reader: MemoryReader | None = None,
        **options: Any,
    ) -> None:
        self.config = (config or ProfilerConfig()).merged(options)
        self._clock = clock or default_clock
        self._collector = MeasurementCollector(
            self._clock, memory_reader or ProcessMemoryReader()
        )
        self._definitions: dict[str, TestDefinition] = {}
        self._results: dict[str, TestResult] = {}
        self._last_run: RunContext | None = None
        self._tare: float = 0.0
        self.state = RunState.IDLE

    # -- registry -----------------------------------------------------------

    @beartype
    def configure(self, **options: Any) -> "Profiler":
        """Merge options into the configuration; unknown keys are stored unused."""
        self.config = self.config.merged(options)
        return self

    @beartype
    def set(self, name: str, value: Any) -> "Profiler":
        return self.configure(**{name: value})

    @beartype
    def register(
        self,
        name: str,
        work: Callable[[], Any] | None,
        iterations: int = 1,
    ) -> "Profiler":
        """Add a test, replacing any test registered under the same name.

        Args:
            name: Unique test name (MUST be non-empty)
            work: Zero-argument callable to time
            iterations: Times to run ``work``; values <= 0 run once
        """
        return self.add(TestDefinition(name=name, work=work, iterations=iterations))

    @beartype
    def add(self, definition: TestDefinition) -> "Profiler":
        if not definition.name:
            raise InvalidDefinition("Test name must be non-empty")
        if definition.work is None or not callable(definition.work):
            raise InvalidDefinition(f"Test {definition.name!r} has no callable unit of work")

        # last registration wins; a replaced test keeps its original position
        self._definitions[definition.name] = definition
        logger.debug(f"Registered test {definition.name!r} ({definition.iterations} iterations)")
        return self

    def clear(self) -> "Profiler":
        """Forget all tests and results; configuration is kept."""
        self._definitions.clear()
        self._results.clear()
        return self

    @property
    def tests(self) -> list[str]:
        return list(self._definitions)

    @property
    def tare(self) -> float:
        return self._tare

    @property
    def last_run(self) -> RunContext | None:
        return self._last_run

    # -- run engine ---------------------------------------------------------

    def run(self) -> "Profiler":
        """Run every registered test in registration order.

        Previous results are discarded first. An exception raised by a unit of
        work aborts the whole run and propagates; results of tests that
        completed before it are kept.
        """
        self._results = {}
        context = RunContext(started_at=datetime.now())
        self._last_run = context
        self._collector.bind(context)
        logger.info(f"Starting run of {len(self._definitions)} tests")

        try:
            if self.config.tare_runs:
                self.state = RunState.CALIBRATING
                self._tare = calibrate_tare(self._clock)
                logger.debug(f"Calibrated tare: {self._tare:.9f}s")
            self._collector.tare = self._tare if self.config.tare_runs else 0.0

            for definition in list(self._definitions.values()):
                self._run_test(definition, context)
        finally:
            self._collector.abandon_test()
            self._collector.bind(None)
            self.state = RunState.IDLE

        context.ended_at = datetime.now()
        logger.info(
            f"Run finished: {len(self._results)} tests, "
            f"{context.total_iterations} iterations"
        )
        return self

    def _run_test(self, definition: TestDefinition, context: RunContext) -> None:
        self.state = RunState.SETUP
        iterations = definition.iterations if definition.iterations > 0 else 1
        self._collector.begin_test(definition.name)
        logger.debug(f"Running {definition.name!r} for {iterations} iterations")

        self.state = RunState.ITERATING
        capture = nullcontext() if self.config.show_output else discard_stdout()
        with capture:
            for i in range(iterations):
                self._collector.start_timer(Marker.TOTAL)
                try:
                    definition.work()
                except Exception:
                    logger.error(
                        f"Test {definition.name!r} raised on iteration {i + 1}/{iterations}"
                    )
                    raise
                self._collector.end_timer(Marker.TOTAL)
                context.total_iterations += 1

        self.state = RunState.AVERAGING
        samples = self._collector.finish_test()
        self._results[definition.name] = average_samples(definition.name, iterations, samples)

    @beartype
    def get_results(self) -> dict[str, TestResult]:
        """Snapshot of averaged results keyed by test name."""
        return dict(self._results)

    # -- instrumentation ----------------------------------------------------

    @beartype
    def start_timer(self, name: str) -> "Profiler":
        """Start (or restart) the timer ``name`` for the current test."""
        self._collector.start_timer(name)
        return self

    @beartype
    def end_timer(self, name: str) -> "Profiler":
        """Stop the timer ``name`` and add its elapsed time to the test."""
        self._collector.end_timer(name)
        return self

    @beartype
    def checkpoint(self, name: str) -> "Profiler":
        """Record the time elapsed since the current iteration started."""
        self._collector.checkpoint(name)
        return self

    @beartype
    def mark_memory_usage(self, name: str) -> "Profiler":
        """Record current and peak process memory under ``name``."""
        self._collector.mark_memory_usage(name)
        return self

    @beartype
    @contextmanager
    def timed(self, name: str) -> Generator["Profiler", None, None]:
        """Time the enclosed block as timer ``name``.

        The timer is only ended when the block completes normally.
        """
        self.start_timer(name)
        yield self
        self.end_timer(name)

    # -- reporting ----------------------------------------------------------

    @beartype
    def render(self, html: bool = False) -> str:
        return render_report(
            self._results,
            self._last_run,
            format_memory_usage=self.config.format_memory_usage,
            html=html,
        )

    def show_results(self, html: bool = False, return_string: bool = False) -> "Profiler | str":
        """Print the report, or return it when ``return_string`` is True."""
        text = self.render(html=html)
        if return_string:
            return text
        sys.stdout.write(text)
        return self

    def log_results(self) -> None:
        """Emit the plain-text report line by line via loguru."""
        for line in self.render().splitlines():
            logger.info(line)
