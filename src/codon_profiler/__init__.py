"""codon-profiler: Repeat-and-average micro-benchmarking with inline instrumentation.

Provides:
- Profiler: Test registry and run engine; units of work call back into it to
  start/end timers, record checkpoints and mark memory usage
- ProfilerConfig: Typed options (show_output, tare_runs, format_memory_usage)
- TestResult / MemoryUsage: Averaged per-test measurements
- calibrate_tare: Mean overhead of timing an empty call
- format_bytes: B / KB / MB formatting used by the report

Usage:
    from codon_profiler import Profiler

    profiler = Profiler(show_output=False)

    def build_list():
        profiler.mark_memory_usage("start")
        data = [i for i in range(10_000)]
        profiler.checkpoint("built")
        profiler.mark_memory_usage("end")

    profiler.register("Build list", build_list, iterations=100).run()
    print(profiler.get_results()["Build list"].timers["total"])
    profiler.show_results()
"""

from codon_profiler._aggregate import MemoryUsage, TestResult
from codon_profiler._capabilities import MemoryReading, ProcessMemoryReader
from codon_profiler._collector import Marker, RunContext
from codon_profiler._config import ProfilerConfig
from codon_profiler._core import Profiler, RunState, TestDefinition, calibrate_tare
from codon_profiler._errors import (
    InvalidDefinition,
    NoActiveTest,
    NoActiveTotalTimer,
    ProfilerError,
    ReservedMarkerName,
    TimerNotStarted,
)
from codon_profiler._report import format_bytes

__all__ = [
    "InvalidDefinition",
    "Marker",
    "MemoryReading",
    "MemoryUsage",
    "NoActiveTest",
    "NoActiveTotalTimer",
    "ProcessMemoryReader",
    "Profiler",
    "ProfilerConfig",
    "ProfilerError",
    "ReservedMarkerName",
    "RunContext",
    "RunState",
    "TestDefinition",
    "TestResult",
    "TimerNotStarted",
    "calibrate_tare",
    "format_bytes",
]

__version__ = "0.1.0"
