"""Text and HTML rendering of averaged results.

Layout (fixed-width, one test per block):

    Tests started at: 2026-01-01T12:00:00
    Total iterations: 200
    Python version: 3.12.1

              Count loop       Iterations: 100
    Timers:
              Loop only        0.000041230000
                  total        0.000052310000
    Checkpoints:
                halfway        0.000021000000
          Memory Usage:     current       peak
          Start of loop       38 MB      38 MB
"""

import html as html_lib
import platform
from collections.abc import Mapping

from beartype import beartype

from codon_profiler._aggregate import MemoryUsage, TestResult
from codon_profiler._collector import RunContext

_HEADING_FMT = "{:>20}  {:>20}  \n"
_VALUE_FMT = "{:>19}  {:>20.12f}\n"


@beartype
def format_bytes(size: int | float) -> str:
    """Human-readable byte count: ``500B``, ``2 KB``, ``3 MB``.

    Averaged sizes are rounded to whole bytes first; a value that would
    round up to 1024 KB is shown as ``1 MB``.
    """
    size = round(size)
    if size < 1024:
        return f"{size}B"
    kilobytes = round(size / 1024)
    if kilobytes < 1024:
        return f"{kilobytes} KB"
    return f"{round(size / 1024**2)} MB"


def _memory_column(value: float, format_memory_usage: bool) -> str:
    if format_memory_usage:
        return f"{format_bytes(value):>10}"
    return f"{value:>12.0f}"


def _render_memory(memory: Mapping[str, MemoryUsage], format_memory_usage: bool) -> str:
    width = 10 if format_memory_usage else 12
    text = f"{'Memory Usage:':>19}  {'current':>{width}} {'peak':>{width}}\n"
    for name, usage in memory.items():
        current = _memory_column(usage.current, format_memory_usage)
        peak = _memory_column(usage.peak, format_memory_usage)
        text += f"{name:>19}  {current} {peak}\n"
    return text


def _render_test(result: TestResult, format_memory_usage: bool) -> str:
    text = _HEADING_FMT.format(result.name, f"Iterations: {result.iterations}")

    text += "Timers:\n"
    for name, seconds in result.timers.items():
        text += _VALUE_FMT.format(name, seconds)

    if result.checkpoints:
        text += "Checkpoints:\n"
        for name, seconds in result.checkpoints.items():
            text += _VALUE_FMT.format(name, seconds)

    if result.memory:
        text += _render_memory(result.memory, format_memory_usage)

    return text + "\n"


@beartype
def render_report(
    results: Mapping[str, TestResult],
    run: RunContext | None,
    format_memory_usage: bool = True,
    html: bool = False,
) -> str:
    """Render results as plain text, or as an HTML ``<pre>`` block.

    Args:
        results: Test name -> averaged result, rendered in mapping order
        run: Context of the run that produced ``results`` (None if never run)
        format_memory_usage: Human units instead of raw byte counts
        html: Escape the text, turn newlines into ``<br />`` and wrap it in
            ``<pre class="benchmarkResults">``

    Returns:
        The report text. ``results`` is never modified.
    """
    started = run.started_at.isoformat(timespec="seconds") if run is not None else "never"
    total_iterations = run.total_iterations if run is not None else 0

    text = f"Tests started at: {started}\n"
    text += f"Total iterations: {total_iterations}\n"
    text += f"Python version: {platform.python_version()}\n\n"

    for result in results.values():
        text += _render_test(result, format_memory_usage)

    if html:
        body = html_lib.escape(text).replace("\n", "<br />\n")
        text = f'<pre class="benchmarkResults">{body}</pre>'

    return text
