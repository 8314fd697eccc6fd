"""Profiler configuration.

Options arrive as keyword arguments (``Profiler(show_output=True)``,
``profiler.configure(tare_runs=False)``) and are merged into an immutable
``ProfilerConfig``. Recognised options are type checked by beartype when the
merged config is built; anything else is kept in ``extra`` and ignored.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any

from beartype import beartype

# camelCase spellings accepted for compatibility with option bags written as
# {"showOutput": ..., "tareRuns": ...}
_ALIASES: dict[str, str] = {
    "showOutput": "show_output",
    "tareRuns": "tare_runs",
    "formatMemoryUsage": "format_memory_usage",
}


@beartype
@dataclass(frozen=True)
class ProfilerConfig:
    """Typed profiler options.

    Attributes:
        show_output: Let stdout written by a unit of work through (default: False,
            output is captured and discarded while a test iterates)
        tare_runs: Calibrate the call overhead once per run and subtract it
            from every iteration total (default: True)
        format_memory_usage: Render memory as B / KB / MB instead of raw byte
            counts (default: True)
        extra: Unrecognised options, stored verbatim with no effect
    """

    show_output: bool = False
    tare_runs: bool = True
    format_memory_usage: bool = True
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def merged(self, options: Mapping[str, Any]) -> "ProfilerConfig":
        """Return a copy with ``options`` applied on top of this config."""
        known = {f.name for f in fields(self)} - {"extra"}
        updates: dict[str, Any] = {}
        extra = dict(self.extra)

        for key, value in options.items():
            name = _ALIASES.get(key, key)
            if name in known:
                updates[name] = value
            else:
                extra[key] = value

        return replace(self, extra=MappingProxyType(extra), **updates)
