"""Usage errors raised by the profiler.

All of them signal a programming mistake at the call site (bad registration,
instrumentation outside a run). They are raised immediately and never caught
by the profiler itself.
"""


class ProfilerError(Exception):
    """Base class for profiler usage errors."""


class InvalidDefinition(ProfilerError):
    """A test was registered without a name or without a unit of work."""


class NoActiveTest(ProfilerError):
    """An instrumentation call was made while no test is running."""


class NoActiveTotalTimer(ProfilerError):
    """A checkpoint was requested while the iteration timer is not running."""


class TimerNotStarted(ProfilerError):
    """A timer was ended without a matching start."""


class ReservedMarkerName(ProfilerError):
    """A user timer tried to use the name reserved for the iteration total."""
