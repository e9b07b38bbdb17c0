"""Daemon states and controller outcomes."""

from enum import Enum


class DaemonState(str, Enum):
    """Liveness derived from the process file."""

    RUNNING = "running"
    STOPPED = "stopped"
    UNKNOWN = "unknown"


class StatusReport(str, Enum):
    """What `status` shows to the user."""

    RUNNING = "running"
    STOPPED = "stopped"
    UNKNOWN = "unknown"
    CRASHED = "crashed"


class StartOutcome(str, Enum):
    """Result of a start request."""

    STARTED = "started"
    ALREADY_RUNNING = "already_running"
    CRASHED = "crashed"
    EXITED = "exited"
    TIMED_OUT = "timed_out"

    @property
    def succeeded(self) -> bool:
        return self in (StartOutcome.STARTED, StartOutcome.ALREADY_RUNNING)


class StopOutcome(str, Enum):
    """Result of a stop request."""

    STOPPED = "stopped"
    NOT_FOUND = "not_found"
    NOT_RUNNING = "not_running"
    STILL_RUNNING = "still_running"

    @property
    def succeeded(self) -> bool:
        # Everything except a survivor leaves the daemon down.
        return self is not StopOutcome.STILL_RUNNING
