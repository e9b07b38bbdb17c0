"""Daemon log file markers, crash detection and tailing."""

import traceback
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import TextIO

START_MARKER = "=== Daemon Started"
CRASH_MARKER = "=== Daemon Crashed ==="


def _now() -> str:
    return datetime.now().isoformat(sep=" ", timespec="seconds")


def crash_banner(error: BaseException) -> str:
    """Format an uncaught exception for the daemon log."""
    lines = [
        f"=== Daemon Exception Backtrace @ {_now()} ===",
        f"{type(error).__name__}: {error}",
    ]
    for entry in traceback.format_tb(error.__traceback__):
        lines.extend(entry.rstrip("\n").split("\n"))
    lines.append(CRASH_MARKER)
    return "\n".join(lines) + "\n"


def stopping_banner() -> str:
    return f"=== Daemon Stopping @ {_now()} ===\n"


class LogFile:
    """The daemon's log file as seen from the controller."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def mark(self) -> None:
        """Append a start marker, separating this run from earlier ones."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a") as f:
            f.write(f"{START_MARKER} @ {_now()} ===\n")

    def current_run(self) -> list[str]:
        """Lines written since the last start marker, marker included."""
        try:
            with open(self.path, errors="replace") as f:
                lines = f.read().splitlines()
        except OSError:
            return []

        for index in range(len(lines) - 1, -1, -1):
            if lines[index].startswith(START_MARKER):
                return lines[index:]
        return lines

    def crashed(self) -> bool:
        """Check if the current run ended with a crash banner."""
        return any(line.startswith(CRASH_MARKER) for line in self.current_run())

    def tail(self, output: TextIO, lines: int = 20) -> None:
        """Write the last `lines` lines of the current run to `output`."""
        for line in deque(self.current_run(), maxlen=lines):
            output.write(line + "\n")
        output.flush()
