"""Base class for managed daemons."""

import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TextIO

from .lifecycle import get_runtime_dir
from .log_file import LogFile


def _default_name(cls: type) -> str:
    # WebServer -> web-server
    return re.sub(r"(?<!^)(?=[A-Z])", "-", cls.__name__).lower()


class Daemon(ABC):
    """A long-running workload the controller can start and stop.

    Subclasses implement `run()`. Paths are derived from the daemon's name
    and working directory:

        <working_directory>/log/<name>.log
        <working_directory>/run/<name>.pid
    """

    log_level: str = "INFO"

    def __init__(self, name: str | None = None, working_directory: Path | None = None):
        self.name = name or _default_name(type(self))
        if working_directory is None:
            working_directory = get_runtime_dir() / self.name
        self._working_directory = Path(working_directory).expanduser()
        self.log = LogFile(self.log_file_path)

    @property
    def working_directory(self) -> Path:
        return self._working_directory

    @property
    def log_file_path(self) -> Path:
        return self.working_directory / "log" / f"{self.name}.log"

    @property
    def process_file_path(self) -> Path:
        return self.working_directory / "run" / f"{self.name}.pid"

    def prefork(self) -> None:
        """Prepare directories before forking. Runs in the launcher."""
        self.working_directory.mkdir(parents=True, exist_ok=True)
        self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        self.process_file_path.parent.mkdir(parents=True, exist_ok=True)

    def mark_log(self) -> None:
        self.log.mark()

    def crashed(self) -> bool:
        """Check the log for a crash banner after the last start."""
        return self.log.crashed()

    def tail_log(self, output: TextIO, lines: int = 20) -> None:
        self.log.tail(output, lines)

    @abstractmethod
    def run(self) -> None:
        """The workload. Called once in the detached daemon process."""
        ...
