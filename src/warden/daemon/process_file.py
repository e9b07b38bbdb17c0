"""Process file (pid record) for a daemon."""

import logging
import os
import tempfile
from pathlib import Path

from .platform import PosixBackend, ProcessBackend
from .states import DaemonState

logger = logging.getLogger("warden.process_file")


class ProcessFile:
    """Stores and queries the pid of a single daemon.

    Every operation is best-effort: an unreadable record reads as absent and
    removal failures are logged, never raised.
    """

    def __init__(self, path: Path, backend: ProcessBackend | None = None):
        self.path = Path(path)
        self.backend = backend or PosixBackend()

    def exists(self) -> bool:
        """Check whether a record file is present, valid or not."""
        return self.path.is_file()

    def recall(self) -> int | None:
        """Read the recorded pid, return None if missing or malformed."""
        try:
            pid = int(self.path.read_text().strip())
        except (ValueError, OSError):
            return None

        if pid <= 0:
            return None
        return pid

    def running(self) -> bool:
        """Check if the recorded pid is a live process."""
        pid = self.recall()
        if pid is None:
            return False
        return self.backend.alive(pid)

    def status(self) -> DaemonState:
        """Classify the daemon from the record and a liveness probe."""
        if not self.exists():
            return DaemonState.STOPPED

        if self.running():
            return DaemonState.RUNNING

        return DaemonState.UNKNOWN

    def store(self, pid: int) -> None:
        """Atomically write `pid`, replacing any previous record."""
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w") as f:
                f.write(f"{pid}\n")
            os.replace(temp_path, self.path)
        except BaseException:
            Path(temp_path).unlink(missing_ok=True)
            raise

    def clear(self) -> None:
        """Remove the record. No error if it is already gone."""
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove process file {self.path}: {e}")

    def cleanup(self) -> None:
        """Post-stop hook, tolerant of the record already being gone."""
        self.clear()
