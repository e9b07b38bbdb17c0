"""Operating system primitives used by the controller.

The controller never calls fork, kill or setsid directly. It goes through a
`ProcessBackend`, so tests can swap in an in-memory process table.
"""

import io
import os
import signal
import sys
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

from .log_file import crash_banner


class ProcessBackend(ABC):
    """Process table, signals and daemonization."""

    @abstractmethod
    def alive(self, pid: int) -> bool:
        """Non-destructive liveness probe."""
        ...

    @abstractmethod
    def process_group(self, pid: int) -> int:
        """Return the process group id of `pid`.

        Raises:
            ProcessLookupError: if the process is gone
        """
        ...

    @abstractmethod
    def terminate(self, target: int, sig: signal.Signals) -> None:
        """Send `sig` to a pid, or to a process group when `target` is negative.

        Raises:
            ProcessLookupError: if nothing received the signal
        """
        ...

    @abstractmethod
    def detach(self, entry: Callable[[], int]) -> None:
        """Run `entry` in a new session via a double fork.

        Returns immediately in the calling process. The detached process exits
        with the status returned by `entry` and never returns here.
        """
        ...

    @abstractmethod
    def isolate(self, working_directory: Path, log_file_path: Path) -> None:
        """Prepare the detached process: umask, cwd and standard streams."""
        ...

    @abstractmethod
    def getpid(self) -> int:
        ...

    def sleep(self, seconds: float) -> None:
        time.sleep(seconds)


def _exit_on_term(signum: int, frame: object) -> None:
    raise SystemExit(128 + signum)


def _zombie(pid: int) -> bool:
    """Check if `pid` has exited but not been reaped yet (Linux only)."""
    try:
        with open(f"/proc/{pid}/stat") as f:
            stat = f.read()
    except OSError:
        return False
    # The state letter follows the parenthesised command name.
    return stat.rpartition(")")[2].split()[:1] == ["Z"]


class PosixBackend(ProcessBackend):
    """Real processes and signals."""

    def alive(self, pid: int) -> bool:
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            # Exists, owned by someone else
            return True
        return not _zombie(pid)

    def process_group(self, pid: int) -> int:
        return os.getpgid(pid)

    def terminate(self, target: int, sig: signal.Signals) -> None:
        os.kill(target, sig)

    def detach(self, entry: Callable[[], int]) -> None:
        # Unflushed output would otherwise be written twice.
        sys.stdout.flush()
        sys.stderr.flush()

        pid = os.fork()
        if pid > 0:
            # The intermediate child exits right away; reap it.
            os.waitpid(pid, 0)
            return

        status = 1
        try:
            os.setsid()
            if os.fork() == 0:
                status = entry()
            else:
                status = 0
        except BaseException as error:
            # stderr is the launcher's terminal before isolate, the log after.
            sys.stderr.write(crash_banner(error))
            sys.stderr.flush()
        finally:
            os._exit(status)

    def isolate(self, working_directory: Path, log_file_path: Path) -> None:
        os.umask(0)
        os.chdir(working_directory)

        devnull = os.open(os.devnull, os.O_RDONLY)
        os.dup2(devnull, 0)
        os.close(devnull)

        log_fd = os.open(log_file_path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o666)
        os.dup2(log_fd, 1)
        os.dup2(log_fd, 2)
        os.close(log_fd)

        # Rebind the Python streams to the new descriptors, unbuffered.
        sys.stdin = open(0, closefd=False)
        sys.stdout = io.TextIOWrapper(open(1, "wb", buffering=0, closefd=False), write_through=True)
        sys.stderr = io.TextIOWrapper(open(2, "wb", buffering=0, closefd=False), write_through=True)

        signal.signal(signal.SIGTERM, _exit_on_term)

    def getpid(self) -> int:
        return os.getpid()
