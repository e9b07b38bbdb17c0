"""Shared fixtures: an in-memory process table and a stub daemon."""

import io
import logging
import signal
from pathlib import Path
from typing import Callable

import pytest
from rich.console import Console

from warden.daemon.base import Daemon
from warden.daemon.controller import Controller
from warden.daemon.platform import ProcessBackend


class FakeProcess:
    """A process that dies on any signal it does not ignore."""

    def __init__(self, pid: int, ignores: tuple[signal.Signals, ...] = ()):
        self.pid = pid
        self.ignores = set(ignores)
        self.alive = True


class FakeBackend(ProcessBackend):
    """Process table with a virtual clock."""

    def __init__(self):
        self.clock = 0.0
        self.processes: dict[int, FakeProcess] = {}
        self.signals: list[tuple[int, signal.Signals]] = []
        self.detached: list[Callable[[], int]] = []
        self.isolated: list[tuple[Path, Path]] = []
        self.on_detach: Callable[[Callable[[], int]], None] | None = None
        self.current_pid = 4242
        self._timers: list[tuple[float, Callable[[], None]]] = []

    def add_process(self, pid: int, ignores: tuple[signal.Signals, ...] = ()) -> FakeProcess:
        process = FakeProcess(pid, ignores)
        self.processes[pid] = process
        return process

    def call_at(self, when: float, callback: Callable[[], None]) -> None:
        """Run `callback` once the clock reaches `when`."""
        self._timers.append((when, callback))

    def alive(self, pid: int) -> bool:
        process = self.processes.get(pid)
        return process is not None and process.alive

    def process_group(self, pid: int) -> int:
        if not self.alive(pid):
            raise ProcessLookupError(pid)
        return pid

    def terminate(self, target: int, sig: signal.Signals) -> None:
        self.signals.append((target, sig))
        process = self.processes.get(abs(target))
        if process is None or not process.alive:
            raise ProcessLookupError(target)
        if sig not in process.ignores:
            process.alive = False

    def detach(self, entry: Callable[[], int]) -> None:
        self.detached.append(entry)
        if self.on_detach is not None:
            self.on_detach(entry)

    def isolate(self, working_directory: Path, log_file_path: Path) -> None:
        self.isolated.append((working_directory, log_file_path))

    def getpid(self) -> int:
        return self.current_pid

    def sleep(self, seconds: float) -> None:
        self.clock += seconds
        due = [timer for timer in self._timers if timer[0] <= self.clock]
        for timer in due:
            self._timers.remove(timer)
            timer[1]()


class StubDaemon(Daemon):
    """Daemon whose workload can be told to fail."""

    def __init__(self, working_directory: Path, error: BaseException | None = None):
        super().__init__(name="stub", working_directory=working_directory)
        self.error = error
        self.runs = 0

    def run(self) -> None:
        self.runs += 1
        if self.error is not None:
            raise self.error


def make_console() -> Console:
    return Console(file=io.StringIO(), width=200, color_system=None)


def output(console: Console) -> str:
    return console.file.getvalue()


@pytest.fixture(autouse=True)
def reset_warden_logger():
    """Drop handlers installed by configure_logging during a test."""
    yield
    logger = logging.getLogger("warden")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def daemon(tmp_path: Path) -> StubDaemon:
    return StubDaemon(tmp_path / "stub")


@pytest.fixture
def controller(daemon: StubDaemon, backend: FakeBackend) -> Controller:
    return Controller(
        daemon,
        backend=backend,
        console=make_console(),
        err_console=make_console(),
    )
