"""Start, stop, restart and status for a single daemon."""

import logging
import signal
import sys
from typing import Sequence

from rich.console import Console

from .base import Daemon
from .lifecycle import configure_logging
from .log_file import crash_banner, stopping_banner
from .platform import PosixBackend, ProcessBackend
from .process_file import ProcessFile
from .states import DaemonState, StartOutcome, StatusReport, StopOutcome

logger = logging.getLogger("warden.controller")

COMMANDS = ("start", "stop", "restart", "status")


class Controller:
    """Drives a daemon between stopped and running.

    All coordination with the daemon goes through its process file, its log
    file and signals. Waiting is done by fixed-interval polling with bounded
    retries.
    """

    # Start poll iterations, one second apart
    TIMEOUT = 5
    # Escalation attempts after the initial interrupt
    STOP_ATTEMPTS = 5
    # The last attempts of the escalation send KILL instead of TERM
    KILL_ATTEMPTS = 2

    def __init__(
        self,
        daemon: Daemon,
        backend: ProcessBackend | None = None,
        console: Console | None = None,
        err_console: Console | None = None,
        tail_lines: int = 20,
    ):
        self.daemon = daemon
        self.backend = backend or PosixBackend()
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)
        self.tail_lines = tail_lines
        self.process_file = ProcessFile(daemon.process_file_path, self.backend)

    def daemonize(self, argv: Sequence[str]) -> bool:
        """
        Dispatch a command verb.

        Args:
            argv: Arguments, the first one being start, stop, restart or status

        Returns:
            True if the command left the daemon in the requested state

        Raises:
            ValueError: if the verb is missing or not recognised
        """
        command = argv[0] if argv else None

        if command == "start":
            outcome = self.start()
            self.status()
            return outcome.succeeded
        elif command == "stop":
            stopped = self.stop()
            self.status()
            if stopped.succeeded:
                self.process_file.cleanup()
            return stopped.succeeded
        elif command == "restart":
            return self.restart().succeeded
        elif command == "status":
            self.status()
            return True

        raise ValueError("Invalid command. Please specify start, restart, stop or status.")

    def spawn(self) -> None:
        """Launch the daemon in a detached session."""
        self.daemon.prefork()
        self.daemon.mark_log()

        self.backend.detach(self._daemon_main)

    def _daemon_main(self) -> int:
        """Body of the detached daemon process. Returns its exit status."""
        self.process_file.store(self.backend.getpid())

        self.backend.isolate(self.daemon.working_directory, self.daemon.log_file_path)
        configure_logging(self.daemon.log_level, sys.stderr)

        status = 0
        try:
            self.daemon.run()
        except KeyboardInterrupt:
            logger.info("Daemon interrupted")
        except SystemExit as error:
            logger.info(f"Daemon exited with code {error.code}")
            if isinstance(error.code, int):
                status = error.code
            elif error.code is not None:
                # sys.exit("message") exits with 1
                status = 1
        except Exception as error:
            sys.stderr.write(crash_banner(error))
            status = 1
        finally:
            sys.stderr.write(stopping_banner())
            sys.stderr.flush()

        return status

    def start(self) -> StartOutcome:
        """Start the daemon unless it is already running."""
        self.err_console.print("[blue]Starting daemon...[/blue]")

        state = self.process_file.status()
        if state is DaemonState.RUNNING:
            self.err_console.print("[blue]Daemon already running![/blue]")
            return StartOutcome.ALREADY_RUNNING
        elif state is DaemonState.UNKNOWN:
            self.err_console.print(
                "[red]Daemon in unknown state! Will clear previous state and continue.[/red]"
            )
            self.process_file.clear()

        self.spawn()

        self.backend.sleep(0.1)
        timer = self.TIMEOUT
        pid = self.process_file.recall()

        while pid is None and timer > 0:
            # Forking and writing the process file happen asynchronously.
            self.err_console.print(
                f"[blue]Waiting for daemon to start ({timer}/{self.TIMEOUT})[/blue]"
            )
            self.backend.sleep(1)

            # A crashed daemon will never write its pid.
            if self.daemon.crashed():
                logger.debug("Crash detected while waiting for start")
                return StartOutcome.CRASHED

            pid = self.process_file.recall()
            timer -= 1

        if pid is None:
            logger.debug(f"No pid recorded after {self.TIMEOUT} polls")
            return StartOutcome.TIMED_OUT

        # A recorded pid only proves the daemon got as far as writing it.
        if not self.process_file.running():
            if self.daemon.crashed():
                logger.debug(f"Pid {pid} crashed right after starting")
                return StartOutcome.CRASHED
            logger.debug(f"Pid {pid} exited right after starting")
            return StartOutcome.EXITED

        logger.debug(f"Daemon recorded pid {pid}")
        return StartOutcome.STARTED

    def status(self) -> StatusReport:
        """Print the daemon status. Never changes the process file."""
        state = self.process_file.status()

        if state is DaemonState.RUNNING:
            self.console.print(
                f"[green]Daemon status: running pid={self.process_file.recall()}[/green]"
            )
            return StatusReport.RUNNING
        elif state is DaemonState.UNKNOWN:
            if self.daemon.crashed():
                self.console.print("[red]Daemon status: crashed[/red]")

                self.console.file.flush()
                self.err_console.print("[red]Dumping daemon crash log:[/red]")
                self.daemon.tail_log(self.err_console.file, self.tail_lines)
                return StatusReport.CRASHED

            self.console.print("[red]Daemon status: unknown[/red]")
            return StatusReport.UNKNOWN

        self.console.print("[blue]Daemon status: stopped[/blue]")
        return StatusReport.STOPPED

    def stop(self) -> StopOutcome:
        """Stop the daemon's process group, escalating INT, TERM, KILL."""
        self.err_console.print("[blue]Stopping daemon...[/blue]")

        if not self.process_file.exists():
            self.err_console.print("[red]Pid file not found. Is the daemon running?[/red]")
            return StopOutcome.NOT_FOUND

        pid = self.process_file.recall()

        if pid is None:
            self.err_console.print(
                f"[red]Pid file {self.process_file.path} is malformed. Has daemon crashed?[/red]"
            )
            self.daemon.tail_log(self.err_console.file, self.tail_lines)
            return StopOutcome.NOT_RUNNING

        if not self.process_file.running():
            self.err_console.print(f"[red]Pid {pid} is not running. Has daemon crashed?[/red]")
            self.daemon.tail_log(self.err_console.file, self.tail_lines)
            return StopOutcome.NOT_RUNNING

        try:
            pgid = -self.backend.process_group(pid)
        except ProcessLookupError:
            # Died between the liveness check and now.
            logger.debug(f"Pid {pid} exited before it could be signalled")
            self.process_file.clear()
            return StopOutcome.STOPPED

        self._signal(pgid, signal.SIGINT)
        self.backend.sleep(0.1)

        if self.process_file.running():
            self.backend.sleep(1)

        # If the daemon didn't die easily, shoot it a few more times.
        attempts = self.STOP_ATTEMPTS
        while self.process_file.running() and attempts > 0:
            sig = signal.SIGKILL if attempts <= self.KILL_ATTEMPTS else signal.SIGTERM

            self.err_console.print(f"[red]Sending {sig.name[3:]} to process group {pgid}...[/red]")
            self._signal(pgid, sig)

            attempts -= 1
            self.backend.sleep(1)

        if self.process_file.running():
            self.err_console.print("[red]Daemon appears to be still running![/red]")
            return StopOutcome.STILL_RUNNING

        self.process_file.clear()
        return StopOutcome.STOPPED

    def restart(self) -> StartOutcome | StopOutcome:
        """Stop, clean up, start and report.

        Returns the stop outcome if the daemon survived the stop, the start
        outcome otherwise.
        """
        stopped = self.stop()
        if not stopped.succeeded:
            self.status()
            return stopped

        self.process_file.cleanup()
        started = self.start()
        self.status()
        return started

    def _signal(self, target: int, sig: signal.Signals) -> None:
        logger.debug(f"Sending {sig.name} to {target}")
        try:
            self.backend.terminate(target, sig)
        except ProcessLookupError:
            logger.debug(f"No process left in group {target}")


def daemonize(daemon: Daemon, argv: Sequence[str] | None = None, **kwargs) -> bool:
    """
    Control `daemon` from a script's command line.

    Args:
        daemon: The daemon to control
        argv: Command arguments, defaults to sys.argv[1:]
        **kwargs: Passed to Controller

    Returns:
        True on success
    """
    if argv is None:
        argv = sys.argv[1:]
    return Controller(daemon, **kwargs).daemonize(argv)
