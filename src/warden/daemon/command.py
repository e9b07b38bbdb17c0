"""Daemon that runs an external command."""

import logging
import os
import subprocess
from pathlib import Path

from ..config import DaemonSettings
from .base import Daemon

logger = logging.getLogger("warden.command")


class CommandDaemon(Daemon):
    """Runs a configured command line as the daemon workload.

    The command inherits the daemon's process group, so signals sent by
    `stop` reach it as well.
    """

    def __init__(
        self,
        name: str,
        command: list[str],
        working_directory: Path | None = None,
        environment: dict[str, str] | None = None,
        log_level: str = "INFO",
    ):
        super().__init__(name=name, working_directory=working_directory)
        self.command = list(command)
        self.environment = dict(environment or {})
        self.log_level = log_level

    @classmethod
    def from_settings(
        cls, name: str, settings: DaemonSettings, runtime_dir: Path
    ) -> "CommandDaemon":
        """Build a daemon from its config entry."""
        working_directory = (
            Path(settings.working_directory).expanduser()
            if settings.working_directory
            else runtime_dir / name
        )
        return cls(
            name=name,
            command=settings.command,
            working_directory=working_directory,
            environment=settings.environment,
            log_level=settings.log_level,
        )

    def run(self) -> None:
        if not self.command:
            raise ValueError(f"No command configured for daemon '{self.name}'")

        env = {**os.environ, **self.environment}
        logger.info(f"Running: {subprocess.list2cmdline(self.command)}")

        with subprocess.Popen(self.command, cwd=self.working_directory, env=env) as process:
            returncode = process.wait()

        logger.info(f"Command exited with status {returncode}")
        if returncode != 0:
            raise subprocess.CalledProcessError(returncode, self.command)
