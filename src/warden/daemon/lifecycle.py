"""Runtime directory layout and logging setup."""

import logging
import os
from pathlib import Path
from typing import TextIO

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger("warden")


def get_runtime_dir() -> Path:
    """Get the runtime directory path."""
    home = os.environ.get("WARDEN_HOME")
    if home:
        return Path(home).expanduser()
    return Path.home() / ".warden"


def initialize_runtime_dir(runtime_dir: Path | None = None) -> Path:
    """
    Initialize the runtime directory on first run.

    Creates ~/.warden/ and writes a default config if there is none.

    Returns:
        Path to the runtime directory
    """
    if runtime_dir is None:
        runtime_dir = get_runtime_dir()

    runtime_dir.mkdir(parents=True, exist_ok=True)

    config_path = runtime_dir / "config.yaml"
    if not config_path.exists():
        _create_minimal_defaults(config_path)

    return runtime_dir


def _create_minimal_defaults(config_path: Path) -> None:
    """Create minimal default configuration."""
    config_content = """# Daemons managed by warden.
#
# daemons:
#   web:
#     command: ["python", "-m", "http.server", "8000"]
#     working_directory: ~/srv/web
#     environment:
#       PYTHONUNBUFFERED: "1"
#     log_level: INFO

daemons: {}

console:
  tail_lines: 20
"""
    config_path.write_text(config_content)


def configure_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    """Send warden log records to `stream`, replacing earlier handlers."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logger.setLevel(log_level)
    logger.addHandler(handler)
