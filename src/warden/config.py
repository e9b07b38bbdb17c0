"""YAML-based configuration."""

import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .daemon.lifecycle import get_runtime_dir


@dataclass
class DaemonSettings:
    command: list[str] = field(default_factory=list)
    working_directory: str | None = None
    environment: dict[str, str] = field(default_factory=dict)
    log_level: str = "INFO"


@dataclass
class ConsoleSettings:
    tail_lines: int = 20


@dataclass
class Config:
    daemons: dict[str, DaemonSettings] = field(default_factory=dict)
    console: ConsoleSettings = field(default_factory=ConsoleSettings)


def load_config(runtime_dir: Path | None = None) -> Config:
    """Load configuration from YAML file."""
    if runtime_dir is None:
        runtime_dir = get_runtime_dir()

    config_path = runtime_dir / "config.yaml"

    if not config_path.exists():
        return Config()

    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    return _parse_config(data)


def _parse_command(value: Any) -> list[str]:
    """Accept either a list of arguments or a shell-style string."""
    if value is None:
        return []
    if isinstance(value, str):
        return shlex.split(value)
    return [str(arg) for arg in value]


def _parse_config(data: dict[str, Any]) -> Config:
    """Parse YAML data into Config object."""
    config = Config()

    for name, d in (data.get("daemons") or {}).items():
        d = d or {}
        config.daemons[str(name)] = DaemonSettings(
            command=_parse_command(d.get("command")),
            working_directory=d.get("working_directory"),
            environment={str(k): str(v) for k, v in (d.get("environment") or {}).items()},
            log_level=d.get("log_level", "INFO"),
        )

    if "console" in data:
        c = data["console"] or {}
        config.console = ConsoleSettings(
            tail_lines=c.get("tail_lines", 20),
        )

    return config
