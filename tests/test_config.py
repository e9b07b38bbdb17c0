"""Tests for configuration parsing."""

from pathlib import Path

from warden.config import Config, load_config, _parse_config
from warden.daemon.lifecycle import get_runtime_dir, initialize_runtime_dir


class TestConfig:
    """Tests for YAML config parsing."""

    def test_parse_empty_dict(self) -> None:
        """Test parsing empty config."""
        config = _parse_config({})

        assert config.daemons == {}
        assert config.console.tail_lines == 20

    def test_parse_daemon_settings(self) -> None:
        """Test parsing a daemon entry."""
        data = {
            "daemons": {
                "web": {
                    "command": ["python", "-m", "http.server", 8000],
                    "working_directory": "~/srv/web",
                    "environment": {"PORT": 8000},
                    "log_level": "DEBUG",
                }
            }
        }

        config = _parse_config(data)
        web = config.daemons["web"]

        assert web.command == ["python", "-m", "http.server", "8000"]
        assert web.working_directory == "~/srv/web"
        assert web.environment == {"PORT": "8000"}
        assert web.log_level == "DEBUG"

    def test_parse_command_string(self) -> None:
        """Test that a string command is split like a shell would."""
        config = _parse_config({"daemons": {"w": {"command": "sh -c 'sleep 10'"}}})

        assert config.daemons["w"].command == ["sh", "-c", "sleep 10"]

    def test_parse_empty_daemon_entry(self) -> None:
        config = _parse_config({"daemons": {"w": None}})

        assert config.daemons["w"].command == []
        assert config.daemons["w"].log_level == "INFO"

    def test_parse_console_settings(self) -> None:
        config = _parse_config({"console": {"tail_lines": 5}})

        assert config.console.tail_lines == 5

    def test_load_config_missing_file(self, tmp_path: Path) -> None:
        """Test loading config when file doesn't exist."""
        config = load_config(tmp_path)

        assert config == Config()

    def test_load_config_from_yaml(self, tmp_path: Path) -> None:
        """Test loading config from YAML file."""
        config_content = """
daemons:
  worker:
    command: ["sleep", "60"]
console:
  tail_lines: 40
"""
        (tmp_path / "config.yaml").write_text(config_content)

        config = load_config(tmp_path)

        assert config.daemons["worker"].command == ["sleep", "60"]
        assert config.console.tail_lines == 40


class TestRuntimeDir:
    """Tests for runtime directory setup."""

    def test_runtime_dir_from_env(self, tmp_path: Path, monkeypatch) -> None:
        monkeypatch.setenv("WARDEN_HOME", str(tmp_path / "home"))

        assert get_runtime_dir() == tmp_path / "home"

    def test_initialize_writes_default_config(self, tmp_path: Path) -> None:
        runtime_dir = initialize_runtime_dir(tmp_path / "warden")

        assert (runtime_dir / "config.yaml").exists()
        assert load_config(runtime_dir) == Config()

    def test_initialize_keeps_existing_config(self, tmp_path: Path) -> None:
        (tmp_path / "config.yaml").write_text("console:\n  tail_lines: 3\n")

        initialize_runtime_dir(tmp_path)

        assert load_config(tmp_path).console.tail_lines == 3
