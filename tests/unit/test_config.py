"""Tests for configuration system."""

from pathlib import Path

import pytest

from fleetjoin.config.schemas import (
    ApiConfig,
    ConnectivityMode,
    FleetJoinConfig,
    SSHConfig,
)
from fleetjoin.config.loader import (
    _parse_env_value,
    create_default_config,
    deep_merge,
    get_config_paths,
    get_env_overrides,
    load_config,
    load_yaml_config,
)


@pytest.fixture(autouse=True)
def isolated_config_paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep user and project config files out of the tests."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(
        "fleetjoin.config.defaults.DEFAULT_CONFIG_FILE",
        tmp_path / "fake_home" / "config.yaml",
    )
    monkeypatch.setattr(
        "fleetjoin.config.defaults.SYSTEM_CONFIG_FILE",
        tmp_path / "etc" / "config.yaml",
    )


class TestConfigSchemas:
    """Test configuration schema validation."""

    def test_default_config_valid(self) -> None:
        """Default configuration should be valid."""
        config = FleetJoinConfig()
        assert config.ssh.port == 22222
        assert config.ssh.username == "root"
        assert config.discovery.timeout_ms == 4000
        assert config.discovery.liveness_port == 2375
        assert config.discovery.liveness_timeout_ms == 2000
        assert config.join.config_tool == "os-config"
        assert config.join.connectivity == ConnectivityMode.CONNMAN

    def test_port_validation(self) -> None:
        """SSH port must be a valid TCP port."""
        assert SSHConfig(port=22).port == 22

        with pytest.raises(ValueError):
            SSHConfig(port=70000)

    def test_api_url_normalized(self) -> None:
        """Trailing slashes are removed from the API URL."""
        assert ApiConfig(url="https://api.example.com/").url == "https://api.example.com"

    def test_log_level_validation(self) -> None:
        """Log level should be validated."""
        assert FleetJoinConfig(log_level="debug").log_level == "DEBUG"

        with pytest.raises(ValueError):
            FleetJoinConfig(log_level="INVALID")


class TestConfigLoader:
    """Test configuration loading."""

    def test_load_default_config(self) -> None:
        """Loading without file should return defaults."""
        config = load_config(include_env=False)
        assert isinstance(config, FleetJoinConfig)
        assert config.log_level == "WARNING"

    def test_load_from_file(self, temp_config_file: Path) -> None:
        """Should load config from file."""
        config = load_config(temp_config_file, include_env=False)
        assert config.api.url == "https://api.example.com"
        assert config.api.base_url == "example.com"
        assert config.ssh.port == 22
        assert config.discovery.timeout_ms == 1000
        assert config.log_level == "DEBUG"

    def test_file_not_found(self, tmp_path: Path) -> None:
        """Should raise error for missing explicit config file."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nonexistent.yaml")

    def test_project_config_is_found(self, tmp_path: Path) -> None:
        """A .fleetjoin.yaml in the working directory is picked up."""
        project_config = tmp_path / ".fleetjoin.yaml"
        project_config.write_text("log_level: INFO\n")

        assert project_config in get_config_paths()
        assert load_config(include_env=False).log_level == "INFO"

    def test_unreadable_standard_file_is_skipped(self, tmp_path: Path) -> None:
        """A broken standard config file does not stop loading."""
        (tmp_path / ".fleetjoin.yaml").write_text("- not\n- a mapping\n")

        config = load_config(include_env=False)
        assert config.log_level == "WARNING"

    def test_explicit_file_overrides_project_file(self, tmp_path: Path, temp_config_file: Path) -> None:
        """The --config file wins over standard locations."""
        (tmp_path / ".fleetjoin.yaml").write_text("log_level: ERROR\n")

        config = load_config(temp_config_file, include_env=False)
        assert config.log_level == "DEBUG"

    def test_deep_merge(self) -> None:
        """Test deep dictionary merging."""
        base = {"a": 1, "b": {"c": 2, "d": 3}}
        override = {"b": {"c": 10}, "e": 5}

        result = deep_merge(base, override)

        assert result == {"a": 1, "b": {"c": 10, "d": 3}, "e": 5}
        assert base["b"]["c"] == 2

    def test_parse_env_value_types(self) -> None:
        """Test parsing of environment variable types."""
        assert _parse_env_value("true") is True
        assert _parse_env_value("no") is False
        assert _parse_env_value("42") == 42
        assert _parse_env_value("3.14") == 3.14
        assert _parse_env_value("hello") == "hello"

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test environment variable overrides."""
        monkeypatch.setenv("FLEETJOIN_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("FLEETJOIN_SSH__PORT", "22")

        overrides = get_env_overrides()

        assert overrides["log_level"] == "DEBUG"
        assert overrides["ssh"]["port"] == 22

    def test_api_token_is_not_a_setting(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """The token variable never leaks into the settings tree."""
        monkeypatch.setenv("FLEETJOIN_API_TOKEN", "secret")

        assert "api_token" not in get_env_overrides()

    def test_env_wins_over_file(self, temp_config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Environment variables override file values."""
        monkeypatch.setenv("FLEETJOIN_SSH__PORT", "2222")

        config = load_config(temp_config_file)
        assert config.ssh.port == 2222

    def test_load_yaml_config_empty(self, tmp_path: Path) -> None:
        """Empty YAML yields an empty mapping."""
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")

        assert load_yaml_config(config_file) == {}

    def test_create_default_config(self, tmp_path: Path) -> None:
        """Test creating default configuration file."""
        config_path = tmp_path / "newconfig" / "config.yaml"
        create_default_config(config_path)

        content = config_path.read_text()
        assert "# fleetjoin configuration" in content
        assert load_config(config_path, include_env=False).ssh.port == 22222
