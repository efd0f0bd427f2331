"""Tests for configuration loading."""

import json

import pytest
from pydantic import ValidationError

from ridge_code.config import (
    AidisConfig,
    AppConfig,
    HistoryConfig,
    ShellConfig,
    DEFAULT_PROJECT_ID,
    load_config,
    load_config_file,
    merge_config,
)
from ridge_code.safety import DEFAULT_BLOCKED_COMMANDS


@pytest.fixture
def isolated_dirs(tmp_path, monkeypatch):
    """Run with an empty working directory and home so no config file is discovered."""
    home = tmp_path / "home"
    home.mkdir()
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(work)
    return work


class TestAidisConfig:

    def test_defaults(self):
        config = AidisConfig()

        assert config.base_url == "http://localhost:8080"
        assert config.tools_path == "/mcp/tools"
        assert config.project_id == DEFAULT_PROJECT_ID
        assert config.max_retries == 3
        assert config.base_delay == 1.0
        assert config.max_delay == 10.0
        assert config.request_timeout == 30

    def test_url_normalization(self):
        assert AidisConfig(base_url="aidis.local:9000/").base_url == "http://aidis.local:9000"
        assert AidisConfig(base_url="https://aidis.example.com").base_url == "https://aidis.example.com"

    def test_tools_path_normalization(self):
        assert AidisConfig(tools_path="api/tools/").tools_path == "/api/tools"
        assert AidisConfig(tools_path="/").tools_path == ""

    @pytest.mark.parametrize("field,value", [
        ("base_url", ""),
        ("project_id", "  "),
        ("max_retries", -1),
        ("max_retries", 11),
        ("request_timeout", 0),
        ("request_timeout", 301),
        ("base_delay", -0.5),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            AidisConfig(**{field: value})


class TestShellAndHistoryConfig:

    def test_shell_defaults(self):
        config = ShellConfig()
        assert config.blocked_commands == list(DEFAULT_BLOCKED_COMMANDS)
        assert config.timeout == 30.0

    def test_blank_entries_dropped(self):
        config = ShellConfig(blocked_commands=["curl ", "", "   ", "wget"])
        assert config.blocked_commands == ["curl", "wget"]

    def test_shell_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            ShellConfig(timeout=0)

    def test_history_defaults(self):
        config = HistoryConfig()
        assert config.capacity == 50
        assert config.store_window == 5

    def test_history_capacity_must_be_positive(self):
        with pytest.raises(ValidationError):
            HistoryConfig(capacity=0)


class TestAppConfigGet:

    def test_dotted_lookup(self):
        config = AppConfig()

        assert config.get("aidis.base_url") == "http://localhost:8080"
        assert config.get("history.capacity") == 50
        assert config.get("log_level") == "INFO"

    def test_missing_key(self):
        config = AppConfig()

        assert config.get("aidis.nope") is None
        assert config.get("nope") is None
        assert config.get("log_level.deeper") is None


class TestLoadConfig:

    def test_defaults_without_sources(self, isolated_dirs):
        config = load_config()

        assert config.aidis.base_url == "http://localhost:8080"
        assert config.shell.blocked_commands == list(DEFAULT_BLOCKED_COMMANDS)
        assert config.history.capacity == 50
        assert config.llm.anthropic_api_key is None

    def test_environment_overrides(self, isolated_dirs, monkeypatch):
        monkeypatch.setenv("RIDGE_CODE_AIDIS_ENDPOINT", "http://aidis.internal:9090")
        monkeypatch.setenv("RIDGE_CODE_PROJECT_ID", "proj-42")
        monkeypatch.setenv("RIDGE_CODE_MAX_RETRIES", "5")
        monkeypatch.setenv("RIDGE_CODE_REQUEST_TIMEOUT", "12")
        monkeypatch.setenv("RIDGE_CODE_BLOCKED_COMMANDS", "curl, wget ,,")
        monkeypatch.setenv("RIDGE_CODE_SHELL_TIMEOUT", "2.5")
        monkeypatch.setenv("RIDGE_CODE_MAX_BUFFER", "10")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant")
        monkeypatch.setenv("RIDGE_CODE_MODEL", "gpt-4o")
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        config = load_config()

        assert config.aidis.base_url == "http://aidis.internal:9090"
        assert config.aidis.project_id == "proj-42"
        assert config.aidis.max_retries == 5
        assert config.aidis.request_timeout == 12
        assert config.shell.blocked_commands == ["curl", "wget"]
        assert config.shell.timeout == 2.5
        assert config.history.capacity == 10
        assert config.llm.anthropic_api_key == "sk-ant"
        assert config.llm.default_model == "gpt-4o"
        assert config.log_level == "DEBUG"

    def test_yaml_file(self, isolated_dirs):
        config_file = isolated_dirs / "custom.yaml"
        config_file.write_text(
            "aidis:\n"
            "  base_url: http://yaml-host:8080\n"
            "  max_retries: 1\n"
            "history:\n"
            "  store_window: 3\n"
            "log_level: WARNING\n"
        )

        config = load_config(config_file)

        assert config.aidis.base_url == "http://yaml-host:8080"
        assert config.aidis.max_retries == 1
        assert config.history.store_window == 3
        assert config.log_level == "WARNING"

    def test_environment_beats_file(self, isolated_dirs, monkeypatch):
        config_file = isolated_dirs / "custom.json"
        config_file.write_text(json.dumps({"aidis": {"base_url": "http://file-host", "max_retries": 2}}))
        monkeypatch.setenv("RIDGE_CODE_AIDIS_ENDPOINT", "http://env-host")

        config = load_config(str(config_file))

        assert config.aidis.base_url == "http://env-host"
        assert config.aidis.max_retries == 2

    def test_toml_file(self, isolated_dirs):
        config_file = isolated_dirs / "custom.toml"
        config_file.write_text('[shell]\nblocked_commands = ["docker rm"]\ntimeout = 5\n')

        config = load_config(config_file)

        assert config.shell.blocked_commands == ["docker rm"]
        assert config.shell.timeout == 5.0

    def test_auto_discovered_file(self, isolated_dirs):
        (isolated_dirs / ".ridge-code.yaml").write_text("aidis:\n  project_id: discovered\n")

        config = load_config()

        assert config.aidis.project_id == "discovered"

    def test_missing_explicit_file(self, isolated_dirs):
        with pytest.raises(FileNotFoundError):
            load_config(isolated_dirs / "absent.yaml")

    def test_invalid_environment_value(self, isolated_dirs, monkeypatch):
        monkeypatch.setenv("RIDGE_CODE_MAX_RETRIES", "many")

        with pytest.raises(ValidationError):
            load_config()


def test_load_config_file_unsupported_format(tmp_path):
    config_file = tmp_path / "config.ini"
    config_file.write_text("[aidis]\n")

    with pytest.raises(ValueError, match="Unsupported config file format"):
        load_config_file(config_file)


def test_merge_config_is_deep():
    base = {"aidis": {"base_url": "a", "max_retries": 1}, "log_level": "INFO"}
    override = {"aidis": {"base_url": "b"}}

    merged = merge_config(base, override)

    assert merged == {"aidis": {"base_url": "b", "max_retries": 1}, "log_level": "INFO"}
    assert base["aidis"]["base_url"] == "a"
