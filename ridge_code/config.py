"""Configuration management for Ridge-Code."""

import os
import json
from pathlib import Path
from typing import Optional, Dict, Any, List, Union
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator
import logging
from urllib.parse import urlparse

import yaml
import tomli

from .safety import DEFAULT_BLOCKED_COMMANDS


DEFAULT_PROJECT_ID = "51040d59-dc3a-4f1b-a17a-cf707cd35937"


class AidisConfig(BaseModel):
    """Configuration for the AIDIS HTTP API connection."""

    base_url: str = Field(default="http://localhost:8080", description="AIDIS server URL")
    tools_path: str = Field(default="/mcp/tools", description="Path prefix for tool operations")
    project_id: str = Field(default=DEFAULT_PROJECT_ID, description="Project injected into every call")
    max_retries: int = Field(default=3, description="Maximum connect retry attempts")
    base_delay: float = Field(default=1.0, description="Initial retry delay in seconds")
    max_delay: float = Field(default=10.0, description="Upper bound for a single retry delay in seconds")
    request_timeout: int = Field(default=30, description="Request timeout in seconds")

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate that base_url is a properly formatted URL."""
        if not v:
            raise ValueError("base_url cannot be empty")

        # Add http:// if no scheme provided, AIDIS usually runs locally
        if not v.startswith(('http://', 'https://')):
            v = f'http://{v}'

        parsed = urlparse(v)
        if not parsed.netloc:
            raise ValueError(f"Invalid AIDIS URL format: {v}")

        return v.rstrip('/')

    @field_validator('tools_path')
    @classmethod
    def validate_tools_path(cls, v: str) -> str:
        """Normalize the tools path to '/segment' form."""
        v = v.strip().strip('/')
        return f'/{v}' if v else ''

    @field_validator('project_id')
    @classmethod
    def validate_project_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("project_id cannot be empty")
        return v.strip()

    @field_validator('max_retries')
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        """Validate max_retries is reasonable."""
        if v < 0:
            raise ValueError("max_retries cannot be negative")
        if v > 10:
            raise ValueError("max_retries should not exceed 10 (excessive retrying)")
        return v

    @field_validator('base_delay', 'max_delay')
    @classmethod
    def validate_delays(cls, v: float) -> float:
        if v < 0:
            raise ValueError("retry delays cannot be negative")
        return v

    @field_validator('request_timeout')
    @classmethod
    def validate_request_timeout(cls, v: int) -> int:
        """Validate request_timeout is reasonable."""
        if v <= 0:
            raise ValueError("request_timeout must be positive")
        if v > 300:  # 5 minutes
            raise ValueError("request_timeout should not exceed 300 seconds")
        return v


class ShellConfig(BaseModel):
    """Configuration for shell passthrough."""

    blocked_commands: List[str] = Field(
        default_factory=lambda: list(DEFAULT_BLOCKED_COMMANDS),
        description="Case-insensitive substrings that block a shell command"
    )
    timeout: float = Field(default=30.0, description="Hard timeout for a shell command in seconds")

    @field_validator('blocked_commands')
    @classmethod
    def validate_blocked_commands(cls, v: List[str]) -> List[str]:
        """Drop blank entries; an empty substring would block everything."""
        return [entry.strip() for entry in v if entry and entry.strip()]

    @field_validator('timeout')
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("shell timeout must be positive")
        return v


class HistoryConfig(BaseModel):
    """Configuration for the response history buffer."""

    capacity: int = Field(default=50, description="Maximum number of buffered responses")
    store_window: int = Field(default=5, description="Recent responses mined by /aidis_store")

    @field_validator('capacity', 'store_window')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("value must be positive")
        return v


class LLMConfig(BaseModel):
    """Configuration for LLM integration."""

    anthropic_api_key: Optional[str] = Field(None, description="Anthropic API key")
    openai_api_key: Optional[str] = Field(None, description="OpenAI API key")
    default_model: str = Field(default="claude-3-5-sonnet-20241022", description="Default LLM model")
    max_tokens: int = Field(default=4096, description="Maximum tokens per response")


class AppConfig(BaseModel):
    """Main application configuration."""

    aidis: AidisConfig = Field(default_factory=AidisConfig, description="AIDIS configuration")
    shell: ShellConfig = Field(default_factory=ShellConfig, description="Shell passthrough configuration")
    history: HistoryConfig = Field(default_factory=HistoryConfig, description="Response history configuration")
    llm: LLMConfig = Field(default_factory=LLMConfig, description="LLM configuration")
    log_level: str = Field(default="INFO", description="Logging level")

    def get(self, key: str) -> Any:
        """Look up a configuration value by dotted path, e.g. ``aidis.base_url``.

        Returns None when any segment of the path does not exist.
        """
        current: Any = self
        for part in key.split('.'):
            if isinstance(current, BaseModel):
                if part not in type(current).model_fields:
                    return None
                current = getattr(current, part)
            elif isinstance(current, dict):
                current = current.get(part)
            else:
                return None
        return current


def _read_yaml(path: Path) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}


def _read_toml(path: Path) -> Dict[str, Any]:
    with open(path, 'rb') as f:
        return tomli.load(f)


def _read_json(path: Path) -> Dict[str, Any]:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f) or {}


CONFIG_READERS = {
    '.yaml': _read_yaml,
    '.yml': _read_yaml,
    '.toml': _read_toml,
    '.json': _read_json,
}


def load_config_file(config_path: Union[str, Path]) -> Dict[str, Any]:
    """Load configuration from a YAML, TOML or JSON file."""
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    reader = CONFIG_READERS.get(config_path.suffix.lower())
    if reader is None:
        raise ValueError(f"Unsupported config file format: {config_path.suffix}")

    try:
        return reader(config_path)
    except Exception as e:
        logging.getLogger(__name__).error(f"Failed to load config file {config_path}: {e}")
        raise


def find_config_file() -> Optional[Path]:
    """Return the first existing file among the standard config locations."""
    for base in (Path.cwd() / "config", Path.cwd() / ".ridge-code",
                 Path.home() / ".config" / "ridge-code" / "config"):
        for suffix in CONFIG_READERS:
            candidate = base.with_name(base.name + suffix)
            if candidate.exists():
                return candidate

    return None


def merge_config(base_config: Dict[str, Any], override_config: Dict[str, Any]) -> Dict[str, Any]:
    """Merge configuration dictionaries with override taking precedence."""
    merged = base_config.copy()

    for key, value in override_config.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value

    return merged


# (section, field) -> environment variable; a None section means a top-level field
ENV_OVERRIDES = {
    ("aidis", "base_url"): "RIDGE_CODE_AIDIS_ENDPOINT",
    ("aidis", "project_id"): "RIDGE_CODE_PROJECT_ID",
    ("aidis", "max_retries"): "RIDGE_CODE_MAX_RETRIES",
    ("aidis", "request_timeout"): "RIDGE_CODE_REQUEST_TIMEOUT",
    ("shell", "blocked_commands"): "RIDGE_CODE_BLOCKED_COMMANDS",
    ("shell", "timeout"): "RIDGE_CODE_SHELL_TIMEOUT",
    ("history", "capacity"): "RIDGE_CODE_MAX_BUFFER",
    ("llm", "anthropic_api_key"): "ANTHROPIC_API_KEY",
    ("llm", "openai_api_key"): "OPENAI_API_KEY",
    ("llm", "default_model"): "RIDGE_CODE_MODEL",
    (None, "log_level"): "LOG_LEVEL",
}

LIST_FIELDS = {("shell", "blocked_commands")}


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(',') if item.strip()]


def env_overrides() -> Dict[str, Any]:
    """Collect the configuration values set through environment variables."""
    overrides: Dict[str, Any] = {}
    for (section, field), var in ENV_OVERRIDES.items():
        value: Any = os.getenv(var)
        if value is None:
            continue
        if (section, field) in LIST_FIELDS:
            value = _split_list(value)
        target = overrides if section is None else overrides.setdefault(section, {})
        target[field] = value
    return overrides


def load_config(config_file: Optional[Union[str, Path]] = None) -> AppConfig:
    """Load configuration from multiple sources with priority order.

    Priority (highest to lowest):
    1. Environment variables (a ``.env`` file is read into the environment first)
    2. Specified config file, or the auto-discovered one
    3. Default values

    Raises:
        FileNotFoundError: ``config_file`` was given but does not exist
        pydantic.ValidationError: a value is out of range or of the wrong type
    """
    logger = logging.getLogger(__name__)

    if config_file:
        config_path: Optional[Path] = Path(config_file)
        if not config_path.exists():
            raise FileNotFoundError(f"Specified config file not found: {config_path}")
    else:
        config_path = find_config_file()

    file_data: Dict[str, Any] = {}
    if config_path:
        file_data = load_config_file(config_path)
        logger.info(f"Loaded configuration from: {config_path}")

    load_dotenv()

    final_config = merge_config(file_data, env_overrides())
    logger.debug(f"Configuration sections: {sorted(final_config)}")

    # pydantic coerces the string values coming from the environment
    return AppConfig(
        aidis=AidisConfig(**final_config.get("aidis", {})),
        shell=ShellConfig(**final_config.get("shell", {})),
        history=HistoryConfig(**final_config.get("history", {})),
        llm=LLMConfig(**final_config.get("llm", {})),
        log_level=final_config.get("log_level", "INFO"),
    )
