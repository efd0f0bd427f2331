"""Pytest configuration and shared fixtures."""

import pytest
import os
import logging
from unittest.mock import Mock

from ridge_code.config import AidisConfig
from ridge_code.history import ResponseHistory

# Disable logging during tests to reduce noise
logging.disable(logging.CRITICAL)


@pytest.fixture(autouse=True)
def clean_env():
    """Clean environment variables before each test."""
    env_vars_to_clean = [
        "RIDGE_CODE_AIDIS_ENDPOINT",
        "RIDGE_CODE_PROJECT_ID",
        "RIDGE_CODE_MAX_RETRIES",
        "RIDGE_CODE_REQUEST_TIMEOUT",
        "RIDGE_CODE_MAX_BUFFER",
        "RIDGE_CODE_SHELL_TIMEOUT",
        "RIDGE_CODE_BLOCKED_COMMANDS",
        "RIDGE_CODE_MODEL",
        "ANTHROPIC_API_KEY",
        "OPENAI_API_KEY",
        "LOG_LEVEL",
    ]

    # Store original values
    original_values = {}
    for var in env_vars_to_clean:
        original_values[var] = os.environ.get(var)
        if var in os.environ:
            del os.environ[var]

    yield

    # Restore original values
    for var, value in original_values.items():
        if value is not None:
            os.environ[var] = value
        elif var in os.environ:
            del os.environ[var]


@pytest.fixture
def aidis_config():
    """AIDIS configuration pointing at a fake local server."""
    return AidisConfig(
        base_url="http://aidis.test:8080",
        project_id="test-project",
        max_retries=3,
        base_delay=0.01,
        max_delay=0.1,
        request_timeout=5,
    )


@pytest.fixture
def tools_url():
    """Base URL of the tool endpoints for aidis_config."""
    return "http://aidis.test:8080/mcp/tools"


@pytest.fixture
def history():
    """Empty response history with default capacity."""
    return ResponseHistory()


@pytest.fixture
def no_sleep():
    """Sleep replacement that records the requested delays."""
    return Mock()


@pytest.fixture
def context_store_text():
    """Model output carrying one valid context_store command."""
    return (
        'Here is what I found. mcp__aidis__context_store '
        '{"content": "Use a deque for the history", "type": "decision", "tags": ["design"]} '
        'Let me know if you need more.'
    )
