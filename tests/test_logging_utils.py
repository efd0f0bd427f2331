"""Tests for logging setup."""

import logging

import pytest
from unittest.mock import patch

from ridge_code.logging_utils import setup_logging, NOISY_LOGGERS, LOG_FORMAT


@pytest.fixture(autouse=True)
def restore_third_party_levels():
    levels = {name: logging.getLogger(name).level for name in NOISY_LOGGERS}
    yield
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)


def test_invalid_level():
    with pytest.raises(ValueError, match="Invalid log level: LOUD"):
        setup_logging("LOUD")


@patch("ridge_code.logging_utils.logging.basicConfig")
def test_level_is_case_insensitive(mock_basic_config):
    setup_logging("debug")

    mock_basic_config.assert_called_once_with(level=logging.DEBUG, format=LOG_FORMAT, handlers=None)


@patch("ridge_code.logging_utils.logging.basicConfig")
def test_third_party_loggers_quieted(mock_basic_config):
    setup_logging("INFO")

    for name in NOISY_LOGGERS:
        assert logging.getLogger(name).level == logging.WARNING


@patch("ridge_code.logging_utils.logging.basicConfig")
def test_third_party_loggers_verbose_at_debug(mock_basic_config):
    setup_logging("DEBUG")

    assert logging.getLogger("urllib3").level == logging.DEBUG


@patch("ridge_code.logging_utils.logging.basicConfig")
def test_log_file_handler(mock_basic_config, tmp_path):
    log_file = tmp_path / "ridge.log"

    setup_logging("INFO", log_file=str(log_file))

    handlers = mock_basic_config.call_args.kwargs["handlers"]
    assert len(handlers) == 1
    assert isinstance(handlers[0], logging.FileHandler)
    assert handlers[0].baseFilename == str(log_file)
    handlers[0].close()
