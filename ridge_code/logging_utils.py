import logging
from typing import Optional


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# HTTP and SDK loggers that flood INFO with per-request lines
NOISY_LOGGERS = ("urllib3", "httpx", "anthropic", "openai")


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None):
    """
    Set up logging for the application.
    Args:
        log_level (str): Logging level as a string (e.g., 'DEBUG', 'INFO').
        log_file (str): Write records to this file instead of stderr, which keeps
            them out of streamed chat output.
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    handlers = [logging.FileHandler(log_file, encoding="utf-8")] if log_file else None
    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
        handlers=handlers,
    )

    third_party_level = logging.DEBUG if numeric_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)
