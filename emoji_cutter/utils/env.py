"""Environment and utility functions."""

import logging
import os
import sys
from pathlib import Path

from ..config import API_KEY_ENV, BASE_URL_ENV, ENV_FILE, LOG_DATE_FORMAT, LOG_FORMAT

# Chatty loggers from the HTTP stack used by the vision adapters
QUIET_LOGGERS = ("urllib3", "requests", "PIL")


def setup_logging(level: int = logging.INFO, log_file: str | None = None) -> None:
    """Set up logging configuration.

    Logs go to stderr and, when ``log_file`` is given, to that file as well.

    Args:
        level: Logging level
        log_file: Path to log file (None to disable file logging)
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
            handlers.append(file_handler)
        except OSError as e:
            # Fall back to console-only if file logging fails
            print(f"Warning: Could not open log file '{log_file}': {e}", file=sys.stderr)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True  # Replace any existing handlers
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def read_env_file(key: str, env_file: Path | str = ENV_FILE) -> str | None:
    """Read ``KEY=value`` from a dotenv-style file.

    Blank values and the ``your_key_here`` placeholder count as missing.
    """
    env_path = Path(env_file)
    if not env_path.exists():
        return None
    try:
        with open(env_path, encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if line.startswith(f"{key}="):
                    value = line.split('=', 1)[1].strip().strip('"').strip("'")
                    if value and value != 'your_key_here':
                        return value
    except OSError as e:
        logging.getLogger(__name__).debug(f"Failed to read {env_path}: {e}")
    return None


def load_api_key(env_file: Path | str = ENV_FILE) -> str | None:
    """Load the vision API key from the environment or the .env file.

    Returns:
        Key string or None if not found
    """
    key = os.getenv(API_KEY_ENV)
    if key:
        return key.strip()

    key = read_env_file(API_KEY_ENV, env_file)
    if key:
        os.environ[API_KEY_ENV] = key
    return key


def load_base_url(env_file: Path | str = ENV_FILE) -> str | None:
    """Load a custom API base URL from the environment or the .env file."""
    return os.getenv(BASE_URL_ENV) or read_env_file(BASE_URL_ENV, env_file)
