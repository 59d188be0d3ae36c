"""Environment and utility functions."""

import logging
import os
import sys
from pathlib import Path

import keyring
from keyring.errors import KeyringError

from ..config import ENV_FILE, KEYRING_SERVICE, LOG_DATE_FORMAT, LOG_FORMAT

logger = logging.getLogger(__name__)

# Default log file location
DEFAULT_LOG_FILE = "media_orchestrator.log"


def _read_key_from_file(env_name: str, env_file: str | Path = ENV_FILE) -> str | None:
    """Look up ``env_name=value`` in a .env file."""
    env_path = Path(env_file)
    if not env_path.exists():
        return None
    try:
        with open(env_path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line.startswith(f"{env_name}="):
                    value = line.split("=", 1)[1].strip().strip('"').strip("'")
                    if value:
                        return value
    except OSError as e:
        logger.debug(f"Failed to read {env_path}: {e}")
    return None


def retrieve_key_secure(env_name: str) -> str | None:
    """Look up a credential in the system keyring."""
    try:
        return keyring.get_password(KEYRING_SERVICE, env_name)
    except KeyringError as e:
        logger.debug(f"Keyring lookup for {env_name} failed: {e}")
        return None


def load_api_key(env_name: str, env_file: str | Path = ENV_FILE) -> str | None:
    """Resolve a provider credential by name.
    
    Checked in order: environment, system keyring, .env file.
    
    Returns:
        Key string or None if not found
    """
    value = os.getenv(env_name)
    if value:
        return value
    
    value = retrieve_key_secure(env_name)
    if value:
        return value
    
    return _read_key_from_file(env_name, env_file)


def setup_logging(level: int = logging.INFO, log_file: str | None = DEFAULT_LOG_FILE) -> None:
    """Set up logging configuration.
    
    Logs are written to both console (stderr) and a file.
    
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
            # Console-only if the file cannot be opened
            print(f"Warning: Could not open log file '{log_file}': {e}", file=sys.stderr)
    
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
        force=True
    )
