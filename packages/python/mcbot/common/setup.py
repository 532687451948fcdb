import logging
import os

from dotenv import load_dotenv

_LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARN": logging.WARNING,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


def get_log_level(level: str | None) -> int:
    """Map a LOG_LEVEL string to a logging level. Unknown or empty -> INFO."""
    if not level:
        return logging.INFO
    return _LOG_LEVELS.get(level.strip().upper(), logging.INFO)


def setup(dotenv_path: str | None = None) -> None:
    """
    Read the .env file and configure logging.

    Args:
        dotenv_path: Optional explicit .env path. Defaults to searching from the cwd.
    """
    load_dotenv(dotenv_path=dotenv_path)
    logging.basicConfig(
        level=get_log_level(os.getenv("LOG_LEVEL")),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
