"""
Logging configuration for the transcript_vault package.

Every module logs through one named logger. Console output follows the
current sys.stdout, so CLI runs with redirected output (pipes, test
runners) keep their log lines.
"""

import logging
import sys
from pathlib import Path
from typing import Optional


LOGGER_NAME = "transcript_vault"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class StdoutHandler(logging.StreamHandler):
    """Stream handler bound to whatever sys.stdout is when a record is emitted."""

    def __init__(self):
        super().__init__(sys.stdout)

    @property
    def stream(self):
        return sys.stdout

    @stream.setter
    def stream(self, value):
        # Always resolved at emit time
        pass


def setup_logger(
    name: str = LOGGER_NAME,
    level: str = "INFO",
    log_file: Optional[Path] = None,
    console_output: bool = True,
) -> logging.Logger:
    """
    Set up a logger with a console handler and an optional file handler.

    Calling it again replaces the previous handlers, so reconfiguring (for
    example when a CLI command applies --log-level) never duplicates output.

    Args:
        name: Logger name (default: "transcript_vault")
        level: Logging level name; unknown names fall back to INFO
        log_file: Optional path to an append-mode log file (parents created)
        console_output: Whether to log to stdout

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logger(level="DEBUG", log_file=Path("logs/vault.log"))
        >>> logger.info("Assigning version 1 to sourceId 's1'")
    """
    logger = logging.getLogger(name)

    # Replace, never stack, handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()

    log_level = getattr(logging, str(level).upper(), logging.INFO)
    logger.setLevel(log_level)

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    # Console
    if console_output:
        console_handler = StdoutHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    # File
    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Keep storage logs out of the root logger
    logger.propagate = False

    return logger


# Default logger instance
_default_logger: Optional[logging.Logger] = None


def get_default_logger() -> logging.Logger:
    """Get (creating on first use, at INFO) the transcript_vault logger."""
    global _default_logger
    if _default_logger is None:
        _default_logger = setup_logger()
    return _default_logger


def configure_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    console_output: bool = True,
) -> None:
    """
    Reconfigure the transcript_vault logger.

    Module-level loggers obtained earlier through get_default_logger() are
    the same object, so they pick up the new level and handlers.

    Example:
        >>> configure_logging(level="WARNING", log_file=Path("logs/vault.log"))
    """
    global _default_logger
    _default_logger = setup_logger(
        name=LOGGER_NAME,
        level=level,
        log_file=log_file,
        console_output=console_output,
    )
