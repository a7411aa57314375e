"""Logging configuration for the nsfw_sieve package."""
import logging
import sys
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "nsfw_sieve"


# ANSI color codes for terminal output
class LogColors:
    """ANSI color codes for colored logging output."""
    RESET = "\033[0m"
    RED = "\033[91m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    GRAY = "\033[90m"


class ColoredFormatter(logging.Formatter):
    """
    Formatter that colors the level name in terminal output.
    """

    COLORS = {
        logging.DEBUG: LogColors.GRAY,
        logging.INFO: LogColors.BLUE,
        logging.WARNING: LogColors.YELLOW,
        logging.ERROR: LogColors.RED,
        logging.CRITICAL: LogColors.RED,
    }

    def format(self, record):
        """Format log record with colors."""
        original = record.levelname
        if record.levelno in self.COLORS:
            record.levelname = f"{self.COLORS[record.levelno]}{original}{LogColors.RESET}"
        try:
            return super().format(record)
        finally:
            # Other handlers share the record
            record.levelname = original


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    enable_colors: bool = True
) -> logging.Logger:
    """
    Setup logging for the package.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional path to log file. If None, logs only to console.
        enable_colors: Whether to enable colored console output.

    Returns:
        Configured package logger.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, log_level.upper()))

    # Remove existing handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)

    console_format = "%(levelname)s - %(name)s - %(message)s"
    if enable_colors and sys.stdout.isatty():
        console_handler.setFormatter(ColoredFormatter(console_format))
    else:
        console_handler.setFormatter(logging.Formatter(console_format))
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)

        # Thread name matters here: units run on pool workers
        file_format = "%(asctime)s - %(levelname)s - %(name)s - %(threadName)s - %(funcName)s:%(lineno)d - %(message)s"
        file_handler.setFormatter(logging.Formatter(file_format))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Args:
        name: Module name (typically __name__).

    Returns:
        Logger instance.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.warning("Frame %d failed: %s", index, error)
    """
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"

    return logging.getLogger(name)


def setup_logging_from_config(system_config) -> logging.Logger:
    """
    Setup logging from a SystemConfig section.

    Args:
        system_config: SystemConfig with log_level and optional log_file.

    Returns:
        Configured logger instance.
    """
    return setup_logging(
        log_level=system_config.log_level,
        log_file=Path(system_config.log_file) if system_config.log_file else None,
    )
