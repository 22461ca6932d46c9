"""
Logging Configuration
Sets up the loggers for the viewer packages.
"""
import logging
import sys
from typing import Optional

LOGGER_NAMESPACES = ("modelview_core", "modelview_backend", "modelview_cli")


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None,
                  stream=sys.stderr) -> None:
    """
    Configures the loggers of the viewer namespaces.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to a file.
        stream: Console stream; stderr keeps stdout free for CLI JSON output.
    """
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    handlers: list[logging.Handler] = []
    console_handler = logging.StreamHandler(stream)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    for name in LOGGER_NAMESPACES:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        # Drop (and close) handlers from an earlier call
        for old in logger.handlers[:]:
            logger.removeHandler(old)
            old.close()
        for handler in handlers:
            logger.addHandler(handler)
        logger.propagate = False

    logging.getLogger("modelview_backend").debug("Logging initialized.")


def parse_level(value: Optional[str], default: int = logging.INFO) -> int:
    """Map a level name such as 'debug' to its numeric value."""
    if not value:
        return default
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else default
