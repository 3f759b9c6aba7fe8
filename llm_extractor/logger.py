"""
Logging for the LLM Extractor.

Every module logs through a child of the "llm_extractor" logger, so one call to
setup_logger() (or set_log_level()) controls the converter, the sanitizer and
the LLM clients together. Records go to stderr by default; stdout is left to
callers such as run_extractor.py, which print results there.

The starting level can be set with LLM_EXTRACTOR_LOG_LEVEL (DEBUG, INFO, ...).
"""

import logging
import os
import sys
from typing import Optional, TextIO, Union

PACKAGE_LOGGER = "llm_extractor"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def level_from_env(default: int = logging.INFO) -> int:
    """Read LLM_EXTRACTOR_LOG_LEVEL; unknown names give the default."""
    name = os.getenv("LLM_EXTRACTOR_LOG_LEVEL", "").strip().upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


def setup_logger(
    name: str = PACKAGE_LOGGER,
    level: Union[int, str, None] = None,
    log_file: Optional[str] = None,
    stream: Optional[TextIO] = None
) -> logging.Logger:
    """
    Attach handlers to a logger and set its level.

    Args:
        name: Logger name (the package logger by default)
        level: Level as int or name; None reads LLM_EXTRACTOR_LOG_LEVEL
        log_file: Optional file that receives the same records
        stream: Console stream (default: sys.stderr)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    if level is None:
        level = level_from_env()

    # Handlers are attached once; later calls only change the level
    if logger.handlers:
        set_log_level(level, name)
        return logger

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console_handler = logging.StreamHandler(stream or sys.stderr)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    set_log_level(level, name)
    return logger


def set_log_level(level: Union[int, str], name: str = PACKAGE_LOGGER) -> None:
    """Change the level of a logger and all of its handlers."""
    logger = logging.getLogger(name)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)


logger = setup_logger()


def get_module_logger(module_name: str) -> logging.Logger:
    """
    Child logger for one module, e.g. "llm_extractor.sanitizer".

    Child loggers carry no handlers of their own; records propagate to the
    package logger.
    """
    return logging.getLogger(f"{PACKAGE_LOGGER}.{module_name}")
