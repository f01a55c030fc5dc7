"""Logging setup: one root logger for the tool, step-prefixed child loggers."""

import logging
import sys
from pathlib import Path


DEFAULT_LOGGER_NAME = "tracklist_sync"

DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class StepFormatter(logging.Formatter):
    """
    Formatter that exposes the emitting step as ``%(step)s``.

    The step is the last component of the logger name below the tool's
    root logger, rendered as ``[check_video] ``; records from the root
    logger itself get an empty step.
    """

    def __init__(self, fmt: str, root: str = DEFAULT_LOGGER_NAME, datefmt: str = None):
        super().__init__(fmt, datefmt=datefmt)
        self.root = root

    def format(self, record: logging.LogRecord) -> str:
        record.step = step_prefix(record.name, self.root)
        return super().format(record)


def step_prefix(name: str, root: str = DEFAULT_LOGGER_NAME) -> str:
    """'tracklist_sync.sync_service.check_video' -> '[check_video] '"""
    if name == root or not name.startswith(root + '.'):
        return ''
    return f"[{name.rsplit('.', 1)[-1]}] "


def step_logger(logger: logging.Logger, step: str) -> logging.Logger:
    """Child logger whose records carry `step` as their prefix."""
    return logger.getChild(step)


def setup_logger(name: str = DEFAULT_LOGGER_NAME, log_file: str = None) -> logging.Logger:
    """
    Set up the tool's root logger with console and optional file output.

    Args:
        name: Logger name
        log_file: Optional path to log file. If None, logs to console only.

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG if log_file else logging.INFO)

    # Prevent duplicate handlers
    if logger.handlers:
        return logger

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(StepFormatter(
        '%(asctime)s - %(levelname)s - %(step)s%(message)s', root=name, datefmt=DATE_FORMAT
    ))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(StepFormatter(
            '%(asctime)s - %(levelname)s - %(name)s:%(lineno)d - %(step)s%(message)s',
            root=name, datefmt=DATE_FORMAT
        ))
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """
    Get a logger below the tool's root logger.

    Module and step loggers (``tracklist_sync.something``) get no handlers of
    their own; their records reach the console once, through the root. The
    root itself gets a plain console handler if `setup_logger` never ran.
    """
    logger = logging.getLogger(name)

    if '.' in name:
        return logger

    if not logger.handlers:
        logger.setLevel(logging.INFO)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.INFO)
        console_handler.setFormatter(StepFormatter('%(step)s%(message)s', root=name))
        logger.addHandler(console_handler)

    return logger
