#!/usr/bin/env python3
"""
common/logging.py
=================

Logger factory for reskube. Loggers render through `rich` on the console or
write plain lines to a log file.
"""

from __future__ import annotations

__author__ = "jslorrma"
__maintainer__ = "jslorrma"
__email__ = "jslorrma@gmail.com"

import logging
import os
import pathlib

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

from .. import LIBRARY_NAME

_LOG_LEVEL_ENV = "RESKUBE_LOG_LEVEL"
"""Environment variable to read the default log level from."""

# setup theme
_logging_theme = Theme(
    {
        # repr
        "repr.str": "not bold not italic grey39",
        "repr.bool_true": "italic #4585C9",
        "repr.bool_false": "italic #B87961",
        "repr.number": "#598A44",
        "repr.url": "not bold not italic underline #4585C9",
        # logging
        "logging.level.debug": "not dim bold #598A44",
        "logging.level.info": "not dim #FED00B",
        "logging.level.warning": "not dim red3",
        "logging.level.error": "not dim bold red3",
        "logging.level.critical": "not dim bright_white on red3",
        # traceback
        "traceback.error": "bold red3",
        "traceback.border": "#4585C9",
        "traceback.title": "#4585C9",
        "traceback.exc_type": "bold red3",
        "traceback.exc_value": "#4585C9",
    }
)


class _RichHandler(RichHandler):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.setFormatter(logging.Formatter("[bold]%(name)s[/] - %(message)s"))


def _file_handler(log: pathlib.Path | str) -> logging.FileHandler:
    handler = logging.FileHandler(log)
    handler.setFormatter(
        logging.Formatter(
            "[%(levelname)s %(asctime)s %(name)s] : %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    return handler


def _console_handler() -> _RichHandler:
    return _RichHandler(
        rich_tracebacks=True,
        console=Console(color_system="truecolor", theme=_logging_theme, stderr=True),
        log_time_format="%Y-%m-%d %H:%M:%S",
        markup=True,
    )


def get_logger(
    name: str | None = None,
    log_level: str | int | None = None,
    log: pathlib.Path | str | bool | None = None,
) -> logging.Logger:
    """
    Get a logger with the given name.

    Parameters
    ----------
    name : str
        The name of the logger, by default the library name.
    log_level : str | int, optional
        The log level of the logger. If not given, the value of the
        `RESKUBE_LOG_LEVEL` environment variable is used.
    log : pathlib.Path | str | bool, optional
        Sets the logging behavior. Values may be a path for logs to be written
        to, `True` to log to stderr, or `False` to only emit warnings and
        errors. By default logging is enabled if a log level is set.

    Returns
    -------
    logging.Logger
        The logger with the given name.
    """
    log_level = log_level or os.getenv(_LOG_LEVEL_ENV)
    log = log if log is not None else log_level is not None

    _logger = logging.getLogger(name or LIBRARY_NAME)

    # sub-loggers hand their records to the library logger
    if name and name != LIBRARY_NAME and name.startswith(f"{LIBRARY_NAME}."):
        if log_level is not None:
            _logger.setLevel(log_level)
        return _logger

    _logger.propagate = False

    wants_file = isinstance(log, str | pathlib.Path)
    has_file = any(isinstance(h, logging.FileHandler) for h in _logger.handlers)
    has_console = any(isinstance(h, _RichHandler) for h in _logger.handlers)

    if wants_file and not has_file:
        _logger.handlers.clear()
        _logger.addHandler(_file_handler(log))
    elif not wants_file and not has_console:
        _logger.handlers.clear()
        _logger.addHandler(_console_handler())

    _logger.setLevel((log_level or logging.INFO) if log else logging.WARNING)

    return _logger
