"""
logger.py
---------
Logging setup for the interdb schema bridge.

The schema managers report catalog and DDL failures as return values
(``[]`` or ``False``), so the log is the only place the driver error and
its traceback survive.

Design Decisions:
    * Loggers form one tree under ``interdb``. Package modules keep their
      own dotted name (``interdb.postgres_schema``), which tells the reader
      which dialect failed; top-level modules such as ``config`` are
      attached as ``interdb.config``.
    * The console handler shows LOG_LEVEL and above. Generated DDL is
      logged at DEBUG, so it reaches stderr only with LOG_LEVEL=DEBUG.
    * When LOG_FILE is set, the tree is opened down to DEBUG and the file
      handler records every statement that was executed, whatever the
      console level.
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path

from config import CONFIG, get_log_level

_ROOT_LOGGER_NAME = "interdb"
_CONSOLE_FORMAT = "%(asctime)s [%(levelname)-8s] %(name)s: %(message)s"
_FILE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

_configured = False


def build_handlers(console_level: int, log_file: str | None) -> list[logging.Handler]:
    """
    Create the stderr handler and, when *log_file* is given, a DEBUG file
    handler. An unusable log path is reported on stderr and skipped.
    """
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(fmt=_CONSOLE_FORMAT, datefmt=_DATE_FORMAT))
    handlers: list[logging.Handler] = [console]

    if log_file:
        log_path = Path(log_file)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_path, encoding="utf-8")
        except OSError as exc:
            print(f"interdb: could not open log file '{log_path}': {exc}", file=sys.stderr)
        else:
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(logging.Formatter(fmt=_FILE_FORMAT, datefmt=_DATE_FORMAT))
            handlers.append(file_handler)
    return handlers


def _configure_root_logger() -> None:
    global _configured
    if _configured:
        return
    _configured = True

    console_level = get_log_level()
    handlers = build_handlers(console_level, CONFIG.logging.log_file)

    root = logging.getLogger(_ROOT_LOGGER_NAME)
    # the file handler filters nothing, so the tree must let DEBUG through
    root.setLevel(logging.DEBUG if len(handlers) > 1 else console_level)
    for handler in handlers:
        root.addHandler(handler)


_configure_root_logger()


def get_logger(name: str) -> logging.Logger:
    """
    Return the logger for *name* inside the ``interdb`` tree.

    Example::

        get_logger("interdb.mysql_schema").name  # "interdb.mysql_schema"
        get_logger("config").name                # "interdb.config"
    """
    if name == _ROOT_LOGGER_NAME or name.startswith(_ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT_LOGGER_NAME}.{name}")
