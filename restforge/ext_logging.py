"""
Logging setup for restforge.

Library modules only create loggers. ``init_logging`` is opt-in: it attaches
handlers to the ``restforge`` logger, leaving the root logger to the
application.
"""

import logging
import os
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime
from logging.handlers import RotatingFileHandler
from typing import Optional

import pytz

from .configs import ClientSettings, settings

PACKAGE_LOGGER = "restforge"

call_id_var: ContextVar[Optional[str]] = ContextVar("call_id", default=None)

_installed_handlers: list[logging.Handler] = []


def call_id_generator() -> str:
    return uuid.uuid4().hex


class CallIdFilter(logging.Filter):
    # stamps records with the id of the client call in progress (None outside a call)
    def filter(self, record):
        record.call_id = call_id_var.get()
        return True


class CallIdFormatter(logging.Formatter):
    def format(self, record):
        if not hasattr(record, "call_id"):
            record.call_id = ""
        return super().format(record)


def _build_formatter(config: ClientSettings) -> CallIdFormatter:
    formatter = CallIdFormatter(config.LOG_FORMAT, config.LOG_DATEFORMAT)
    if config.LOG_TZ:
        timezone = pytz.timezone(config.LOG_TZ)

        def time_converter(seconds):
            return datetime.fromtimestamp(seconds, tz=timezone).timetuple()

        formatter.converter = time_converter
    return formatter


def init_logging(config: ClientSettings | None = None) -> logging.Logger:
    """Attach stdout (and optionally rotating file) handlers to the package logger.

    Calling it again replaces the handlers it installed before.
    """
    config = config or settings
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    while _installed_handlers:
        handler = _installed_handlers.pop()
        package_logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.LOG_FILE:
        log_dir = os.path.dirname(config.LOG_FILE)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                filename=config.LOG_FILE,
                maxBytes=config.LOG_FILE_MAX_SIZE * 1024 * 1024,
                backupCount=config.LOG_FILE_BACKUP_COUNT,
            )
        )

    formatter = _build_formatter(config)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(CallIdFilter())
        package_logger.addHandler(handler)
        _installed_handlers.append(handler)

    package_logger.setLevel(config.LOG_LEVEL)
    return package_logger
