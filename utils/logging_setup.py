"""Logging configuration shared by the harness and its test suite."""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [test=%(test_id)s] %(name)s %(message)s"

current_test_var: ContextVar[str] = ContextVar("current_test_id", default="-")


class _TestIdFilter(logging.Filter):
    """Ensure every log record carries the identifier of the running test."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.test_id = current_test_var.get()
        return True


_test_id_filter = _TestIdFilter()


def set_current_test(test_id: str):
    """Bind ``test_id`` to the current context and return the reset token."""

    return current_test_var.set(test_id)


def reset_current_test(token) -> None:
    current_test_var.reset(token)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure structured logging once per process."""

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        root_logger.addHandler(logging.StreamHandler())

    for handler in root_logger.handlers:
        formatter = handler.formatter
        if formatter is None or "%(test_id)" not in getattr(formatter, "_fmt", ""):
            handler.setFormatter(logging.Formatter(LOG_FORMAT))

    # addFilter ignores filters that are already attached.
    root_logger.addFilter(_test_id_filter)
    for handler in root_logger.handlers:
        handler.addFilter(_test_id_filter)

    root_logger.setLevel(getattr(logging, (level or "INFO").upper(), logging.INFO))


def mask_secret(value: Optional[str], visible: int = 4) -> str:
    """Return ``value`` with everything but the last ``visible`` chars hidden."""

    if not value:
        return ""
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * (len(value) - visible) + value[-visible:]
