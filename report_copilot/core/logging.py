"""
Logging for the report pipeline.

All module loggers hang off the ``report_copilot`` package logger, which owns
the single stdout handler; the level comes from ``LOG_LEVEL``.
"""
from __future__ import annotations

import logging
import sys
from typing import Any

from report_copilot.core.config import get_settings

_PACKAGE = "report_copilot"
_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def _package_logger() -> logging.Logger:
    root = logging.getLogger(_PACKAGE)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        root.addHandler(handler)
    root.setLevel(getattr(logging, get_settings().log_level.upper(), logging.INFO))
    return root


def get_logger(name: str) -> logging.Logger:
    """Logger for *name*; modules outside the package get a child of it."""
    root = _package_logger()
    if name == _PACKAGE or name.startswith(_PACKAGE + "."):
        return logging.getLogger(name)
    return root.getChild(name)


def kv(**fields: Any) -> str:
    """``a=1 | b=x`` -- the pipe-separated field style used in summary lines."""
    return " | ".join(f"{k}={v}" for k, v in fields.items())
