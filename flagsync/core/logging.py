"""
FlagSync — Logging setup.

Operator-facing failures (per-project attach errors, exhausted lookups,
duplicate definitions) are reported through these records, so the process
must call ``configure_logging()`` once before serving requests.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from flagsync import config

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Per-request chatter from the HTTP stack drowns out reconciliation reports.
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")

_configured = False


def _resolve_level(name: Optional[str]) -> int:
    level = getattr(logging, (name or config.LOG_LEVEL).upper(), None)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: Optional[str] = None) -> None:
    """Install a stdout handler on the root logger; later calls are no-ops.

    ``level`` overrides the ``LOG_LEVEL`` setting.  Unknown names fall back
    to INFO.
    """
    global _configured
    if _configured:
        return

    root = logging.getLogger()
    root.setLevel(_resolve_level(level))
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured = True
