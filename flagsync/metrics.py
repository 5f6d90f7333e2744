"""
Lightweight runtime metrics for operator-facing reporting.

Uses in-process counters so it works without extra dependencies.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Deque, Dict


class _RuntimeMetrics:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._transport_errors = 0
        self._attach_failures = 0
        self._reconciliation_failures = 0
        self._lookups_exhausted = 0
        self._duplicate_definitions = 0
        self._toggles_applied = 0
        self._error_timestamps: Deque[float] = deque()

    def record_transport_error(self) -> None:
        with self._lock:
            self._transport_errors += 1
            self._record_error_locked(time.time())

    def record_attach_failure(self) -> None:
        with self._lock:
            self._attach_failures += 1
            self._record_error_locked(time.time())

    def record_reconciliation_failure(self) -> None:
        with self._lock:
            self._reconciliation_failures += 1
            self._record_error_locked(time.time())

    def record_lookup_exhausted(self) -> None:
        with self._lock:
            self._lookups_exhausted += 1

    def set_duplicate_definitions(self, count: int) -> None:
        with self._lock:
            self._duplicate_definitions = max(0, int(count))

    def increment_toggles_applied(self, amount: int = 1) -> None:
        with self._lock:
            self._toggles_applied += max(0, int(amount))

    def snapshot(self) -> Dict[str, int]:
        now = time.time()
        with self._lock:
            self._prune_locked(now)
            return {
                "transport_errors": self._transport_errors,
                "attach_failures": self._attach_failures,
                "reconciliation_failures": self._reconciliation_failures,
                "lookups_exhausted": self._lookups_exhausted,
                "duplicate_definitions": self._duplicate_definitions,
                "toggles_applied": self._toggles_applied,
                "errors_last_hour": len(self._error_timestamps),
            }

    def reset_for_tests(self) -> None:
        with self._lock:
            self._transport_errors = 0
            self._attach_failures = 0
            self._reconciliation_failures = 0
            self._lookups_exhausted = 0
            self._duplicate_definitions = 0
            self._toggles_applied = 0
            self._error_timestamps.clear()

    def _record_error_locked(self, now: float) -> None:
        self._error_timestamps.append(now)
        self._prune_locked(now)

    def _prune_locked(self, now: float) -> None:
        cutoff = now - 3600.0
        while self._error_timestamps and self._error_timestamps[0] < cutoff:
            self._error_timestamps.popleft()


_METRICS = _RuntimeMetrics()


def record_transport_error() -> None:
    _METRICS.record_transport_error()


def record_attach_failure() -> None:
    _METRICS.record_attach_failure()


def record_reconciliation_failure() -> None:
    _METRICS.record_reconciliation_failure()


def record_lookup_exhausted() -> None:
    _METRICS.record_lookup_exhausted()


def set_duplicate_definitions(count: int) -> None:
    _METRICS.set_duplicate_definitions(count)


def increment_toggles_applied(amount: int = 1) -> None:
    _METRICS.increment_toggles_applied(amount)


def metrics_snapshot() -> Dict[str, int]:
    return _METRICS.snapshot()


def reset_metrics_for_tests() -> None:
    _METRICS.reset_for_tests()
