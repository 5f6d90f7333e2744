"""
flagsync.domain.errors — Error taxonomy shared by every layer.
"""

from __future__ import annotations

from typing import Optional


class FlagSyncError(Exception):
    """Base class for all FlagSync failures."""


class TransportError(FlagSyncError):
    """A single backend call failed (network, HTTP status, or payload shape).

    ``status_code`` is ``None`` when no HTTP response was received.
    """

    def __init__(self, status_code: Optional[int], message: str) -> None:
        super().__init__(f"[{status_code if status_code is not None else 'network'}] {message}")
        self.status_code = status_code
        self.message = message


class ReconciliationFailed(FlagSyncError):
    """The shared global-definition step did not converge.

    ``stage`` is ``"list"`` when the definitions could not be read at all,
    ``"create"`` when a created definition never became usable.
    """

    def __init__(self, stage: str, message: str) -> None:
        super().__init__(f"reconciliation failed at {stage!r}: {message}")
        self.stage = stage
        self.message = message


class AttachmentNotFound(FlagSyncError):
    """A project's Flag attachment could not be located within the retry budget."""

    def __init__(self, project_id: str, attempts: int) -> None:
        super().__init__(
            f"Flag attachment not found for project {project_id} after {attempts} attempt(s)"
        )
        self.project_id = project_id
        self.attempts = attempts
