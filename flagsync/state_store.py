"""
FlagSync — Flag state store.

Process-lifetime table of per-project flag state.  It is filled by reading
through the registry and changed only by ``load_all`` / ``toggle``.  The
backend attachment is the durable copy; nothing here is persisted.

Attachment ids are never cached: every read and every toggle re-resolves the
attachment from the backend, retrying a bounded number of times with a fixed
delay because a freshly attached field may not be listed yet.

A toggle and a concurrent load of the *same* project race on the table and
the last writer wins; toggles on different projects touch disjoint keys.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from flagsync import codec, config
from flagsync.domain.errors import AttachmentNotFound, TransportError
from flagsync.domain.models import FlagState, Project, ProjectFieldAttachment
from flagsync.metrics import increment_toggles_applied, record_lookup_exhausted
from flagsync.reconciler import FieldReconciler, find_flag_attachment
from flagsync.registry import FieldRegistryClient

logger = logging.getLogger(__name__)


class FlagStateStore:
    """In-memory per-project flag table backed by the remote attachments.

    Parameters
    ----------
    registry:
        Transport used for reads and writes.
    reconciler:
        Used by ``refresh()`` to make sure the field exists and is attached.
    lookup_attempts:
        Attempts to locate a project's attachment.  Defaults to
        ``ATTACHMENT_LOOKUP_ATTEMPTS``.
    lookup_delay:
        Fixed wait in seconds between attempts.  Defaults to
        ``ATTACHMENT_LOOKUP_DELAY_SECONDS``.
    """

    def __init__(
        self,
        registry: FieldRegistryClient,
        reconciler: FieldReconciler,
        lookup_attempts: Optional[int] = None,
        lookup_delay: Optional[float] = None,
    ) -> None:
        self._registry = registry
        self._reconciler = reconciler
        if lookup_attempts is None:
            lookup_attempts = config.ATTACHMENT_LOOKUP_ATTEMPTS
        if lookup_delay is None:
            lookup_delay = config.ATTACHMENT_LOOKUP_DELAY_SECONDS
        self._lookup_attempts = max(1, int(lookup_attempts))
        self._lookup_delay = max(0.0, float(lookup_delay))
        self._states: Dict[str, FlagState] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def refresh(self) -> List[FlagState]:
        """List projects, reconcile the field, then load every project's flag.

        ``ReconciliationFailed`` and a failed project listing propagate.
        """
        projects = await self._registry.list_projects()
        report = await self._reconciler.ensure_field_ready(projects)
        for project_id, error in report.failed.items():
            logger.warning("Project %s left without a Flag attachment: %s", project_id, error)

        states = await self.load_all(projects)
        keep = {p.id for p in projects}
        for project_id in list(self._states):
            if project_id not in keep:
                del self._states[project_id]
        return states

    async def load_all(self, projects: Sequence[Project]) -> List[FlagState]:
        """Read every project's flag concurrently.

        Never raises for a single project: a project whose attachment cannot
        be found or read comes back as ``value=False, available=False``.
        """
        states = await asyncio.gather(*(self._load_one(p) for p in projects))
        for state in states:
            self._states[state.project_id] = state
        return list(states)

    async def toggle(self, project_id: str, new_value: bool) -> FlagState:
        """Write ``new_value`` to the project's attachment, then update the table.

        Raises ``AttachmentNotFound`` when the attachment cannot be located and
        ``TransportError`` when the write fails; the table is unchanged in both
        cases.
        """
        attachment = await self._resolve_attachment(project_id)
        if attachment is None:
            raise AttachmentNotFound(project_id, self._lookup_attempts)

        await self._registry.set_attachment_value(
            project_id, attachment.id, codec.encode(new_value),
        )

        previous = self._states.get(project_id)
        if previous is not None:
            name = previous.project_name
        elif attachment.project is not None:
            name = attachment.project.name
        else:
            name = ""
        state = FlagState(
            project_id=project_id, project_name=name, value=new_value, available=True,
        )
        self._states[project_id] = state
        increment_toggles_applied()
        logger.info("Flag for project %s set to %s", project_id, new_value)
        return state

    def states(self) -> List[FlagState]:
        return list(self._states.values())

    def get(self, project_id: str) -> Optional[FlagState]:
        return self._states.get(project_id)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _load_one(self, project: Project) -> FlagState:
        attachment = await self._resolve_attachment(project.id)
        if attachment is None:
            return FlagState(project_id=project.id, project_name=project.name)
        return FlagState(
            project_id=project.id,
            project_name=project.name,
            value=codec.decode(attachment.stored_value),
            available=True,
        )

    async def _resolve_attachment(self, project_id: str) -> Optional[ProjectFieldAttachment]:
        for attempt in range(1, self._lookup_attempts + 1):
            try:
                attachments = await self._registry.list_project_fields(project_id)
            except TransportError as exc:
                logger.warning(
                    "Lookup %d/%d for project %s failed: %s",
                    attempt, self._lookup_attempts, project_id, exc,
                )
            else:
                found = find_flag_attachment(attachments)
                if found is not None:
                    return found
            if attempt < self._lookup_attempts:
                await asyncio.sleep(self._lookup_delay)

        record_lookup_exhausted()
        logger.warning(
            "No Flag attachment for project %s after %d attempt(s)",
            project_id, self._lookup_attempts,
        )
        return None
