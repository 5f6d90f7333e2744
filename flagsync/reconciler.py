"""
FlagSync — Field reconciler.

Brings the backend to the state "exactly one global Flag definition, attached
once to every given project" with the minimal number of writes:

1. read the global definitions and reuse a definition named ``Flag``;
2. otherwise create it, trusting the create response when it carries a
   definition, else re-reading the list a bounded number of times (the
   backend may not list a new definition right away);
3. per project, concurrently: attach the definition unless an attachment
   named ``Flag`` is already there.

Step 1/2 is all-or-nothing and raises ``ReconciliationFailed``.  Step 3 is
isolated per project: failures land in the report and never abort the batch.
Attachments are not re-read after writing; the state store's bounded lookup
does that.

Runs are serialised per reconciler.  Definitions and attachments this process
wrote are remembered so a later run does not write them again while the
backend has not listed them yet.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from flagsync import config
from flagsync.core.constants import FLAG_FIELD_NAME, FLAG_FIELD_TYPE_ID
from flagsync.domain.errors import ReconciliationFailed, TransportError
from flagsync.domain.models import (
    GlobalFieldDefinition,
    Project,
    ProjectFieldAttachment,
    ReconciliationReport,
)
from flagsync.metrics import (
    record_attach_failure,
    record_reconciliation_failure,
    set_duplicate_definitions,
)
from flagsync.registry import FieldRegistryClient

logger = logging.getLogger(__name__)

_ATTACHED = "attached"
_PRESENT = "present"
_FAILED = "failed"


def find_flag_definitions(
    definitions: Iterable[GlobalFieldDefinition],
) -> List[GlobalFieldDefinition]:
    """All definitions named ``Flag``, in backend order."""
    return [d for d in definitions if d.name == FLAG_FIELD_NAME]


def find_flag_attachment(
    attachments: Iterable[ProjectFieldAttachment],
) -> Optional[ProjectFieldAttachment]:
    """The project's Flag attachment, matched by definition name."""
    for attachment in attachments:
        if attachment.field_name == FLAG_FIELD_NAME:
            return attachment
    return None


class FieldReconciler:
    """Create-if-absent / attach-if-absent for the Flag field.

    Parameters
    ----------
    registry:
        Transport used for every backend call.
    verify_attempts:
        Re-reads of the definition list after a create that returned no
        usable definition.  Defaults to ``FIELD_CREATE_VERIFY_ATTEMPTS``.
    verify_delay:
        Fixed wait in seconds before each re-read.  Defaults to
        ``FIELD_CREATE_VERIFY_DELAY_SECONDS``.
    """

    def __init__(
        self,
        registry: FieldRegistryClient,
        verify_attempts: Optional[int] = None,
        verify_delay: Optional[float] = None,
    ) -> None:
        self._registry = registry
        # Serialises runs so overlapping callers cannot both create or attach.
        self._lock = asyncio.Lock()
        # Writes made by this process that the backend may not list yet.
        self._created: Optional[GlobalFieldDefinition] = None
        self._attached: Set[Tuple[str, str]] = set()
        if verify_attempts is None:
            verify_attempts = config.FIELD_CREATE_VERIFY_ATTEMPTS
        if verify_delay is None:
            verify_delay = config.FIELD_CREATE_VERIFY_DELAY_SECONDS
        self._verify_attempts = max(1, int(verify_attempts))
        self._verify_delay = max(0.0, float(verify_delay))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def ensure_field_ready(self, projects: Sequence[Project]) -> ReconciliationReport:
        """Make sure the Flag definition exists and is attached to ``projects``.

        Raises ``ReconciliationFailed`` if the definition cannot be read or
        created.  Per-project attach failures are returned in
        ``report.failed`` and logged.

        Runs are serialised: a second caller waits for the first to finish
        and then sees its writes.
        """
        async with self._lock:
            return await self._reconcile(projects)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _reconcile(self, projects: Sequence[Project]) -> ReconciliationReport:
        definitions = await self._list_definitions(stage="list")
        matches = find_flag_definitions(definitions)
        if not matches and self._created is not None:
            logger.info(
                "Definition %r (id=%s) created earlier is not listed yet; reusing it",
                FLAG_FIELD_NAME, self._created.id,
            )
            matches = [self._created]

        created = False
        if matches:
            definition = matches[0]
            if len(matches) > 1:
                logger.warning(
                    "Found %d global definitions named %r; using the first (id=%s). "
                    "Duplicates need manual cleanup.",
                    len(matches), FLAG_FIELD_NAME, definition.id,
                )
        else:
            definition = await self._create_definition()
            self._created = definition
            created = True
        set_duplicate_definitions(max(0, len(matches) - 1))

        outcomes = await asyncio.gather(
            *(self._attach_one(project, definition) for project in projects)
        )

        report = ReconciliationReport(
            definition=definition,
            created=created,
            duplicate_definitions=max(0, len(matches) - 1),
        )
        for project_id, outcome, error in outcomes:
            if outcome == _ATTACHED:
                report.attached.append(project_id)
            elif outcome == _PRESENT:
                report.already_attached.append(project_id)
            else:
                report.failed[project_id] = error or "unknown error"

        logger.info(
            "Reconciled %r (id=%s, created=%s): %d attached, %d already present, %d failed",
            FLAG_FIELD_NAME, definition.id, created,
            len(report.attached), len(report.already_attached), len(report.failed),
        )
        return report

    async def _list_definitions(self, stage: str) -> List[GlobalFieldDefinition]:
        try:
            return await self._registry.list_global_field_definitions()
        except TransportError as exc:
            record_reconciliation_failure()
            logger.error("Could not list global field definitions: %s", exc)
            raise ReconciliationFailed(stage, str(exc)) from exc

    async def _create_definition(self) -> GlobalFieldDefinition:
        try:
            definition = await self._registry.create_global_field_definition(
                FLAG_FIELD_NAME, FLAG_FIELD_TYPE_ID,
            )
        except TransportError as exc:
            # The create may still have landed; fall through to verification.
            logger.warning("Create of %r did not complete cleanly: %s", FLAG_FIELD_NAME, exc)
            definition = None

        if definition is not None and definition.id:
            logger.info("Created global definition %r (id=%s)", FLAG_FIELD_NAME, definition.id)
            return definition

        for attempt in range(1, self._verify_attempts + 1):
            await asyncio.sleep(self._verify_delay)
            try:
                definitions = await self._registry.list_global_field_definitions()
            except TransportError as exc:
                logger.warning(
                    "Verify read %d/%d of %r failed: %s",
                    attempt, self._verify_attempts, FLAG_FIELD_NAME, exc,
                )
                continue
            matches = find_flag_definitions(definitions)
            if matches:
                logger.info(
                    "Global definition %r visible after %d re-read(s) (id=%s)",
                    FLAG_FIELD_NAME, attempt, matches[0].id,
                )
                return matches[0]

        record_reconciliation_failure()
        logger.error(
            "Global definition %r not visible after %d re-read(s)",
            FLAG_FIELD_NAME, self._verify_attempts,
        )
        raise ReconciliationFailed(
            "create",
            f"{FLAG_FIELD_NAME!r} not visible after {self._verify_attempts} re-read(s)",
        )

    async def _attach_one(
        self, project: Project, definition: GlobalFieldDefinition,
    ) -> Tuple[str, str, Optional[str]]:
        try:
            attachments = await self._registry.list_project_fields(project.id)
            if find_flag_attachment(attachments) is not None:
                return project.id, _PRESENT, None
            if (project.id, definition.id) in self._attached:
                logger.debug("Attachment on project %s not listed yet; skipping", project.id)
                return project.id, _PRESENT, None
            await self._registry.attach_field_to_project(project.id, definition)
            self._attached.add((project.id, definition.id))
        except TransportError as exc:
            record_attach_failure()
            logger.error("Failed to attach %r to project %s: %s", FLAG_FIELD_NAME, project.id, exc)
            return project.id, _FAILED, str(exc)
        logger.debug("Attached %r to project %s", FLAG_FIELD_NAME, project.id)
        return project.id, _ATTACHED, None
