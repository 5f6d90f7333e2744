"""
FlagSync — Field registry client.

Thin typed pass-through over ``BackendHost``: builds resource paths and
payloads, parses responses into domain models.  No retries and no domain
interpretation; every failure surfaces as ``TransportError``.

The create and attach calls are not idempotent on the backend.  Preventing
duplicate calls is the reconciler's job.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from flagsync.core.constants import (
    ATTACHMENT_FIELDS,
    ATTACHMENT_TYPE,
    DEFINITION_FIELDS,
    DEFINITIONS_PATH,
    FLAG_DEFINITION_DEFAULT_TEXT,
    JSON_HEADERS,
    PROJECT_FIELD_PATH,
    PROJECT_FIELDS,
    PROJECT_FIELDS_PATH,
    PROJECTS_PATH,
)
from flagsync.domain.errors import TransportError
from flagsync.domain.models import (
    GlobalFieldDefinition,
    Project,
    ProjectFieldAttachment,
)
from flagsync.host import BackendHost

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _parse_one(model: Type[M], data: Any, what: str) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise TransportError(None, f"unexpected {what} payload: {exc}") from exc


def _parse_many(model: Type[M], data: Any, what: str) -> List[M]:
    if data is None:
        return []
    if not isinstance(data, list):
        raise TransportError(None, f"expected a list of {what}, got {type(data).__name__}")
    return [_parse_one(model, entry, what) for entry in data]


class FieldRegistryClient:
    """Typed access to projects, global field definitions and attachments."""

    def __init__(self, host: BackendHost) -> None:
        self._host = host

    async def list_projects(self) -> List[Project]:
        data = await self._host.fetch(f"{PROJECTS_PATH}?fields={PROJECT_FIELDS}")
        return _parse_many(Project, data, "project")

    async def list_global_field_definitions(self) -> List[GlobalFieldDefinition]:
        data = await self._host.fetch(f"{DEFINITIONS_PATH}?fields={DEFINITION_FIELDS}")
        return _parse_many(GlobalFieldDefinition, data, "field definition")

    async def list_project_fields(self, project_id: str) -> List[ProjectFieldAttachment]:
        path = PROJECT_FIELDS_PATH.format(project_id=project_id)
        data = await self._host.fetch(f"{path}?fields={ATTACHMENT_FIELDS}")
        return _parse_many(ProjectFieldAttachment, data, "project field")

    async def create_global_field_definition(
        self, name: str, type_descriptor: str,
    ) -> Optional[GlobalFieldDefinition]:
        """Create a definition.

        Returns ``None`` when the backend answers without a usable body; the
        caller decides how to verify the create in that case.
        """
        body = {
            "name": name,
            "fieldType": {"id": type_descriptor},
            "emptyFieldText": FLAG_DEFINITION_DEFAULT_TEXT,
            "isDisplayedInIssueList": True,
            "isAutoAttached": False,
            "isPublic": True,
        }
        data = await self._host.fetch(
            f"{DEFINITIONS_PATH}?fields={DEFINITION_FIELDS}",
            method="POST",
            body=body,
            headers=JSON_HEADERS,
        )
        if not data:
            return None
        return _parse_one(GlobalFieldDefinition, data, "field definition")

    async def attach_field_to_project(
        self, project_id: str, definition: GlobalFieldDefinition,
    ) -> Optional[ProjectFieldAttachment]:
        body = {
            "field": {"id": definition.id, "name": definition.name},
            "$type": ATTACHMENT_TYPE,
        }
        path = PROJECT_FIELDS_PATH.format(project_id=project_id)
        data = await self._host.fetch(
            f"{path}?fields={ATTACHMENT_FIELDS}",
            method="POST",
            body=body,
            headers=JSON_HEADERS,
        )
        if not data:
            return None
        return _parse_one(ProjectFieldAttachment, data, "project field")

    async def set_attachment_value(
        self, project_id: str, attachment_id: str, value: str,
    ) -> None:
        """Overwrite the attachment's stored value."""
        path = PROJECT_FIELD_PATH.format(project_id=project_id, attachment_id=attachment_id)
        await self._host.fetch(
            path,
            method="POST",
            body={"emptyFieldText": value},
            headers=JSON_HEADERS,
        )
        logger.debug("Stored %r on %s/%s", value, project_id, attachment_id)
