"""
flagsync.domain.models — Canonical Pydantic models.

Backend payloads are parsed into these models at the registry boundary;
nothing past the registry handles raw JSON.

Import pattern::

    from flagsync.domain.models import Project, FlagState
"""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _BackendModel(BaseModel):
    """Base for payloads read from the backend: camelCase aliases, extras ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Backend-owned resources
# ---------------------------------------------------------------------------

class Project(_BackendModel):
    id: str
    name: str = ""


class FieldType(_BackendModel):
    id: str
    presentation: Optional[str] = None


class FieldRef(_BackendModel):
    """Reference to a global definition as embedded in an attachment."""
    id: Optional[str] = None
    name: str


class GlobalFieldDefinition(_BackendModel):
    id: str
    name: str
    field_type: Optional[FieldType] = Field(default=None, alias="fieldType")


class ProjectFieldAttachment(_BackendModel):
    """
    A global definition attached to one project.

    ``stored_value`` is the backend's free-text ``emptyFieldText`` slot, which
    carries the flag as ``"true"`` / ``"false"``.
    """
    id: str
    field: FieldRef
    project: Optional[Project] = None
    stored_value: Optional[str] = Field(default=None, alias="emptyFieldText")

    @property
    def field_name(self) -> str:
        return self.field.name


# ---------------------------------------------------------------------------
# Derived state
# ---------------------------------------------------------------------------

class FlagState(BaseModel):
    """Per-project flag as shown by the view.

    ``available`` is False when no Flag attachment was located; such rows are
    non-actionable and ``value`` holds the default.
    """
    project_id: str
    project_name: str = ""
    value: bool = False
    available: bool = False


class ReconciliationReport(BaseModel):
    """Outcome of one ``ensure_field_ready`` run."""
    definition: GlobalFieldDefinition
    created: bool = False
    attached: List[str] = Field(default_factory=list)
    already_attached: List[str] = Field(default_factory=list)
    failed: Dict[str, str] = Field(default_factory=dict)
    duplicate_definitions: int = 0

    @property
    def ok(self) -> bool:
        return not self.failed
