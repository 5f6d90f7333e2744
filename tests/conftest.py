"""
Pytest configuration and shared fixtures.

Fixtures available to all tests:
  • fake_registry(...)   — factory for an in-memory backend with visibility lag
  • projects             — three sample projects
  • make_store(...)      — FlagStateStore + FieldReconciler with zero delays
"""

from __future__ import annotations

import itertools
import os
import sys
from collections import Counter
from typing import Dict, Iterable, List, Optional

import pytest

# Ensure the project root is on the path so all flagsync imports resolve.
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from flagsync.domain.errors import TransportError  # noqa: E402
from flagsync.domain.models import (  # noqa: E402
    FieldRef,
    FieldType,
    GlobalFieldDefinition,
    Project,
    ProjectFieldAttachment,
)
from flagsync.metrics import reset_metrics_for_tests  # noqa: E402
from flagsync.reconciler import FieldReconciler  # noqa: E402
from flagsync.state_store import FlagStateStore  # noqa: E402


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------

class FakeRegistry:
    """Stands in for FieldRegistryClient against an eventually-consistent backend.

    ``attachment_lag`` / ``definition_lag`` hide newly created objects from
    the next N list calls.  ``calls`` counts every method invocation.
    """

    def __init__(
        self,
        projects: Iterable[Project] = (),
        attachment_lag: int = 0,
        definition_lag: int = 0,
        create_returns_body: bool = True,
    ) -> None:
        self.projects: List[Project] = list(projects)
        self.definitions: List[GlobalFieldDefinition] = []
        self.attachments: Dict[str, List[ProjectFieldAttachment]] = {
            p.id: [] for p in self.projects
        }
        self.attachment_lag = attachment_lag
        self.definition_lag = definition_lag
        self.create_returns_body = create_returns_body
        self.create_raises_after_commit = False
        self.fail_list_definitions = False
        self.fail_attach: set = set()
        self.fail_list_fields: set = set()
        self.fail_set_value = False
        self.calls: Counter = Counter()
        self._hidden_attachments: Dict[str, int] = {}
        self._hidden_definitions: Dict[str, int] = {}
        self._ids = itertools.count(1)

    # -- seeding -------------------------------------------------------------

    def add_definition(self, name: str = "Flag") -> GlobalFieldDefinition:
        definition = GlobalFieldDefinition(
            id=f"def-{next(self._ids)}", name=name, field_type=FieldType(id="enum[*]"),
        )
        self.definitions.append(definition)
        return definition

    def add_attachment(
        self, project_id: str, name: str = "Flag", value: Optional[str] = None,
    ) -> ProjectFieldAttachment:
        attachment = ProjectFieldAttachment(
            id=f"att-{next(self._ids)}",
            field=FieldRef(id=f"def-{name}", name=name),
            stored_value=value,
        )
        self.attachments.setdefault(project_id, []).append(attachment)
        return attachment

    def hide_attachments(self, project_id: str, reads: int) -> None:
        """Hide the project's current attachments from the next ``reads`` list calls."""
        for attachment in self.attachments.get(project_id, []):
            self._hidden_attachments[attachment.id] = reads

    def flag_attachments(self, project_id: str) -> List[ProjectFieldAttachment]:
        return [a for a in self.attachments.get(project_id, []) if a.field.name == "Flag"]

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _visible(items, hidden: Dict[str, int]):
        visible = []
        for item in items:
            remaining = hidden.get(item.id, 0)
            if remaining > 0:
                hidden[item.id] = remaining - 1
                continue
            visible.append(item)
        return visible

    # -- FieldRegistryClient surface -----------------------------------------

    async def list_projects(self) -> List[Project]:
        self.calls["list_projects"] += 1
        return list(self.projects)

    async def list_global_field_definitions(self) -> List[GlobalFieldDefinition]:
        self.calls["list_global_field_definitions"] += 1
        if self.fail_list_definitions:
            raise TransportError(500, "definitions unavailable")
        return self._visible(self.definitions, self._hidden_definitions)

    async def create_global_field_definition(self, name, type_descriptor):
        self.calls["create_global_field_definition"] += 1
        definition = GlobalFieldDefinition(
            id=f"def-{next(self._ids)}", name=name, field_type=FieldType(id=type_descriptor),
        )
        self.definitions.append(definition)
        self._hidden_definitions[definition.id] = self.definition_lag
        if self.create_raises_after_commit:
            raise TransportError(None, "read timeout")
        return definition if self.create_returns_body else None

    async def list_project_fields(self, project_id):
        self.calls["list_project_fields"] += 1
        if project_id in self.fail_list_fields:
            raise TransportError(503, f"fields of {project_id} unavailable")
        attachments = self.attachments.get(project_id, [])
        return [a.model_copy() for a in self._visible(attachments, self._hidden_attachments)]

    async def attach_field_to_project(self, project_id, definition):
        self.calls["attach_field_to_project"] += 1
        if project_id in self.fail_attach:
            raise TransportError(500, f"attach to {project_id} rejected")
        attachment = ProjectFieldAttachment(
            id=f"att-{next(self._ids)}",
            field=FieldRef(id=definition.id, name=definition.name),
        )
        self.attachments.setdefault(project_id, []).append(attachment)
        self._hidden_attachments[attachment.id] = self.attachment_lag
        return attachment

    async def set_attachment_value(self, project_id, attachment_id, value):
        self.calls["set_attachment_value"] += 1
        if self.fail_set_value:
            raise TransportError(500, "write rejected")
        for attachment in self.attachments.get(project_id, []):
            if attachment.id == attachment_id:
                attachment.stored_value = value
                return None
        raise TransportError(404, f"no attachment {attachment_id}")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_metrics():
    reset_metrics_for_tests()
    yield
    reset_metrics_for_tests()


@pytest.fixture
def projects() -> List[Project]:
    return [
        Project(id="0-1", name="Alpha"),
        Project(id="0-2", name="Beta"),
        Project(id="0-3", name="Gamma"),
    ]


@pytest.fixture
def fake_registry(projects):
    def _factory(**kwargs) -> FakeRegistry:
        return FakeRegistry(projects, **kwargs)
    return _factory


@pytest.fixture
def make_store():
    def _factory(registry, lookup_attempts: int = 3, verify_attempts: int = 3) -> FlagStateStore:
        reconciler = FieldReconciler(registry, verify_attempts=verify_attempts, verify_delay=0)
        return FlagStateStore(
            registry, reconciler, lookup_attempts=lookup_attempts, lookup_delay=0,
        )
    return _factory
