"""
FlagSync — System-wide constants.

The field name and its semantics are fixed; resource paths and query
projections describe the backend's REST surface.
"""

# ---------------------------------------------------------------------------
# The Flag field
# ---------------------------------------------------------------------------

FLAG_FIELD_NAME: str = "Flag"

# Type descriptor chosen when the global definition is created.
FLAG_FIELD_TYPE_ID: str = "enum[*]"

# Backend-side default text for the global definition.
FLAG_DEFINITION_DEFAULT_TEXT: str = "false"

# Concrete attachment type understood by the backend.
ATTACHMENT_TYPE: str = "SimpleProjectCustomField"

# ---------------------------------------------------------------------------
# Query projections
# ---------------------------------------------------------------------------

PROJECT_FIELDS: str = "id,name"
DEFINITION_FIELDS: str = "id,name,fieldType(presentation,id)"
ATTACHMENT_FIELDS: str = "id,canBeEmpty,emptyFieldText,project(id,name),field(id,name)"

# ---------------------------------------------------------------------------
# Resource paths (relative to BACKEND_URL)
# ---------------------------------------------------------------------------

PROJECTS_PATH: str = "admin/projects"
DEFINITIONS_PATH: str = "admin/customFieldSettings/customFields"
PROJECT_FIELDS_PATH: str = "admin/projects/{project_id}/customFields"
PROJECT_FIELD_PATH: str = "admin/projects/{project_id}/customFields/{attachment_id}"

JSON_HEADERS = {"Content-Type": "application/json"}
