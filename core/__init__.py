from .errors import (
    ThingsError,
    PayloadValidationError,
    AuthTokenRequiredError,
    EmptyLayoutError,
)
from .structured import (
    ChecklistItem,
    StructuredTodo,
    StructuredHeading,
    StructuredProject,
    build_checklist_items,
    build_todo,
    build_heading,
    build_project_items,
    build_structured_project_payload,
)
from .restructure import (
    RestructureHeading,
    RestructureUnsectioned,
    CreatedHeading,
    RestructurePlan,
    parse_layout,
    build_restructure_payload,
)
from .redaction import redact_text

__all__ = [
    # Errors
    "ThingsError",
    "PayloadValidationError",
    "AuthTokenRequiredError",
    "EmptyLayoutError",
    # Structured projects
    "ChecklistItem",
    "StructuredTodo",
    "StructuredHeading",
    "StructuredProject",
    "build_checklist_items",
    "build_todo",
    "build_heading",
    "build_project_items",
    "build_structured_project_payload",
    # Restructure
    "RestructureHeading",
    "RestructureUnsectioned",
    "CreatedHeading",
    "RestructurePlan",
    "parse_layout",
    "build_restructure_payload",
    "redact_text",
]
