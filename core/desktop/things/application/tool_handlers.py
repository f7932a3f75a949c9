"""Tool handlers: one MCP tool → one Things URL-scheme call.

Every handler receives a `ThingsGateway` and the raw tool arguments, builds the
query for its Things command, performs at most one external call and returns a
`ToolResponse`. Errors are raised as `ThingsError` (or the gateway's runtime
errors) and turned into error responses by `process_tool`.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

from application.ports import ThingsGateway
from core.errors import EmptyLayoutError, PayloadValidationError, ThingsError
from core.restructure import build_restructure_payload, parse_layout
from core.structured import StructuredProject, build_structured_project_payload
from core.desktop.things.application.auth import resolve_auth_token
from core.desktop.things.application.url_params import (
    LINE_SEPARATOR,
    TAG_SEPARATOR,
    ThingsQuery,
    dumps_payload,
    things_url,
)
from infrastructure.evaluate_runner import EvaluateError
from infrastructure.url_opener import ThingsOpenError

logger = logging.getLogger("things_mcp.tools")

# RFC 3986 marks left unescaped in resource URIs; quote() already keeps `-_.~`.
_URI_COMPONENT_SAFE = "!'()*"


@dataclass
class ToolResponse:
    success: bool
    content: List[Dict[str, Any]] = field(default_factory=list)
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    error_recovery: Optional[str] = None

    @property
    def text(self) -> str:
        return "\n".join(str(item.get("text", "")) for item in self.content if item.get("type") == "text")

    def to_result(self) -> Dict[str, Any]:
        """MCP `tools/call` result body."""
        if self.success:
            return {"content": list(self.content), "isError": False}
        message = self.error_message or "Unknown error"
        if self.error_recovery:
            message = f"{message}\n{self.error_recovery}"
        return {"content": [text_content(message)], "isError": True}


def text_content(text: str) -> Dict[str, Any]:
    return {"type": "text", "text": text}


def ok_response(text: str) -> ToolResponse:
    return ToolResponse(success=True, content=[text_content(text)])


def error_response(code: str, message: str, *, recovery: str = "") -> ToolResponse:
    return ToolResponse(
        success=False,
        error_code=code,
        error_message=message,
        error_recovery=recovery or None,
    )


def _open(gateway: ThingsGateway, command: str, query: Optional[ThingsQuery] = None) -> None:
    gateway.open_url(things_url(command, query))


def handle_add_todo(gateway: ThingsGateway, args: Dict[str, Any]) -> ToolResponse:
    query = ThingsQuery()
    if args.get("titles"):
        query.set("titles", args["titles"])
    elif args.get("title"):
        query.set("title", args["title"])
    query.set("notes", args.get("notes"))
    query.set("when", args.get("when"))
    query.set("deadline", args.get("deadline"))
    query.set_list("tags", args.get("tags"), TAG_SEPARATOR)
    query.set_list("checklist-items", args.get("checklist-items"), LINE_SEPARATOR)
    query.set("use-clipboard", args.get("use-clipboard"))
    query.set("list-id", args.get("list-id"))
    query.set("list", args.get("list"))
    query.set("heading-id", args.get("heading-id"))
    query.set("heading", args.get("heading"))
    query.set_bool("completed", args.get("completed"))
    query.set_bool("canceled", args.get("canceled"))
    query.set_bool("show-quick-entry", args.get("show-quick-entry"))
    query.set_bool("reveal", args.get("reveal"))
    query.set("creation-date", args.get("creation-date"))
    query.set("completion-date", args.get("completion-date"))

    _open(gateway, "add", query)
    name = "todos" if args.get("titles") else f'todo "{args.get("title") or "untitled"}"'
    return ok_response(f"{name} created successfully in Things")


def handle_add_project(gateway: ThingsGateway, args: Dict[str, Any]) -> ToolResponse:
    query = ThingsQuery()
    query.set_present("title", args["title"])
    query.set("notes", args.get("notes"))
    query.set("when", args.get("when"))
    query.set("deadline", args.get("deadline"))
    query.set_list("tags", args.get("tags"), TAG_SEPARATOR)
    query.set("area-id", args.get("area-id"))
    query.set("area", args.get("area"))
    query.set_list("to-dos", args.get("to-dos"), LINE_SEPARATOR)
    query.set_bool("completed", args.get("completed"))
    query.set_bool("canceled", args.get("canceled"))
    query.set_bool("reveal", args.get("reveal"))
    query.set("creation-date", args.get("creation-date"))
    query.set("completion-date", args.get("completion-date"))

    _open(gateway, "add-project", query)
    return ok_response(f'Project "{args["title"]}" created successfully in Things')


def handle_create_structured_project(gateway: ThingsGateway, args: Dict[str, Any]) -> ToolResponse:
    project = StructuredProject.from_dict(args.get("project"), "project")
    payload = build_structured_project_payload(project)

    query = ThingsQuery()
    query.set("auth-token", resolve_auth_token(args.get("auth-token"), required=False))
    query.set_present("data", dumps_payload(payload))
    query.set_bool("reveal", args.get("reveal"))

    _open(gateway, "json", query)
    return ok_response(f'Structured project "{project.title}" created successfully in Things')


def _update_common(query: ThingsQuery, args: Dict[str, Any]) -> None:
    query.set("title", args.get("title"))
    query.set_present("notes", args.get("notes"))
    query.set("prepend-notes", args.get("prepend-notes"))
    query.set("append-notes", args.get("append-notes"))
    query.set_present("when", args.get("when"))
    query.set_present("deadline", args.get("deadline"))
    query.set_list_present("tags", args.get("tags"), TAG_SEPARATOR)
    query.set_list_present("add-tags", args.get("add-tags"), TAG_SEPARATOR)


def _update_flags(query: ThingsQuery, args: Dict[str, Any]) -> None:
    query.set_bool("completed", args.get("completed"))
    query.set_bool("canceled", args.get("canceled"))
    query.set_bool("reveal", args.get("reveal"))
    query.set_bool("duplicate", args.get("duplicate"))
    query.set("creation-date", args.get("creation-date"))
    query.set("completion-date", args.get("completion-date"))


def handle_update(gateway: ThingsGateway, args: Dict[str, Any]) -> ToolResponse:
    token = resolve_auth_token(args.get("auth-token"))
    query = ThingsQuery()
    query.set_present("id", args["id"])
    query.set_present("auth-token", token)
    _update_common(query, args)
    query.set_list_present("checklist-items", args.get("checklist-items"), LINE_SEPARATOR)
    query.set_list_present("prepend-checklist-items", args.get("prepend-checklist-items"), LINE_SEPARATOR)
    query.set_list_present("append-checklist-items", args.get("append-checklist-items"), LINE_SEPARATOR)
    query.set("list-id", args.get("list-id"))
    query.set("list", args.get("list"))
    query.set("heading-id", args.get("heading-id"))
    query.set("heading", args.get("heading"))
    _update_flags(query, args)

    _open(gateway, "update", query)
    return ok_response("Todo updated successfully in Things")


def handle_update_project(gateway: ThingsGateway, args: Dict[str, Any]) -> ToolResponse:
    token = resolve_auth_token(args.get("auth-token"))
    query = ThingsQuery()
    query.set_present("id", args["id"])
    query.set_present("auth-token", token)
    _update_common(query, args)
    query.set("area-id", args.get("area-id"))
    query.set("area", args.get("area"))
    _update_flags(query, args)

    _open(gateway, "update-project", query)
    return ok_response("Project updated successfully in Things")


def handle_restructure_project(gateway: ThingsGateway, args: Dict[str, Any]) -> ToolResponse:
    project_id = args["project-id"]
    plan = build_restructure_payload(project_id, parse_layout(args.get("layout"), "layout"))
    if not plan.operations:
        raise EmptyLayoutError(
            "No operations generated from layout. Verify that headings or items are provided."
        )

    query = ThingsQuery()
    query.set_present("auth-token", resolve_auth_token(args.get("auth-token")))
    query.set_present("data", dumps_payload(plan.operations))

    _open(gateway, "json", query)
    lines = [f"Project {project_id} restructured successfully in Things"]
    if plan.created_headings:
        lines.append("New headings:")
        lines.extend(heading.label() for heading in plan.created_headings)
    return ok_response("\n".join(lines))


def handle_show(gateway: ThingsGateway, args: Dict[str, Any]) -> ToolResponse:
    query = ThingsQuery()
    if args.get("id"):
        query.set("id", args["id"])
    elif args.get("query"):
        query.set("query", args["query"])
    query.set_list("filter", args.get("filter"), TAG_SEPARATOR)

    _open(gateway, "show", query)
    target = args.get("id") or args.get("query") or "Things"
    return ok_response(f"Opened {target} in Things")


def handle_search(gateway: ThingsGateway, args: Dict[str, Any]) -> ToolResponse:
    query = ThingsQuery()
    query.set("query", args.get("query"))

    _open(gateway, "search", query)
    text = f'Searching for "{args["query"]}" in Things' if args.get("query") else "Opened search in Things"
    return ok_response(text)


def handle_evaluate(gateway: ThingsGateway, args: Dict[str, Any]) -> ToolResponse:
    has_id = bool(args.get("id"))
    has_url = bool(args.get("url"))
    if has_id == has_url:
        raise PayloadValidationError("", "Provide either id or url, but not both")

    target = args["id"] if has_id else args["url"]
    data = gateway.evaluate(target)
    resource = {
        "text": json.dumps(data, ensure_ascii=False, indent=2),
        "uri": f"things-evaluate://{quote(target, safe=_URI_COMPONENT_SAFE)}",
        "mimeType": "application/json",
    }
    return ToolResponse(success=True, content=[{"type": "resource", "resource": resource}])


def handle_version(gateway: ThingsGateway, args: Dict[str, Any]) -> ToolResponse:
    _open(gateway, "version")
    return ok_response("Retrieved Things version information")


def handle_json(gateway: ThingsGateway, args: Dict[str, Any]) -> ToolResponse:
    data = args["data"]
    try:
        parsed = json.loads(data)
    except json.JSONDecodeError as exc:
        raise PayloadValidationError("data", f"invalid JSON: {exc}") from exc
    if not isinstance(parsed, list):
        raise PayloadValidationError("data", "must be a JSON array of Things objects")

    query = ThingsQuery()
    query.set("auth-token", resolve_auth_token(args.get("auth-token"), required=False))
    query.set_present("data", data)
    query.set_bool("reveal", args.get("reveal"))

    _open(gateway, "json", query)
    return ok_response("JSON data processed successfully in Things")


ToolHandler = Callable[[ThingsGateway, Dict[str, Any]], ToolResponse]

TOOL_HANDLERS: Dict[str, ToolHandler] = {
    "add-todo": handle_add_todo,
    "add-project": handle_add_project,
    "create-structured-project": handle_create_structured_project,
    "update": handle_update,
    "update-project": handle_update_project,
    "restructure-project": handle_restructure_project,
    "show": handle_show,
    "search": handle_search,
    "evaluate": handle_evaluate,
    "version": handle_version,
    "json": handle_json,
}


@lru_cache(maxsize=1)
def _tool_input_validators() -> Dict[str, Any]:
    """Compile MCP tool input schemas (1:1 with handlers)."""
    import jsonschema

    from core.desktop.things.interface.mcp_server import get_tool_definitions

    return {
        tool["name"]: jsonschema.Draft7Validator(tool["inputSchema"])
        for tool in get_tool_definitions()
    }


def validate_tool_args(tool: str, args: Dict[str, Any]) -> None:
    validator = _tool_input_validators().get(tool)
    if validator is None:
        return
    errors = sorted(validator.iter_errors(args), key=lambda e: list(e.absolute_path))
    if not errors:
        return
    messages = []
    for err in errors:
        where = ".".join(str(p) for p in err.absolute_path)
        messages.append(f"{where}: {err.message}" if where else err.message)
    raise PayloadValidationError("", "; ".join(messages))


def process_tool(gateway: ThingsGateway, tool: str, args: Optional[Dict[str, Any]] = None) -> ToolResponse:
    handler = TOOL_HANDLERS.get(tool)
    if handler is None:
        return error_response("UNKNOWN_TOOL", f"Unknown tool: {tool}")
    payload = dict(args or {})
    try:
        validate_tool_args(tool, payload)
        return handler(gateway, payload)
    except ThingsError as exc:
        logger.warning("%s rejected: %s", tool, exc.message)
        return error_response(exc.code, exc.message, recovery=exc.recovery)
    except ThingsOpenError as exc:
        logger.error("%s failed: %s", tool, exc)
        return error_response("OPEN_FAILED", str(exc))
    except EvaluateError as exc:
        logger.error("%s failed: %s", tool, exc)
        return error_response("EVALUATE_FAILED", str(exc))
    except Exception as exc:
        logger.exception("%s crashed", tool)
        return error_response("INTERNAL_ERROR", f"internal error: {exc}")


__all__ = [
    "ToolResponse",
    "TOOL_HANDLERS",
    "error_response",
    "ok_response",
    "process_tool",
    "text_content",
    "validate_tool_args",
]
