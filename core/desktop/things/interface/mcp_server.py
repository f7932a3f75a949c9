#!/usr/bin/env python3
"""MCP (Model Context Protocol) stdio server for Things 3.

This server is a thin, deterministic wrapper around the tool handlers in
`core.desktop.things.application.tool_handlers`. Each tool maps to exactly one
Things URL-scheme command (`things:///add`, `things:///update`, `things:///json`,
...) except `evaluate`, which reads an object back through `osascript`.

Update-class tools need the Things URL-scheme auth token: pass `auth-token`,
set THINGS_AUTH_TOKEN, or store it with `things-mcp --set-token`.
"""

from __future__ import annotations

import io
import json
import logging
import sys
from contextlib import redirect_stdout
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from application.ports import ThingsGateway
from core.desktop.things.application.tool_handlers import TOOL_HANDLERS, process_tool


MCP_VERSION = "2024-11-05"
SERVER_NAME = "things-mcp"
SERVER_VERSION = "0.1.0"

logger = logging.getLogger("things_mcp.server")


@dataclass
class JsonRpcRequest:
    """JSON-RPC 2.0 request."""

    jsonrpc: str
    method: str
    id: Optional[int | str] = None
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "JsonRpcRequest":
        return cls(
            jsonrpc=str(data.get("jsonrpc", "2.0") or "2.0"),
            method=str(data["method"]),
            id=data.get("id"),
            params=data.get("params", {}) if isinstance(data.get("params", {}), dict) else {},
        )


def json_rpc_response(id: Optional[int | str], result: Any) -> Dict[str, Any]:
    """Create JSON-RPC success response."""
    return {"jsonrpc": "2.0", "id": id, "result": result}


def json_rpc_error(id: Optional[int | str], code: int, message: str, data: Any = None) -> Dict[str, Any]:
    """Create JSON-RPC error response."""
    error: Dict[str, Any] = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": id, "error": error}


def _string(description: str) -> Dict[str, Any]:
    return {"type": "string", "description": description}


def _boolean(description: str) -> Dict[str, Any]:
    return {"type": "boolean", "description": description}


def _string_array(description: str) -> Dict[str, Any]:
    return {"type": "array", "items": {"type": "string"}, "description": description}


def _index(description: str = "Position among siblings (0-based).") -> Dict[str, Any]:
    return {"type": "integer", "minimum": 0, "description": description}


def _auth_token(description: str = "Things URL scheme authorization token (omit if THINGS_AUTH_TOKEN is set)") -> Dict[str, Any]:
    return _string(description)


_WHEN = "When to schedule: today, tomorrow, evening, anytime, someday, date string, or date time string"
_DEADLINE = "Deadline date (YYYY-MM-DD format or natural language)"
_CREATION_DATE = "ISO8601 date time string for creation date"
_COMPLETION_DATE = "ISO8601 date time string for completion date"


_CHECKLIST_ITEM_SCHEMA: Dict[str, Any] = {
    "anyOf": [
        {"type": "string"},
        {
            "type": "object",
            "properties": {"title": {"type": "string"}, "completed": {"type": "boolean"}},
            "required": ["title"],
        },
    ]
}

_STRUCTURED_TODO_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "type": {"const": "to-do"},
        "title": {"type": "string"},
        "notes": {"type": "string"},
        "when": {"type": "string"},
        "deadline": {"type": "string"},
        "checklistItems": {"type": "array", "items": _CHECKLIST_ITEM_SCHEMA},
        "tags": {"type": "array", "items": {"type": "string"}},
        "canceled": {"type": "boolean"},
        "completed": {"type": "boolean"},
        "area": {"type": "string"},
        "area-id": {"type": "string"},
        "heading-id": {"type": "string"},
        "list-id": {"type": "string"},
        "index": _index(),
    },
    "required": ["type", "title"],
}

_STRUCTURED_HEADING_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "type": {"const": "heading"},
        "title": {"type": "string"},
        "notes": {"type": "string"},
        "index": _index(),
        "items": {"type": "array", "items": _STRUCTURED_TODO_SCHEMA},
    },
    "required": ["type", "title"],
}

_STRUCTURED_PROJECT_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "description": "Structured project definition with headings and todos",
    "properties": {
        "title": {"type": "string"},
        "notes": {"type": "string"},
        "when": {"type": "string"},
        "deadline": {"type": "string"},
        "tags": {"type": "array", "items": {"type": "string"}},
        "area": {"type": "string"},
        "area-id": {"type": "string"},
        "canceled": {"type": "boolean"},
        "completed": {"type": "boolean"},
        "index": _index(),
        "items": {"type": "array", "items": {"anyOf": [_STRUCTURED_HEADING_SCHEMA, _STRUCTURED_TODO_SCHEMA]}},
    },
    "required": ["title"],
}

_LAYOUT_ITEM_SCHEMA: Dict[str, Any] = {
    "description": "Ordered layout blocks (headings or unsectioned items)",
    "anyOf": [
        {
            "type": "object",
            "properties": {
                "type": {"const": "heading"},
                "id": {"type": "string", "description": "Existing heading id; omit to create a new heading."},
                "title": {"type": "string"},
                "operation": {"enum": ["create", "update", "move", "delete"]},
                "index": _index(),
                "items": {"type": "array", "items": {"type": "string"}, "description": "Todo ids under this heading."},
            },
            "required": ["type"],
        },
        {
            "type": "object",
            "properties": {
                "type": {"const": "unsectioned"},
                "items": {"type": "array", "items": {"type": "string"}, "description": "Todo ids outside any heading."},
            },
            "required": ["type"],
        },
    ],
}


_TOOL_SPECS: Dict[str, Dict[str, Any]] = {
    "add-todo": {
        "description": "Create one todo (or several via `titles`) in Things.",
        "schema": {
            "type": "object",
            "properties": {
                "title": _string("The title of the todo (ignored if titles is specified)"),
                "titles": _string("Multiple todo titles separated by new lines"),
                "notes": _string("Notes for the todo (max 10,000 chars)"),
                "when": _string(_WHEN),
                "deadline": _string(_DEADLINE),
                "tags": _string_array("Array of tag names"),
                "checklist-items": _string_array("Checklist items to add (max 100)"),
                "use-clipboard": {
                    "type": "string",
                    "enum": ["replace-title", "replace-notes", "replace-checklist-items"],
                    "description": "Use clipboard content",
                },
                "list-id": _string("ID of project or area to add to (takes precedence over list)"),
                "list": _string("Title of project or area to add to"),
                "heading-id": _string("ID of heading within project (takes precedence over heading)"),
                "heading": _string("Title of heading within project"),
                "completed": _boolean("Mark as completed"),
                "canceled": _boolean("Mark as canceled (takes priority over completed)"),
                "show-quick-entry": _boolean("Show quick entry dialog instead of adding"),
                "reveal": _boolean("Navigate to and show the created todo"),
                "creation-date": _string(_CREATION_DATE),
                "completion-date": _string(_COMPLETION_DATE),
            },
            "required": [],
        },
    },
    "add-project": {
        "description": "Create a project in Things, optionally with plain todo titles.",
        "schema": {
            "type": "object",
            "properties": {
                "title": _string("The title of the project"),
                "notes": _string("Notes for the project (max 10,000 chars)"),
                "when": _string(_WHEN),
                "deadline": _string(_DEADLINE),
                "tags": _string_array("Array of tag names"),
                "area-id": _string("ID of area to add to (takes precedence over area)"),
                "area": _string("Title of area to add to"),
                "to-dos": _string_array("Array of todo titles to create in the project"),
                "completed": _boolean("Mark as completed"),
                "canceled": _boolean("Mark as canceled (takes priority over completed)"),
                "reveal": _boolean("Navigate into the created project"),
                "creation-date": _string(_CREATION_DATE),
                "completion-date": _string(_COMPLETION_DATE),
            },
            "required": ["title"],
        },
    },
    "create-structured-project": {
        "description": "Create a project with headings, todos and checklists in one `json` call.",
        "schema": {
            "type": "object",
            "properties": {
                "project": _STRUCTURED_PROJECT_SCHEMA,
                "auth-token": _auth_token("Authorization token (required if project uses updates)"),
                "reveal": _boolean("Navigate to the created project when finished"),
            },
            "required": ["project"],
        },
    },
    "update": {
        "description": "Update an existing todo (requires the Things auth token).",
        "schema": {
            "type": "object",
            "properties": {
                "id": _string("The ID of the todo to update (required)"),
                "auth-token": _auth_token(),
                "title": _string("New title (replaces existing)"),
                "notes": _string("New notes (replaces existing, max 10,000 chars)"),
                "prepend-notes": _string("Text to add before existing notes"),
                "append-notes": _string("Text to add after existing notes"),
                "when": _string("When to schedule (cannot update repeating todos)"),
                "deadline": _string("Deadline date (cannot update repeating todos)"),
                "tags": _string_array("Replace all current tags"),
                "add-tags": _string_array("Add these tags to existing ones"),
                "checklist-items": _string_array("Replace all checklist items (max 100)"),
                "prepend-checklist-items": _string_array("Add checklist items to front"),
                "append-checklist-items": _string_array("Add checklist items to end"),
                "list-id": _string("ID of project/area to move to"),
                "list": _string("Title of project/area to move to"),
                "heading-id": _string("ID of heading to move to"),
                "heading": _string("Title of heading to move to"),
                "completed": _boolean("Mark as completed/incomplete"),
                "canceled": _boolean("Mark as canceled/incomplete"),
                "reveal": _boolean("Navigate to and show the updated todo"),
                "duplicate": _boolean("Duplicate before updating"),
                "creation-date": _string(_CREATION_DATE),
                "completion-date": _string(_COMPLETION_DATE),
            },
            "required": ["id"],
        },
    },
    "update-project": {
        "description": "Update an existing project (requires the Things auth token).",
        "schema": {
            "type": "object",
            "properties": {
                "id": _string("The ID of the project to update (required)"),
                "auth-token": _auth_token(),
                "title": _string("New title (replaces existing)"),
                "notes": _string("New notes (replaces existing, max 10,000 chars)"),
                "prepend-notes": _string("Text to add before existing notes"),
                "append-notes": _string("Text to add after existing notes"),
                "when": _string("When to schedule (cannot update repeating projects)"),
                "deadline": _string("Deadline date (cannot update repeating projects)"),
                "tags": _string_array("Replace all current tags"),
                "add-tags": _string_array("Add these tags to existing ones"),
                "area-id": _string("ID of area to move to"),
                "area": _string("Title of area to move to"),
                "completed": _boolean("Mark as completed/incomplete"),
                "canceled": _boolean("Mark as canceled/incomplete"),
                "reveal": _boolean("Navigate to and show the updated project"),
                "duplicate": _boolean("Duplicate before updating"),
                "creation-date": _string(_CREATION_DATE),
                "completion-date": _string(_COMPLETION_DATE),
            },
            "required": ["id"],
        },
    },
    "restructure-project": {
        "description": "Rearrange headings and todos of an existing project top-to-bottom (requires auth token).",
        "schema": {
            "type": "object",
            "properties": {
                "project-id": _string("Identifier of the project to restructure (from Share → Copy Link)"),
                "auth-token": _auth_token(),
                "layout": {
                    "type": "array",
                    "minItems": 1,
                    "items": _LAYOUT_ITEM_SCHEMA,
                    "description": "Top-to-bottom layout describing headings and todos in desired order",
                },
            },
            "required": ["project-id", "layout"],
        },
    },
    "show": {
        "description": "Open an area, project, tag, todo or built-in list in Things.",
        "schema": {
            "type": "object",
            "properties": {
                "id": _string(
                    "ID of area, project, tag, todo, or built-in list (inbox, today, anytime, upcoming, someday, "
                    "logbook, tomorrow, deadlines, repeating, all-projects, logged-projects)"
                ),
                "query": _string("Name of area, project, tag, or built-in list to show"),
                "filter": _string_array("Filter by tag names"),
            },
            "required": [],
        },
    },
    "search": {
        "description": "Open the Things search window.",
        "schema": {
            "type": "object",
            "properties": {"query": _string("Search query")},
            "required": [],
        },
    },
    "evaluate": {
        "description": "Read a Things todo/project/area back as JSON (provide id or url, not both).",
        "schema": {
            "type": "object",
            "properties": {
                "id": _string("Things object id (from Share → Copy Link)"),
                "url": _string("Full Things URL such as things:///show?id=<ID>"),
            },
            "required": [],
        },
    },
    "version": {
        "description": "Ask Things for its version information.",
        "schema": {"type": "object", "properties": {}, "required": []},
    },
    "json": {
        "description": "Send a raw Things JSON command payload.",
        "schema": {
            "type": "object",
            "properties": {
                "auth-token": _auth_token("Authorization token (required for update operations)"),
                "data": _string("JSON string containing array of todo and project objects"),
                "reveal": _boolean("Navigate to and show the first created item"),
            },
            "required": ["data"],
        },
    },
}


def get_tool_definitions() -> List[Dict[str, Any]]:
    """Return MCP tool definitions (1:1 with tool handlers)."""
    tools: List[Dict[str, Any]] = []
    for tool_name in TOOL_HANDLERS:
        entry = _TOOL_SPECS.get(tool_name) or {}
        description = str(entry.get("description") or f"Run Things tool '{tool_name}'.")
        schema = entry.get("schema") or {"type": "object", "properties": {}, "required": []}
        tools.append({"name": tool_name, "description": description, "inputSchema": schema})
    return tools


class MCPServer:
    """MCP stdio server exposing Things URL-scheme tools."""

    def __init__(self, gateway: Optional[ThingsGateway] = None):
        if gateway is None:
            from infrastructure.things_gateway import SubprocessThingsGateway

            gateway = SubprocessThingsGateway()
        self.gateway = gateway
        self._initialized = False

    def handle_request(self, request: JsonRpcRequest) -> Optional[Dict[str, Any]]:
        response = self._dispatch(request)
        # Notifications (no id) never get a reply.
        if request.id is None:
            return None
        return response

    def _dispatch(self, request: JsonRpcRequest) -> Optional[Dict[str, Any]]:
        method = request.method
        params = request.params

        if method == "initialize":
            return json_rpc_response(
                request.id,
                {
                    "protocolVersion": MCP_VERSION,
                    "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
                    "capabilities": {"tools": {}},
                },
            )

        if not self._initialized and method != "notifications/initialized":
            return json_rpc_error(request.id, -32002, "Server not initialized")

        if method == "notifications/initialized":
            self._initialized = True
            return None

        if method == "tools/list":
            return json_rpc_response(request.id, {"tools": get_tool_definitions()})

        if method == "tools/call":
            return self._handle_tools_call(request.id, params)

        if method == "ping":
            return json_rpc_response(request.id, {})

        return json_rpc_error(request.id, -32601, f"Method not found: {method}")

    def _handle_tools_call(self, id: Optional[int | str], params: Dict[str, Any]) -> Dict[str, Any]:
        tool_name = params.get("name")
        arguments = params.get("arguments", {})
        if not isinstance(tool_name, str) or tool_name not in TOOL_HANDLERS:
            return json_rpc_error(id, -32602, f"Unknown tool: {tool_name}")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            return json_rpc_error(id, -32602, "arguments must be an object")

        leaked = io.StringIO()
        with redirect_stdout(leaked):
            resp = process_tool(self.gateway, tool_name, arguments)
        leaked_text = leaked.getvalue()
        if leaked_text.strip():
            # Never leak prints into the JSON-RPC channel; route to stderr.
            print(leaked_text, file=sys.stderr, end="")
        logger.debug("tools/call %s -> %s", tool_name, "ok" if resp.success else resp.error_code)
        return json_rpc_response(id, resp.to_result())


def run_stdio(*, gateway: Optional[ThingsGateway] = None, stdin=None, stdout=None) -> int:
    """Run MCP server over stdio (newline-delimited JSON-RPC)."""
    server = MCPServer(gateway=gateway)
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout

    def _write(payload: Dict[str, Any]) -> None:
        stdout.write(json.dumps(payload, ensure_ascii=False) + "\n")
        stdout.flush()

    for line in stdin:
        raw = line.strip()
        if not raw:
            continue
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            _write(json_rpc_error(None, -32700, f"Parse error: {exc}"))
            continue
        if not isinstance(data, dict) or "method" not in data:
            _write(json_rpc_error(data.get("id") if isinstance(data, dict) else None, -32600, "Invalid Request"))
            continue
        req = JsonRpcRequest.from_dict(data)
        out = server.handle_request(req)
        if out is None:
            continue
        _write(out)
    return 0


def _configure_logging(level: str) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    # stdout carries JSON-RPC; diagnostics go to stderr only.
    package_logger = logging.getLogger("things_mcp")
    package_logger.handlers[:] = [handler]
    package_logger.setLevel(getattr(logging, level.upper(), logging.WARNING))


def main(argv: Optional[List[str]] = None) -> int:
    """Console entrypoint for `things-mcp`."""
    import argparse

    import config
    from infrastructure.things_gateway import SubprocessThingsGateway

    parser = argparse.ArgumentParser(
        prog="things-mcp",
        description="A Model Context Protocol server for Things 3 app integration.",
        epilog="Set THINGS_AUTH_TOKEN (or use --set-token) to avoid passing auth-token for update operations.",
    )
    parser.add_argument("-v", "--version", action="version", version=SERVER_VERSION)
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for stderr diagnostics (default: WARNING).",
    )
    token_group = parser.add_mutually_exclusive_group()
    token_group.add_argument("--set-token", metavar="TOKEN", help=f"Save the Things auth token to {config.USER_CONFIG_PATH}.")
    token_group.add_argument("--clear-token", action="store_true", help="Remove the saved Things auth token.")
    parser.add_argument("--check", action="store_true", help="Run startup checks and exit.")
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    if args.set_token is not None or args.clear_token:
        config.set_user_token("" if args.clear_token else args.set_token)
        print("Things auth token saved." if args.set_token else "Things auth token cleared.", file=sys.stderr)
        return 0

    gateway = SubprocessThingsGateway()
    problems = gateway.preflight()
    for problem in problems:
        print(f"ERROR: {problem}", file=sys.stderr)
    if problems:
        return 1
    if args.check:
        print("OK", file=sys.stderr)
        return 0

    logger.info("%s %s listening on stdio", SERVER_NAME, SERVER_VERSION)
    return run_stdio(gateway=gateway)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
