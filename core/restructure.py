"""Restructure an existing project into a new heading/to-do layout.

The layout is read top to bottom. Headings are created, updated, moved or
deleted; to-dos listed under a heading (or in an unsectioned block) are moved
into place. Things applies the operations in order, so all heading operations
are emitted before the to-do moves that may reference freshly created
headings.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from .errors import PayloadValidationError
from .structured import TYPE_HEADING, TYPE_TODO, _expect_dict, _opt_index, _opt_str, _str_list


TYPE_UNSECTIONED = "unsectioned"

OP_CREATE = "create"
OP_UPDATE = "update"
OP_MOVE = "move"
OP_DELETE = "delete"
HEADING_OPERATIONS = (OP_CREATE, OP_UPDATE, OP_MOVE, OP_DELETE)


@dataclass
class RestructureHeading:
    id: Optional[str] = None
    title: Optional[str] = None
    operation: Optional[str] = None
    index: Optional[int] = None
    items: List[str] = field(default_factory=list)

    def resolve_operation(self) -> str:
        if self.operation:
            return self.operation
        if self.id:
            return OP_UPDATE if (self.title or self.index is not None) else OP_MOVE
        return OP_CREATE


@dataclass
class RestructureUnsectioned:
    items: List[str] = field(default_factory=list)


LayoutItem = Union[RestructureHeading, RestructureUnsectioned]


@dataclass(frozen=True)
class CreatedHeading:
    id: str
    title: Optional[str] = None

    def label(self) -> str:
        return f"• {self.title if self.title is not None else '(untitled)'} → {self.id}"


@dataclass
class RestructurePlan:
    operations: List[Dict[str, Any]] = field(default_factory=list)
    created_headings: List[CreatedHeading] = field(default_factory=list)

    @property
    def heading_operations(self) -> List[Dict[str, Any]]:
        return [op for op in self.operations if op.get("type") == TYPE_HEADING]

    @property
    def todo_operations(self) -> List[Dict[str, Any]]:
        return [op for op in self.operations if op.get("type") == TYPE_TODO]


def layout_item_from_dict(value: Any, path: str = "layout") -> LayoutItem:
    data = _expect_dict(value, path)
    kind = data.get("type")
    if kind == TYPE_UNSECTIONED:
        return RestructureUnsectioned(items=_str_list(data, "items", path))
    if kind != TYPE_HEADING:
        raise PayloadValidationError(f"{path}.type", f"must be '{TYPE_HEADING}' or '{TYPE_UNSECTIONED}'")
    operation = _opt_str(data, "operation", path)
    if operation is not None and operation not in HEADING_OPERATIONS:
        raise PayloadValidationError(f"{path}.operation", f"must be one of {', '.join(HEADING_OPERATIONS)}")
    return RestructureHeading(
        id=_opt_str(data, "id", path),
        title=_opt_str(data, "title", path),
        operation=operation,
        index=_opt_index(data, "index", path),
        items=_str_list(data, "items", path),
    )


def parse_layout(values: Any, path: str = "layout") -> List[LayoutItem]:
    if not isinstance(values, list):
        raise PayloadValidationError(path, "must be an array")
    return [layout_item_from_dict(item, f"{path}[{i}]") for i, item in enumerate(values)]


def _new_heading_id() -> str:
    return str(uuid.uuid4())


def _todo_move(todo_id: str, project_id: str, index: int, heading_id: Optional[str] = None) -> Dict[str, Any]:
    attributes: Dict[str, Any] = {"list-id": project_id}
    if heading_id:
        attributes["heading-id"] = heading_id
    attributes["index"] = index
    return {"type": TYPE_TODO, "id": todo_id, "operation": OP_MOVE, "attributes": attributes}


def build_restructure_payload(
    project_id: str,
    layout: List[LayoutItem],
    *,
    id_factory: Callable[[], str] = _new_heading_id,
) -> RestructurePlan:
    heading_ops: List[Dict[str, Any]] = []
    todo_ops: List[Dict[str, Any]] = []
    created: List[CreatedHeading] = []
    heading_index = 0
    todo_index = 0

    for item in layout or []:
        if isinstance(item, RestructureUnsectioned):
            for todo_id in item.items:
                todo_ops.append(_todo_move(todo_id, project_id, todo_index))
                todo_index += 1
            continue

        provided_id = item.id
        operation = item.resolve_operation()

        if operation == OP_DELETE:
            # Nothing to delete without an id; its to-dos stay where they are.
            if provided_id:
                heading_ops.append({"type": TYPE_HEADING, "id": provided_id, "operation": OP_DELETE})
            continue

        heading_id = provided_id or id_factory()
        attributes: Dict[str, Any] = {"project-id": project_id}
        if item.title:
            attributes["title"] = item.title
        attributes["index"] = item.index if item.index is not None else heading_index
        heading_ops.append({"type": TYPE_HEADING, "id": heading_id, "operation": operation, "attributes": attributes})
        if not provided_id:
            created.append(CreatedHeading(id=heading_id, title=item.title))

        for todo_id in item.items:
            todo_ops.append(_todo_move(todo_id, project_id, todo_index, heading_id))
            todo_index += 1
        heading_index += 1

    return RestructurePlan(operations=heading_ops + todo_ops, created_headings=created)


__all__ = [
    "RestructureHeading",
    "RestructureUnsectioned",
    "LayoutItem",
    "CreatedHeading",
    "RestructurePlan",
    "HEADING_OPERATIONS",
    "layout_item_from_dict",
    "parse_layout",
    "build_restructure_payload",
]
