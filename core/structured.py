"""Structured project model and its Things JSON payload.

A structured project is a project with an ordered list of items, where each
item is either a to-do or a heading that groups to-dos. The Things `json`
command accepts the same tree, so building the payload is a direct walk that
drops every attribute the caller did not supply.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .errors import PayloadValidationError


TYPE_TODO = "to-do"
TYPE_HEADING = "heading"
TYPE_PROJECT = "project"
TYPE_CHECKLIST_ITEM = "checklist-item"


def _expect_dict(value: Any, path: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise PayloadValidationError(path, "must be an object")
    return value


def _require_str(data: Dict[str, Any], key: str, path: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise PayloadValidationError(f"{path}.{key}", "required string")
    return value


def _opt_str(data: Dict[str, Any], key: str, path: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise PayloadValidationError(f"{path}.{key}", "must be a string")
    return value


def _opt_bool(data: Dict[str, Any], key: str, path: str) -> Optional[bool]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, bool):
        raise PayloadValidationError(f"{path}.{key}", "must be a boolean")
    return value


def _opt_index(data: Dict[str, Any], key: str, path: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    # bool is an int subclass; reject it explicitly.
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise PayloadValidationError(f"{path}.{key}", "must be a non-negative integer")
    return value


def _str_list(data: Dict[str, Any], key: str, path: str) -> List[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise PayloadValidationError(f"{path}.{key}", "must be an array of strings")
    return list(value)


def _item_list(data: Dict[str, Any], key: str, path: str) -> List[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise PayloadValidationError(f"{path}.{key}", "must be an array")
    return list(value)


def _expect_type(data: Dict[str, Any], expected: str, path: str) -> None:
    if data.get("type") != expected:
        raise PayloadValidationError(f"{path}.type", f"must be '{expected}'")


@dataclass
class ChecklistItem:
    title: str
    completed: Optional[bool] = None

    @classmethod
    def from_value(cls, value: Any, path: str) -> "ChecklistItem":
        if isinstance(value, str):
            return cls(title=value)
        data = _expect_dict(value, path)
        return cls(title=_require_str(data, "title", path), completed=_opt_bool(data, "completed", path))


@dataclass
class StructuredTodo:
    title: str
    notes: Optional[str] = None
    when: Optional[str] = None
    deadline: Optional[str] = None
    checklist_items: List[ChecklistItem] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    canceled: Optional[bool] = None
    completed: Optional[bool] = None
    area: Optional[str] = None
    area_id: Optional[str] = None
    heading_id: Optional[str] = None
    list_id: Optional[str] = None
    index: Optional[int] = None

    @classmethod
    def from_dict(cls, value: Any, path: str = "todo") -> "StructuredTodo":
        data = _expect_dict(value, path)
        _expect_type(data, TYPE_TODO, path)
        checklist = [
            ChecklistItem.from_value(item, f"{path}.checklistItems[{i}]")
            for i, item in enumerate(_item_list(data, "checklistItems", path))
        ]
        return cls(
            title=_require_str(data, "title", path),
            notes=_opt_str(data, "notes", path),
            when=_opt_str(data, "when", path),
            deadline=_opt_str(data, "deadline", path),
            checklist_items=checklist,
            tags=_str_list(data, "tags", path),
            canceled=_opt_bool(data, "canceled", path),
            completed=_opt_bool(data, "completed", path),
            area=_opt_str(data, "area", path),
            area_id=_opt_str(data, "area-id", path),
            heading_id=_opt_str(data, "heading-id", path),
            list_id=_opt_str(data, "list-id", path),
            index=_opt_index(data, "index", path),
        )


@dataclass
class StructuredHeading:
    title: str
    notes: Optional[str] = None
    index: Optional[int] = None
    items: List[StructuredTodo] = field(default_factory=list)

    @classmethod
    def from_dict(cls, value: Any, path: str = "heading") -> "StructuredHeading":
        data = _expect_dict(value, path)
        _expect_type(data, TYPE_HEADING, path)
        items = [
            StructuredTodo.from_dict(item, f"{path}.items[{i}]")
            for i, item in enumerate(_item_list(data, "items", path))
        ]
        return cls(
            title=_require_str(data, "title", path),
            notes=_opt_str(data, "notes", path),
            index=_opt_index(data, "index", path),
            items=items,
        )


ProjectItem = Union[StructuredHeading, StructuredTodo]


def _project_item_from_dict(value: Any, path: str) -> ProjectItem:
    data = _expect_dict(value, path)
    kind = data.get("type")
    if kind == TYPE_HEADING:
        return StructuredHeading.from_dict(data, path)
    if kind == TYPE_TODO:
        return StructuredTodo.from_dict(data, path)
    raise PayloadValidationError(f"{path}.type", f"must be '{TYPE_HEADING}' or '{TYPE_TODO}'")


@dataclass
class StructuredProject:
    title: str
    notes: Optional[str] = None
    when: Optional[str] = None
    deadline: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    area: Optional[str] = None
    area_id: Optional[str] = None
    canceled: Optional[bool] = None
    completed: Optional[bool] = None
    index: Optional[int] = None
    items: List[ProjectItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, value: Any, path: str = "project") -> "StructuredProject":
        data = _expect_dict(value, path)
        items = [
            _project_item_from_dict(item, f"{path}.items[{i}]")
            for i, item in enumerate(_item_list(data, "items", path))
        ]
        return cls(
            title=_require_str(data, "title", path),
            notes=_opt_str(data, "notes", path),
            when=_opt_str(data, "when", path),
            deadline=_opt_str(data, "deadline", path),
            tags=_str_list(data, "tags", path),
            area=_opt_str(data, "area", path),
            area_id=_opt_str(data, "area-id", path),
            canceled=_opt_bool(data, "canceled", path),
            completed=_opt_bool(data, "completed", path),
            index=_opt_index(data, "index", path),
            items=items,
        )


def build_checklist_items(items: List[ChecklistItem]) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for item in items or []:
        attributes: Dict[str, Any] = {"title": item.title}
        if item.completed is not None:
            attributes["completed"] = item.completed
        out.append({"type": TYPE_CHECKLIST_ITEM, "attributes": attributes})
    return out


def build_todo(todo: StructuredTodo) -> Dict[str, Any]:
    attributes: Dict[str, Any] = {"title": todo.title}
    if todo.notes:
        attributes["notes"] = todo.notes
    if todo.when:
        attributes["when"] = todo.when
    if todo.deadline:
        attributes["deadline"] = todo.deadline
    if todo.tags:
        attributes["tags"] = list(todo.tags)
    if todo.canceled is not None:
        attributes["canceled"] = todo.canceled
    if todo.completed is not None:
        attributes["completed"] = todo.completed
    if todo.area:
        attributes["area"] = todo.area
    if todo.area_id:
        attributes["area-id"] = todo.area_id
    if todo.heading_id:
        attributes["heading-id"] = todo.heading_id
    if todo.list_id:
        attributes["list-id"] = todo.list_id
    if todo.index is not None:
        attributes["index"] = todo.index

    payload: Dict[str, Any] = {"type": TYPE_TODO, "attributes": attributes}
    if todo.checklist_items:
        payload["items"] = build_checklist_items(todo.checklist_items)
    return payload


def build_heading(heading: StructuredHeading) -> Dict[str, Any]:
    attributes: Dict[str, Any] = {"title": heading.title}
    if heading.notes:
        attributes["notes"] = heading.notes
    if heading.index is not None:
        attributes["index"] = heading.index

    payload: Dict[str, Any] = {"type": TYPE_HEADING, "attributes": attributes}
    if heading.items:
        payload["items"] = [build_todo(todo) for todo in heading.items]
    return payload


def build_project_items(items: List[ProjectItem]) -> List[Dict[str, Any]]:
    return [build_heading(item) if isinstance(item, StructuredHeading) else build_todo(item) for item in items or []]


def build_structured_project_payload(project: StructuredProject) -> List[Dict[str, Any]]:
    """Return the `json` command payload: a single project entry with its item tree."""
    attributes: Dict[str, Any] = {"title": project.title}
    if project.notes:
        attributes["notes"] = project.notes
    if project.when:
        attributes["when"] = project.when
    if project.deadline:
        attributes["deadline"] = project.deadline
    if project.tags:
        attributes["tags"] = list(project.tags)
    if project.area:
        attributes["area"] = project.area
    if project.area_id:
        attributes["area-id"] = project.area_id
    if project.canceled is not None:
        attributes["canceled"] = project.canceled
    if project.completed is not None:
        attributes["completed"] = project.completed
    if project.index is not None:
        attributes["index"] = project.index

    payload: Dict[str, Any] = {"type": TYPE_PROJECT, "attributes": attributes}
    if project.items:
        payload["items"] = build_project_items(project.items)
    return [payload]


__all__ = [
    "ChecklistItem",
    "StructuredTodo",
    "StructuredHeading",
    "StructuredProject",
    "ProjectItem",
    "build_checklist_items",
    "build_todo",
    "build_heading",
    "build_project_items",
    "build_structured_project_payload",
]
