"""Unit tests for structured project payload construction."""

import pytest

from core.errors import PayloadValidationError
from core.structured import (
    ChecklistItem,
    StructuredHeading,
    StructuredProject,
    StructuredTodo,
    build_checklist_items,
    build_structured_project_payload,
    build_todo,
)


class TestChecklistItems:
    def test_string_and_object_items(self):
        items = [
            ChecklistItem.from_value("Pack", "c[0]"),
            ChecklistItem.from_value({"title": "Ship", "completed": True}, "c[1]"),
            ChecklistItem.from_value({"title": "Wave"}, "c[2]"),
        ]
        assert build_checklist_items(items) == [
            {"type": "checklist-item", "attributes": {"title": "Pack"}},
            {"type": "checklist-item", "attributes": {"title": "Ship", "completed": True}},
            {"type": "checklist-item", "attributes": {"title": "Wave"}},
        ]

    def test_completed_false_is_kept(self):
        out = build_checklist_items([ChecklistItem("Open", completed=False)])
        assert out[0]["attributes"] == {"title": "Open", "completed": False}

    def test_object_without_title_rejected(self):
        with pytest.raises(PayloadValidationError) as exc:
            ChecklistItem.from_value({"completed": True}, "todo.checklistItems[0]")
        assert "todo.checklistItems[0].title" in str(exc.value)


class TestBuildTodo:
    def test_minimal_todo_has_only_title(self):
        assert build_todo(StructuredTodo(title="Call")) == {"type": "to-do", "attributes": {"title": "Call"}}

    def test_empty_optionals_are_omitted(self):
        todo = StructuredTodo(title="Call", notes="", when="", deadline="", tags=[], area="", list_id="")
        assert build_todo(todo)["attributes"] == {"title": "Call"}

    def test_full_todo_attributes(self):
        todo = StructuredTodo.from_dict(
            {
                "type": "to-do",
                "title": "Write report",
                "notes": "Quarterly",
                "when": "today",
                "deadline": "2026-11-01",
                "tags": ["work", "writing"],
                "canceled": False,
                "completed": False,
                "area": "Office",
                "area-id": "A1",
                "heading-id": "H1",
                "list-id": "L1",
                "index": 0,
                "checklistItems": ["Outline", {"title": "Draft", "completed": True}],
            }
        )
        payload = build_todo(todo)
        assert payload["attributes"] == {
            "title": "Write report",
            "notes": "Quarterly",
            "when": "today",
            "deadline": "2026-11-01",
            "tags": ["work", "writing"],
            "canceled": False,
            "completed": False,
            "area": "Office",
            "area-id": "A1",
            "heading-id": "H1",
            "list-id": "L1",
            "index": 0,
        }
        assert [i["attributes"]["title"] for i in payload["items"]] == ["Outline", "Draft"]

    def test_wrong_type_rejected(self):
        with pytest.raises(PayloadValidationError):
            StructuredTodo.from_dict({"type": "heading", "title": "x"})

    def test_negative_index_rejected(self):
        with pytest.raises(PayloadValidationError) as exc:
            StructuredTodo.from_dict({"type": "to-do", "title": "x", "index": -1}, "t")
        assert "t.index" in str(exc.value)

    def test_boolean_index_rejected(self):
        with pytest.raises(PayloadValidationError):
            StructuredTodo.from_dict({"type": "to-do", "title": "x", "index": True})


class TestStructuredProject:
    def test_project_tree_order_is_preserved(self):
        project = StructuredProject.from_dict(
            {
                "title": "Launch",
                "tags": ["q4"],
                "items": [
                    {"type": "to-do", "title": "Kickoff"},
                    {
                        "type": "heading",
                        "title": "Build",
                        "notes": "phase 1",
                        "items": [{"type": "to-do", "title": "API"}, {"type": "to-do", "title": "UI"}],
                    },
                    {"type": "heading", "title": "Empty", "index": 2},
                ],
            }
        )
        payload = build_structured_project_payload(project)

        assert len(payload) == 1
        entry = payload[0]
        assert entry["type"] == "project"
        assert entry["attributes"] == {"title": "Launch", "tags": ["q4"]}
        items = entry["items"]
        assert [i["type"] for i in items] == ["to-do", "heading", "heading"]
        assert items[1]["attributes"] == {"title": "Build", "notes": "phase 1"}
        assert [t["attributes"]["title"] for t in items[1]["items"]] == ["API", "UI"]
        assert items[2] == {"type": "heading", "attributes": {"title": "Empty", "index": 2}}

    def test_project_without_items_has_no_items_key(self):
        payload = build_structured_project_payload(StructuredProject(title="Solo"))
        assert payload == [{"type": "project", "attributes": {"title": "Solo"}}]

    def test_project_flags_kept_when_false(self):
        payload = build_structured_project_payload(StructuredProject(title="P", canceled=False, completed=True, index=0))
        assert payload[0]["attributes"] == {"title": "P", "canceled": False, "completed": True, "index": 0}

    def test_heading_nested_in_heading_rejected(self):
        with pytest.raises(PayloadValidationError) as exc:
            StructuredProject.from_dict(
                {
                    "title": "P",
                    "items": [{"type": "heading", "title": "A", "items": [{"type": "heading", "title": "B"}]}],
                }
            )
        assert "project.items[0].items[0].type" in str(exc.value)

    def test_unknown_item_type_rejected(self):
        with pytest.raises(PayloadValidationError):
            StructuredProject.from_dict({"title": "P", "items": [{"type": "area", "title": "x"}]})

    def test_missing_title_rejected(self):
        with pytest.raises(PayloadValidationError) as exc:
            StructuredProject.from_dict({"notes": "no title"})
        assert exc.value.path == "project.title"

    def test_heading_model_from_dict(self):
        heading = StructuredHeading.from_dict({"type": "heading", "title": "H", "index": 1})
        assert heading.items == []
        assert heading.index == 1
