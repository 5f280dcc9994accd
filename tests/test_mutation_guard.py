"""Tests for partial update sanitization and guarded repositories."""
from datetime import datetime
from typing import Any

import pytest

from app.infra.repositories import RepositoryFactory
from app.infra.repositories.mutation_guard import drop_absent, sanitize_update, strip_absent
from app.infra.store import DELETE_FIELD, InMemoryDocumentStore
from app.utils.datetime_helper import CANONICAL_TZ, canonical_iso

NOW = datetime(2025, 3, 11, 9, 30, tzinfo=CANONICAL_TZ)


def contains_none(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, dict):
        return any(contains_none(v) for v in value.values())
    if isinstance(value, list):
        return any(contains_none(v) for v in value)
    return False


class TestSanitizeUpdate:
    """Tests for sanitize_update."""

    def test_none_fields_are_dropped(self) -> None:
        """Top-level None means 'leave unchanged'."""
        result = sanitize_update({"title": "New", "description": None}, now=NOW)

        assert result == {"title": "New", "updatedAt": canonical_iso(NOW)}

    def test_empty_assignee_set_clears_legacy_field(self) -> None:
        """An emptied assignee set persists [] and deletes the stale legacy id."""
        result = sanitize_update({"assigneeIds": [], "assigneeId": "stale-id"}, now=NOW)

        assert result["assigneeIds"] == []
        assert result["assigneeId"] is DELETE_FIELD

    def test_first_assignee_is_mirrored(self) -> None:
        """The first valid assignee becomes the legacy assigneeId."""
        result = sanitize_update({"assigneeIds": ["", None, "u2", "u3"]}, now=NOW)

        assert result["assigneeIds"] == ["u2", "u3"]
        assert result["assigneeId"] == "u2"

    def test_legacy_assignee_alone_passes_through(self) -> None:
        """Without an assignee set, assigneeId is written as given."""
        result = sanitize_update({"assigneeId": "u5"}, now=NOW)

        assert result["assigneeId"] == "u5"
        assert "assigneeIds" not in result

    def test_empty_lists_dropped_except_allow_list(self) -> None:
        """Empty tags/dependencies are kept, other empty lists are dropped."""
        result = sanitize_update({"tags": [], "dependencies": [None], "attachments": []}, now=NOW)

        assert result["tags"] == []
        assert result["dependencies"] == []
        assert "attachments" not in result

    def test_list_items_are_cleaned(self) -> None:
        """None and empty-string items are removed from lists."""
        result = sanitize_update({"tags": ["a", None, "", "b"]}, now=NOW)

        assert result["tags"] == ["a", "b"]

    def test_nested_maps_are_stripped(self) -> None:
        """Nested None values go; maps left empty are dropped."""
        result = sanitize_update(
            {"meta": {"source": "web", "ref": None}, "extra": {"a": None, "b": {"c": None}}},
            now=NOW,
        )

        assert result["meta"] == {"source": "web"}
        assert "extra" not in result

    def test_delete_sentinel_survives(self) -> None:
        """DELETE_FIELD is an instruction and is never cleaned away."""
        result = sanitize_update({"dueDate": DELETE_FIELD, "meta": {"x": DELETE_FIELD}}, now=NOW)

        assert result["dueDate"] is DELETE_FIELD
        assert result["meta"]["x"] is DELETE_FIELD

    def test_empty_optional_references_are_skipped(self) -> None:
        """Empty strings for projectId/description/assigneeId are not written."""
        result = sanitize_update({"projectId": "", "description": "", "title": ""}, now=NOW)

        assert "projectId" not in result
        assert "description" not in result
        assert result["title"] == ""

    def test_updated_at_overrides_caller(self) -> None:
        """updatedAt is always the server's canonical time."""
        result = sanitize_update({"updatedAt": "1999-01-01", "title": "x"}, now=NOW)

        assert result["updatedAt"] == "2025-03-11T09:30:00+03:00"

    @pytest.mark.parametrize("updates", [
        {"a": None},
        {"a": {"b": None}},
        {"a": [None, {"b": None}]},
        {"assigneeIds": [None], "assigneeId": None, "tags": None},
        {"a": {"b": {"c": {"d": None}}}, "e": [[None]]},
    ])
    def test_no_none_survives(self, updates) -> None:
        """No None remains anywhere in the sanitized payload."""
        assert not contains_none(sanitize_update(updates, now=NOW))


class TestStripHelpers:
    """Tests for strip_absent and drop_absent."""

    def test_strip_absent_keeps_lists(self) -> None:
        """Lists are kept even when they end up empty."""
        assert strip_absent({"a": [None], "b": None}) == {"a": []}

    def test_strip_absent_of_empty_mapping_is_none(self) -> None:
        """A mapping with only absent values disappears."""
        assert strip_absent({"a": None}) is None

    def test_drop_absent_skips_empty_strings(self) -> None:
        """New documents omit None and empty-string fields."""
        assert drop_absent({"title": "x", "description": "", "projectId": None}) == {"title": "x"}


class TestGuardedRepositories:
    """Tests for task and project repositories over the store."""

    async def test_update_task_clears_legacy_assignee(
        self, repositories: RepositoryFactory, store: InMemoryDocumentStore
    ) -> None:
        """Emptying assigneeIds removes the stored legacy assigneeId."""
        task = await repositories.tasks.create_task({
            "title": "Ship",
            "workspaceId": "w1",
            "assigneeIds": ["u2"],
            "assigneeId": "u2",
            "description": None,
        })

        await repositories.tasks.update_task(task.id, {"assigneeIds": [], "dueDate": None})

        data = (await store.get(f"tasks/{task.id}")).to_dict()
        assert data["assigneeIds"] == []
        assert "assigneeId" not in data
        assert "dueDate" not in data
        assert "description" not in data

    async def test_create_task_requires_workspace(self, repositories: RepositoryFactory) -> None:
        """Tasks always belong to a workspace."""
        with pytest.raises(ValueError, match="workspaceId"):
            await repositories.tasks.create_task({"title": "Orphan"})

    async def test_create_project_requires_fields(self, repositories: RepositoryFactory) -> None:
        """Projects need workspaceId, name and ownerId."""
        with pytest.raises(ValueError, match="ownerId"):
            await repositories.projects.create_project({"workspaceId": "w1", "name": "P"})

    async def test_update_project_keeps_empty_tags(
        self, repositories: RepositoryFactory, store: InMemoryDocumentStore
    ) -> None:
        """Project updates go through the same guard."""
        project = await repositories.projects.create_project(
            {"workspaceId": "w1", "name": "P", "ownerId": "u1", "color": "#fff"}
        )

        written = await repositories.projects.update_project(project.id, {"color": None, "name": "Q"})

        data = (await store.get(f"projects/{project.id}")).to_dict()
        assert data["name"] == "Q"
        assert data["color"] == "#fff"
        assert "updatedAt" in written
