"""
tests/test_dependency_gate.py: the "mark as Done" confirmation gate.

Covers:
    1.  Tasks without dependencies are never gated
    2.  All prerequisites Done -> saved immediately
    3.  Open prerequisites -> exactly that subset returned, nothing persisted
    4.  Explicit override persists regardless of prerequisite status
    5.  Only transitions into Done are gated
    6.  Re-saving an already Done task is not gated
    7.  Unresolvable dependency ids count as satisfied
    8.  New tasks created directly as Done go through the gate
    9.  Self-reference is checked like any other prerequisite
    10. check_dependencies / requires_dependency_check contracts
    11. Demo dataset scenario: task_2 blocked by task_1, then forced

Marker: unit (standalone CRMStore in mock mode, no HTTP).
"""

import pytest

from crm.core.exceptions import NotFoundError
from crm.integrations.rest_gateway import RestGateway
from crm.models.entities import Task, TaskStatus
from crm.services.dependency_service import (
    check_dependencies,
    requires_dependency_check,
    save_task,
)
from crm.services.store import CRMStore


# ═════════════════════════════════════════════════════════════════════════════
# Helpers
# ═════════════════════════════════════════════════════════════════════════════


def _store(memory_prefs):
    """Mock-mode store over the demo dataset."""
    return CRMStore(RestGateway(), memory_prefs)


def _task_dict(store, task_id, **changes):
    data = store.get("tasks", task_id).to_dict()
    data.update(changes)
    return data


def _task(task_id, status=TaskStatus.TODO, deps=None):
    return Task(id=task_id, title=task_id, status=status, dependency_ids=deps or [])


# ═════════════════════════════════════════════════════════════════════════════
# Pure contracts
# ═════════════════════════════════════════════════════════════════════════════


class TestCheckDependencies:

    def test_returns_only_open_prerequisites_in_declared_order(self):
        tasks = {
            "a": _task("a", TaskStatus.DONE),
            "b": _task("b", TaskStatus.IN_PROGRESS),
            "c": _task("c", TaskStatus.TODO),
        }
        candidate = _task("x", TaskStatus.DONE, deps=["c", "a", "b"])
        assert [t.id for t in check_dependencies(candidate, tasks)] == ["c", "b"]

    def test_missing_ids_are_ignored(self):
        tasks = {"a": _task("a", TaskStatus.DONE)}
        candidate = _task("x", TaskStatus.DONE, deps=["gone", "a"])
        assert check_dependencies(candidate, tasks) == []

    def test_no_dependencies_yields_empty(self):
        assert check_dependencies(_task("x", TaskStatus.DONE), {}) == []


class TestRequiresDependencyCheck:

    def test_transition_into_done_with_deps(self):
        assert requires_dependency_check(_task("x", TaskStatus.DONE, ["a"]), TaskStatus.TODO)

    def test_new_task_as_done_with_deps(self):
        assert requires_dependency_check(_task("x", TaskStatus.DONE, ["a"]), None)

    def test_already_done_is_exempt(self):
        assert not requires_dependency_check(_task("x", TaskStatus.DONE, ["a"]), TaskStatus.DONE)

    def test_other_status_is_exempt(self):
        assert not requires_dependency_check(_task("x", TaskStatus.IN_PROGRESS, ["a"]), TaskStatus.TODO)

    def test_no_deps_is_exempt(self):
        assert not requires_dependency_check(_task("x", TaskStatus.DONE), TaskStatus.TODO)


# ═════════════════════════════════════════════════════════════════════════════
# save_task through the store
# ═════════════════════════════════════════════════════════════════════════════


class TestSaveTaskGate:

    def test_no_dependencies_saves_immediately(self, memory_prefs):
        store = _store(memory_prefs)
        result = save_task(store, _task_dict(store, "task_4", status="Done"))
        assert result.saved is True
        assert result.incomplete == []
        assert store.get("tasks", "task_4").status == TaskStatus.DONE

    def test_all_prerequisites_done_saves_immediately(self, memory_prefs):
        store = _store(memory_prefs)
        save_task(store, _task_dict(store, "task_1", status="Done"))
        result = save_task(store, _task_dict(store, "task_2", status="Done"))
        assert result.saved is True
        assert store.get("tasks", "task_2").status == TaskStatus.DONE

    def test_open_prerequisite_blocks_and_persists_nothing(self, memory_prefs):
        store = _store(memory_prefs)
        before = store.get("tasks", "task_2")
        result = save_task(store, _task_dict(store, "task_2", status="Done", title="Renamed"))
        assert result.saved is False
        assert result.needs_confirmation is True
        assert [t.id for t in result.incomplete] == ["task_1"]
        after = store.get("tasks", "task_2")
        assert after.status == TaskStatus.TODO
        assert after.title == before.title

    def test_force_overrides_open_prerequisites(self, memory_prefs):
        store = _store(memory_prefs)
        result = save_task(store, _task_dict(store, "task_2", status="Done"), force=True)
        assert result.saved is True
        assert result.created is False
        assert store.get("tasks", "task_2").status == TaskStatus.DONE
        assert store.get("tasks", "task_1").status == TaskStatus.IN_PROGRESS

    def test_non_done_transition_is_not_gated(self, memory_prefs):
        store = _store(memory_prefs)
        result = save_task(store, _task_dict(store, "task_2", status="In Progress"))
        assert result.saved is True
        assert store.get("tasks", "task_2").status == TaskStatus.IN_PROGRESS

    def test_resaving_done_task_is_not_gated(self, memory_prefs):
        store = _store(memory_prefs)
        data = _task_dict(store, "task_3", dependencyIds=["task_4"], description="Edited")
        result = save_task(store, data)
        assert result.saved is True
        saved = store.get("tasks", "task_3")
        assert saved.dependency_ids == ["task_4"]
        assert saved.description == "Edited"

    def test_unresolvable_dependency_counts_as_satisfied(self, memory_prefs):
        store = _store(memory_prefs)
        data = _task_dict(store, "task_4", status="Done", dependencyIds=["task_deleted"])
        result = save_task(store, data)
        assert result.saved is True

    def test_self_reference_checks_previous_status(self, memory_prefs):
        store = _store(memory_prefs)
        data = _task_dict(store, "task_1", status="Done", dependencyIds=["task_1"])
        result = save_task(store, data)
        assert result.saved is False
        assert [t.id for t in result.incomplete] == ["task_1"]


class TestSaveTaskNew:

    def test_new_task_as_done_with_open_prerequisite_is_gated(self, memory_prefs):
        store = _store(memory_prefs)
        count = len(store.list_tasks())
        result = save_task(store, {
            "title": "Close out", "status": "Done", "dueDate": "2023-08-01",
            "contactId": "contact_1", "dependencyIds": ["task_1"],
        })
        assert result.saved is False
        assert [t.id for t in result.incomplete] == ["task_1"]
        assert len(store.list_tasks()) == count

    def test_new_task_forced_is_added_at_front(self, memory_prefs):
        store = _store(memory_prefs)
        result = save_task(store, {
            "title": "Close out", "status": "Done", "dueDate": "2023-08-01",
            "contactId": "contact_1", "dependencyIds": ["task_1"],
        }, force=True)
        assert result.saved is True
        assert result.created is True
        assert result.task.id.startswith("task_")
        assert store.list_tasks()[0].id == result.task.id

    def test_new_task_ignores_client_supplied_empty_id(self, memory_prefs):
        store = _store(memory_prefs)
        result = save_task(store, {"title": "Call", "status": "To Do", "id": ""})
        assert result.created is True
        assert result.task.id != ""

    def test_edit_unknown_id_raises(self, memory_prefs):
        store = _store(memory_prefs)
        with pytest.raises(NotFoundError):
            save_task(store, {"id": "task_nope", "title": "X", "status": "Done"})


class TestDemoScenario:
    """task_2 depends on task_1 (In Progress) in the demo dataset."""

    def test_blocked_then_forced(self, memory_prefs):
        store = _store(memory_prefs)

        blocked = save_task(store, _task_dict(store, "task_2", status="Done"))
        assert [t.id for t in blocked.incomplete] == ["task_1"]
        assert store.get("tasks", "task_2").status == TaskStatus.TODO

        forced = save_task(store, _task_dict(store, "task_2", status="Done"), force=True)
        assert forced.saved is True
        assert store.get("tasks", "task_2").status == TaskStatus.DONE
        assert store.get("tasks", "task_1").status == TaskStatus.IN_PROGRESS

    def test_result_payload_lists_incomplete_titles(self, memory_prefs):
        store = _store(memory_prefs)
        body = save_task(store, _task_dict(store, "task_2", status="Done")).to_dict()
        assert body["saved"] is False
        assert body["incomplete"] == [
            {"id": "task_1", "title": "Follow up with Alice", "status": "In Progress"},
        ]
        assert body["task"]["status"] == "Done"
