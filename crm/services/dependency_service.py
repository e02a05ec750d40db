"""
Task Dependency Service: the "mark as Done" confirmation gate.

A task may list prerequisite tasks in ``dependency_ids``. Saving a task
*into* Done while any resolvable prerequisite is not Done is intercepted:
nothing is persisted and the caller receives the incomplete prerequisites so
the user can confirm an override (``force=True``) or back out.

Rules:
    - Only transitions into Done are gated; re-saving a task that is already
      Done, or saving any other status, goes straight through.
    - Tasks without dependencies are never gated.
    - Dependency ids that no longer resolve are treated as satisfied.
    - No cycle or self-reference detection: a task listing itself is checked
      against its own previous status like any other prerequisite.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from crm.models.entities import Task, TaskStatus

logger = logging.getLogger(__name__)


@dataclass
class TaskSaveResult:
    """Outcome of ``save_task``.

    ``saved`` is False only when the dependency gate stopped the save; in
    that case ``incomplete`` lists the prerequisites that are not Done and
    ``task`` is the unsaved candidate.
    """
    saved: bool
    task: Task
    incomplete: list[Task] = field(default_factory=list)
    created: bool = False

    @property
    def needs_confirmation(self) -> bool:
        return not self.saved and bool(self.incomplete)

    def to_dict(self) -> dict:
        return {
            "saved": self.saved,
            "created": self.created,
            "task": self.task.to_dict(),
            "incomplete": [
                {"id": t.id, "title": t.title, "status": t.status.value}
                for t in self.incomplete
            ],
        }


def check_dependencies(candidate: Task, tasks_by_id: dict[str, Task]) -> list[Task]:
    """Return the candidate's resolvable prerequisites that are not Done.

    Order follows ``candidate.dependency_ids``.
    """
    incomplete = []
    for dep_id in candidate.dependency_ids:
        dep = tasks_by_id.get(dep_id)
        if dep is not None and dep.status != TaskStatus.DONE:
            incomplete.append(dep)
    return incomplete


def requires_dependency_check(candidate: Task, previous_status: TaskStatus | None) -> bool:
    """True when saving *candidate* moves it into Done and it has prerequisites."""
    return (
        candidate.status == TaskStatus.DONE
        and previous_status != TaskStatus.DONE
        and bool(candidate.dependency_ids)
    )


def save_task(store, data: dict, *, force: bool = False) -> TaskSaveResult:
    """Add or edit a task through the dependency gate.

    Args:
        store: CRMStore holding the task collection.
        data: Task in wire format. With an ``id`` it is a full-replace edit of
              that task, otherwise a new task.
        force: Explicit override; persist even when prerequisites are open.

    Returns:
        TaskSaveResult. ``saved=False`` means the gate stopped the save.

    Raises:
        NotFoundError: editing an id that is not in the collection.
        EntityMappingError: invalid status or missing required fields.
        RemoteBackendError: live backend rejected the write.
    """
    tasks_by_id = store.tasks_by_id()
    task_id = data.get("id")
    is_edit = bool(task_id)

    if is_edit:
        previous = store.get("tasks", str(task_id))
        candidate = Task.from_dict(data)
        previous_status = previous.status
    else:
        candidate = Task.from_dict({**data, "id": ""})
        previous_status = None

    if requires_dependency_check(candidate, previous_status):
        incomplete = check_dependencies(candidate, tasks_by_id)
        if incomplete and not force:
            logger.info(
                "Dependency gate: task %s has %d incomplete prerequisite(s)",
                task_id or "(new)", len(incomplete),
            )
            return TaskSaveResult(saved=False, task=candidate, incomplete=incomplete)
        if incomplete:
            logger.info(
                "Dependency override confirmed for task %s (%s)",
                task_id or "(new)", ", ".join(t.id for t in incomplete),
            )

    if is_edit:
        saved = store.edit_task(candidate)
    else:
        saved = store.add_task(data)
    return TaskSaveResult(saved=True, task=saved, created=not is_edit)
