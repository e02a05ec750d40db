"""
Tasks Blueprint

Task list with persisted per-client filters, the status board, prerequisite
options, and saves through the dependency gate.

Saving a task into Done while any prerequisite is still open answers
409 ERR_DEPENDENCY_INCOMPLETE with the open prerequisites in ``details`` and
persists nothing. Re-sending the same body with ``"force": true`` confirms
the override.
"""

from flask import Blueprint, jsonify, request

from crm.blueprints import client_scope, get_store, is_truthy, json_object, selected_app
from crm.core.exceptions import ValidationError
from crm.models.entities import TaskStatus
from crm.services import preference_service as prefs
from crm.services import views
from crm.services.dependency_service import save_task
from crm.utils.errors import E, api_error, missing_fields

tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/v1/tasks")

REQUIRED = ("title", "dueDate", "contactId")

_FILTER_PARAMS = ("status", "contactId", "startDate", "endDate")


def _filters_from(base, overrides):
    try:
        return base.merged(overrides)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid task filters: {exc}") from exc


def _active_filters():
    """Saved filters for the caller, updated with any filter query params."""
    scope = client_scope()
    saved = prefs.get_task_filters(scope)
    overrides = {k: request.args[k] for k in _FILTER_PARAMS if k in request.args}
    if not overrides:
        return saved
    filters = _filters_from(saved, overrides)
    return prefs.save_task_filters(scope, filters)


def _visible_tasks(store, filters):
    tasks = views.scope_tasks(store.list_tasks(), store.list_contacts(), selected_app())
    return views.filter_tasks(tasks, filters)


def _card(task, tasks_by_id):
    return {
        **task.to_dict(),
        "dependencyTitles": views.dependency_titles(task, tasks_by_id),
        "due": views.due_date_status(task.due_date),
    }


def _save(data):
    force = is_truthy(data.pop("force", False))
    result = save_task(get_store(), data, force=force)
    if result.needs_confirmation:
        return api_error(
            E.DEPENDENCY_INCOMPLETE,
            f"{len(result.incomplete)} prerequisite task(s) are not Done",
            details=result.to_dict(),
        )
    status = 201 if result.created else 200
    return jsonify(result.task.to_dict()), status


# ═══════════════════════════════════════════════════════════════
# Listing
# ═══════════════════════════════════════════════════════════════

@tasks_bp.route("", methods=["GET"])
def list_tasks():
    """Filtered task list.

    Query params ``status``, ``contactId``, ``startDate`` and ``endDate``
    replace the saved value for that filter and are persisted for the client.
    """
    filters = _active_filters()
    tasks = _visible_tasks(get_store(), filters)
    return jsonify({
        "tasks": [t.to_dict() for t in tasks],
        "filters": filters.to_dict(),
    }), 200


@tasks_bp.route("/board", methods=["GET"])
def board():
    """Status columns of task cards under the caller's saved filters."""
    store = get_store()
    filters = _active_filters()
    tasks_by_id = store.tasks_by_id()
    buckets = views.group_tasks_by_status(_visible_tasks(store, filters))
    columns = [
        {
            "status": status.value,
            "count": len(bucket),
            "tasks": [_card(t, tasks_by_id) for t in bucket],
        }
        for status, bucket in buckets.items()
    ]
    return jsonify({"columns": columns, "filters": filters.to_dict()}), 200


# ═══════════════════════════════════════════════════════════════
# Saved filters
# ═══════════════════════════════════════════════════════════════

@tasks_bp.route("/filters", methods=["GET"])
def get_filters():
    return jsonify(prefs.get_task_filters(client_scope()).to_dict()), 200


@tasks_bp.route("/filters", methods=["PUT"])
def put_filters():
    """Replace the caller's saved filters; omitted keys reset to empty."""
    data = json_object()
    if data is None:
        return api_error(E.VALIDATION_REQUIRED, "Request body must be a JSON object")
    try:
        filters = views.TaskFilters.from_dict(data)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"Invalid task filters: {exc}") from exc
    prefs.save_task_filters(client_scope(), filters)
    return jsonify(filters.to_dict()), 200


@tasks_bp.route("/filters", methods=["DELETE"])
def clear_filters():
    return jsonify(prefs.clear_task_filters(client_scope()).to_dict()), 200


# ═══════════════════════════════════════════════════════════════
# Prerequisite options
# ═══════════════════════════════════════════════════════════════

@tasks_bp.route("/dependency-candidates", methods=["GET"])
def new_task_dependency_candidates():
    """Prerequisite options for a task that does not exist yet."""
    candidates = views.dependency_candidates(get_store().list_tasks())
    return jsonify([t.to_dict() for t in candidates]), 200


@tasks_bp.route("/<task_id>/dependency-candidates", methods=["GET"])
def dependency_candidates(task_id):
    store = get_store()
    store.get("tasks", task_id)
    candidates = views.dependency_candidates(store.list_tasks(), task_id)
    return jsonify([t.to_dict() for t in candidates]), 200


# ═══════════════════════════════════════════════════════════════
# CRUD
# ═══════════════════════════════════════════════════════════════

@tasks_bp.route("/<task_id>", methods=["GET"])
def get_task(task_id):
    store = get_store()
    task = store.get("tasks", task_id)
    return jsonify(_card(task, store.tasks_by_id())), 200


@tasks_bp.route("", methods=["POST"])
def create_task():
    data = json_object()
    if data is None:
        return api_error(E.VALIDATION_REQUIRED, "Request body must be a JSON object")
    missing = missing_fields(data, REQUIRED)
    if missing:
        return api_error(E.VALIDATION_REQUIRED, f"{', '.join(missing)} required")
    data.pop("id", None)
    data.setdefault("status", TaskStatus.TODO.value)
    return _save(data)


@tasks_bp.route("/<task_id>", methods=["PUT"])
def update_task(task_id):
    existing = get_store().get("tasks", task_id)
    body = json_object()
    if body is None:
        return api_error(E.VALIDATION_REQUIRED, "Request body must be a JSON object")
    data = {**existing.to_dict(), **body, "id": task_id}
    missing = missing_fields(data, REQUIRED)
    if missing:
        return api_error(E.VALIDATION_REQUIRED, f"{', '.join(missing)} required")
    return _save(data)


@tasks_bp.route("/<task_id>", methods=["DELETE"])
def delete_task(task_id):
    get_store().delete_task(task_id)
    return jsonify({"message": "Deleted"}), 200
