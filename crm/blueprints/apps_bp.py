"""
Apps Blueprint

CRUD for the app registry (the products contacts and deals belong to).
"""

from flask import Blueprint, jsonify

from crm.blueprints import get_store, json_object
from crm.models.entities import App, PlanTier
from crm.utils.errors import E, api_error, missing_fields

apps_bp = Blueprint("apps", __name__, url_prefix="/api/v1/apps")

REQUIRED = ("name",)


@apps_bp.route("", methods=["GET"])
def list_apps():
    return jsonify([a.to_dict() for a in get_store().list_apps()]), 200


@apps_bp.route("/<app_id>", methods=["GET"])
def get_app(app_id):
    return jsonify(get_store().get("apps", app_id).to_dict()), 200


@apps_bp.route("", methods=["POST"])
def add_app():
    data = json_object()
    if data is None:
        return api_error(E.VALIDATION_REQUIRED, "Request body must be a JSON object")
    missing = missing_fields(data, REQUIRED)
    if missing:
        return api_error(E.VALIDATION_REQUIRED, f"{', '.join(missing)} required")
    data.setdefault("plan", PlanTier.PRO.value)
    app = get_store().add_app(data)
    return jsonify(app.to_dict()), 201


@apps_bp.route("/<app_id>", methods=["PUT"])
def update_app(app_id):
    store = get_store()
    existing = store.get("apps", app_id)
    body = json_object()
    if body is None:
        return api_error(E.VALIDATION_REQUIRED, "Request body must be a JSON object")
    data = {**existing.to_dict(), **body, "id": app_id}
    missing = missing_fields(data, REQUIRED)
    if missing:
        return api_error(E.VALIDATION_REQUIRED, f"{', '.join(missing)} required")
    app = store.edit_app(App.from_dict(data))
    return jsonify(app.to_dict()), 200


@apps_bp.route("/<app_id>", methods=["DELETE"])
def delete_app(app_id):
    get_store().delete_app(app_id)
    return jsonify({"message": "Deleted"}), 200
