"""
Data Source Blueprint

Read and switch the active data source (mock / live). Switching reloads all
four collections; a failed live load falls back to mock data and the
response reports the effective mode.
"""

from flask import Blueprint, jsonify

from crm.blueprints import get_store, json_object
from crm.utils.errors import E, api_error

data_source_bp = Blueprint("data_source", __name__, url_prefix="/api/v1/data-source")


@data_source_bp.route("", methods=["GET"])
def get_data_source():
    return jsonify(get_store().status()), 200


@data_source_bp.route("", methods=["PUT"])
def set_data_source():
    """Persist a new data source and reload.

    Body: {"mode": "mock" | "live"}
    """
    data = json_object()
    if data is None:
        return api_error(E.VALIDATION_REQUIRED, "Request body must be a JSON object")
    requested = data.get("mode")
    if not requested:
        return api_error(E.VALIDATION_REQUIRED, "mode is required")

    store = get_store()
    effective = store.set_mode(requested)
    body = store.status()
    body["requested"] = requested
    body["fellBack"] = effective != requested
    return jsonify(body), 200
