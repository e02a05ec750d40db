"""
CRM Hub
Blueprint registry and shared request helpers.
"""

from flask import current_app, request

from crm.services.views import ALL_APPS

CLIENT_HEADER = "X-Client-Id"
_MAX_SCOPE_LEN = 100


def get_store():
    """Return the data source adapter attached by the application factory."""
    return current_app.extensions["crm_store"]


def client_scope():
    """Preference scope for the calling client.

    Clients identify themselves with the ``X-Client-Id`` header; requests
    without one share the app-wide scope.
    """
    client_id = (request.headers.get(CLIENT_HEADER) or "").strip()
    if not client_id:
        return current_app.config.get("PREFERENCE_SCOPE", "default")
    return f"client:{client_id}"[:_MAX_SCOPE_LEN]


def selected_app():
    """``app_id`` query param, "all" when absent."""
    return request.args.get("app_id") or ALL_APPS


def is_truthy(value):
    """Interpret JSON booleans and common string spellings."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def json_object():
    """Request body as a dict; ``{}`` when empty, None when not a JSON object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        return None
    return data
