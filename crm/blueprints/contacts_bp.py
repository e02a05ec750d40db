"""
Contacts Blueprint

CRUD for contacts plus the contact detail view (apps, deals, tasks linked to
one contact). Listing is scoped by the ``app_id`` query param.
"""

from flask import Blueprint, jsonify

from crm.blueprints import get_store, json_object, selected_app
from crm.models.entities import Contact
from crm.services import views
from crm.utils.errors import E, api_error, missing_fields

contacts_bp = Blueprint("contacts", __name__, url_prefix="/api/v1/contacts")

REQUIRED = ("name", "email", "company", "app_ids")


def _required_error(data):
    missing = missing_fields(data, REQUIRED)
    if missing:
        return api_error(E.VALIDATION_REQUIRED, f"{', '.join(missing)} required")
    return None


@contacts_bp.route("", methods=["GET"])
def list_contacts():
    contacts = views.scope_contacts(get_store().list_contacts(), selected_app())
    return jsonify([c.to_dict() for c in contacts]), 200


@contacts_bp.route("/<contact_id>", methods=["GET"])
def get_contact(contact_id):
    """Contact with its apps, deals and tasks."""
    store = get_store()
    contact = store.get("contacts", contact_id)
    detail = views.contact_detail(
        contact, store.list_apps(), store.list_deals(), store.list_tasks(),
    )
    return jsonify(detail), 200


@contacts_bp.route("", methods=["POST"])
def create_contact():
    data = json_object()
    if data is None:
        return api_error(E.VALIDATION_REQUIRED, "Request body must be a JSON object")
    err = _required_error(data)
    if err:
        return err
    contact = get_store().add_contact(data)
    return jsonify(contact.to_dict()), 201


@contacts_bp.route("/<contact_id>", methods=["PUT"])
def update_contact(contact_id):
    store = get_store()
    existing = store.get("contacts", contact_id)
    body = json_object()
    if body is None:
        return api_error(E.VALIDATION_REQUIRED, "Request body must be a JSON object")
    data = {**existing.to_dict(), **body, "id": contact_id}
    err = _required_error(data)
    if err:
        return err
    contact = store.edit_contact(Contact.from_dict(data))
    return jsonify(contact.to_dict()), 200


@contacts_bp.route("/<contact_id>", methods=["DELETE"])
def delete_contact(contact_id):
    get_store().delete_contact(contact_id)
    return jsonify({"message": "Deleted"}), 200
