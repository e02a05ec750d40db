"""
Deals Blueprint

CRUD for deals and the pipeline board (one column per stage, largest deal
first, with per-stage count and value).
"""

from flask import Blueprint, jsonify

from crm.blueprints import get_store, json_object, selected_app
from crm.models.entities import Deal, DealStage
from crm.services import views
from crm.utils.errors import E, api_error, missing_fields

deals_bp = Blueprint("deals", __name__, url_prefix="/api/v1/deals")

REQUIRED = ("title", "contactId", "appId")


def _required_error(data):
    missing = missing_fields(data, REQUIRED)
    if missing:
        return api_error(E.VALIDATION_REQUIRED, f"{', '.join(missing)} required")
    return None


@deals_bp.route("", methods=["GET"])
def list_deals():
    deals = views.scope_deals(get_store().list_deals(), selected_app())
    return jsonify([d.to_dict() for d in deals]), 200


@deals_bp.route("/pipeline", methods=["GET"])
def pipeline():
    """Stage columns in pipeline order."""
    deals = views.scope_deals(get_store().list_deals(), selected_app())
    buckets = views.group_deals_by_stage(deals)
    columns = []
    for totals in views.stage_totals(buckets):
        stage = DealStage(totals["stage"])
        columns.append({**totals, "deals": [d.to_dict() for d in buckets[stage]]})
    return jsonify({"columns": columns}), 200


@deals_bp.route("/<deal_id>", methods=["GET"])
def get_deal(deal_id):
    return jsonify(get_store().get("deals", deal_id).to_dict()), 200


@deals_bp.route("", methods=["POST"])
def create_deal():
    data = json_object()
    if data is None:
        return api_error(E.VALIDATION_REQUIRED, "Request body must be a JSON object")
    err = _required_error(data)
    if err:
        return err
    data.setdefault("amount", 0)
    data.setdefault("stage", DealStage.LEAD_IN.value)
    deal = get_store().add_deal(data)
    return jsonify(deal.to_dict()), 201


@deals_bp.route("/<deal_id>", methods=["PUT"])
def update_deal(deal_id):
    store = get_store()
    existing = store.get("deals", deal_id)
    body = json_object()
    if body is None:
        return api_error(E.VALIDATION_REQUIRED, "Request body must be a JSON object")
    data = {**existing.to_dict(), **body, "id": deal_id}
    err = _required_error(data)
    if err:
        return err
    deal = store.edit_deal(Deal.from_dict(data))
    return jsonify(deal.to_dict()), 200


@deals_bp.route("/<deal_id>", methods=["DELETE"])
def delete_deal(deal_id):
    get_store().delete_deal(deal_id)
    return jsonify({"message": "Deleted"}), 200
