"""
Dashboard Blueprint

Endpoints:
    GET /api/v1/dashboard?app_id=   headline stats for the selected app scope
    GET /api/v1/search?q=           global contact / deal search
"""

from flask import Blueprint, jsonify, request

from crm.blueprints import get_store, selected_app
from crm.data.mock_data import MONTHLY_REVENUE
from crm.services import views

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/v1")


@dashboard_bp.route("/dashboard", methods=["GET"])
def dashboard():
    store = get_store()
    app_id = selected_app()
    deals = views.scope_deals(store.list_deals(), app_id)
    contacts = views.scope_contacts(store.list_contacts(), app_id)
    return jsonify({
        "appId": app_id,
        "appName": views.selected_app_name(store.list_apps(), app_id),
        "stats": views.dashboard_stats(deals, contacts),
        "stages": views.stage_totals(views.group_deals_by_stage(deals)),
        "monthlyRevenue": MONTHLY_REVENUE,
        "dataSource": store.mode,
    }), 200


@dashboard_bp.route("/search", methods=["GET"])
def search():
    """Search contacts (name, email, company) and deals (title).

    Queries shorter than two characters return empty results.
    """
    store = get_store()
    results = views.search(store.list_contacts(), store.list_deals(), request.args.get("q", ""))
    return jsonify(results.to_dict()), 200
