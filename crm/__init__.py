"""
CRM Hub
Flask Application Factory.

Usage:
    from crm import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from crm.config import config
from crm.core.exceptions import NotFoundError, RemoteBackendError, ValidationError
from crm.integrations.rest_gateway import RestGateway
from crm.middleware.diagnostics import run_startup_diagnostics
from crm.middleware.logging_config import configure_logging
from crm.middleware.rate_limiter import init_rate_limits
from crm.middleware.security_headers import init_security_headers
from crm.middleware.timing import init_request_timing
from crm.models import db
from crm.services.preference_service import ScopedPreferences
from crm.services.store import CRMStore
from crm.utils.errors import E, api_error

logger = logging.getLogger(__name__)

migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # no global limit, applied per blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def _build_store(app):
    """Create the data source adapter from config and attach it to *app*."""
    gateway = RestGateway(
        app.config.get("CRM_BACKEND_URL"),
        app.config.get("CRM_BACKEND_KEY"),
        timeout=app.config.get("CRM_BACKEND_TIMEOUT"),
    )
    if not gateway.configured:
        app.logger.warning("CRM_BACKEND_URL / CRM_BACKEND_KEY not set; live data source unavailable")

    store = CRMStore(
        gateway,
        ScopedPreferences(app.config.get("PREFERENCE_SCOPE", "default")),
        default_mode=app.config.get("DEFAULT_DATA_SOURCE", "mock"),
    )
    app.extensions["crm_store"] = store
    return store


def _register_error_handlers(app):
    @app.errorhandler(NotFoundError)
    def handle_not_found(exc):
        return api_error(E.NOT_FOUND, str(exc))

    @app.errorhandler(ValidationError)
    def handle_validation(exc):
        return api_error(E.VALIDATION_INVALID, str(exc), details=exc.details)

    @app.errorhandler(RemoteBackendError)
    def handle_remote_backend(exc):
        return api_error(E.REMOTE_BACKEND, str(exc))

    @app.errorhandler(404)
    def not_found(e):
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(415)
    def unsupported_media_type(e):
        return {"error": "Unsupported media type", "detail": e.description}, 415

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name])
    os.makedirs(app.instance_path, exist_ok=True)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    init_security_headers(app)
    init_request_timing(app)

    # ── Request guards ───────────────────────────────────────────────────
    app.config.setdefault("MAX_CONTENT_LENGTH", 1024 * 1024)  # 1 MB

    @app.before_request
    def _guard_request():
        from flask import abort
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            ct = request.content_type or ""
            if request.data and "json" not in ct:
                abort(415, description="Content-Type must be application/json")

    # ── Models (registered for create_all / Alembic) ─────────────────────
    from crm.models import preference as _preference_models  # noqa: F401

    with app.app_context():
        db.create_all()
        # The store reads the stored dataSource preference on construction
        _build_store(app)

    # ── Blueprints ───────────────────────────────────────────────────────
    from crm.blueprints.apps_bp import apps_bp
    from crm.blueprints.contacts_bp import contacts_bp
    from crm.blueprints.dashboard_bp import dashboard_bp
    from crm.blueprints.data_source_bp import data_source_bp
    from crm.blueprints.deals_bp import deals_bp
    from crm.blueprints.health_bp import health_bp
    from crm.blueprints.tasks_bp import tasks_bp

    app.register_blueprint(data_source_bp)
    app.register_blueprint(apps_bp)
    app.register_blueprint(contacts_bp)
    app.register_blueprint(deals_bp)
    app.register_blueprint(tasks_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(health_bp)

    _register_error_handlers(app)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("reset-mock")
    def reset_mock_cmd():
        """Switch the data source to mock and restore the demo dataset."""
        store = app.extensions["crm_store"]
        store.reset()
        click.echo(f"Data source reset to mock: {store.counts()}")

    @app.cli.command("data-source")
    @click.argument("mode", type=click.Choice(["mock", "live"]))
    def data_source_cmd(mode):
        """Persist a data source preference and reload the collections."""
        effective = app.extensions["crm_store"].set_mode(mode)
        click.echo(f"Data source: {effective}")

    # ── Startup diagnostics ──────────────────────────────────────────────
    run_startup_diagnostics(app)

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
