"""
Startup diagnostics: runs once when the Flask app starts.

Checks the preferences database and the live backend configuration and logs
a summary banner.
"""

import logging
import sys

from flask import Flask
from sqlalchemy.exc import SQLAlchemyError

from crm.models import db

logger = logging.getLogger(__name__)


def run_startup_diagnostics(app: Flask):
    """Run diagnostic checks during app startup (inside app context)."""
    if app.config.get("TESTING"):
        return  # skip during tests for speed

    issues: list[str] = []

    with app.app_context():
        py = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"

        # ── Preferences database ─────────────────────────────────────
        db_status = "ok"
        db_uri = str(app.config.get("SQLALCHEMY_DATABASE_URI", ""))
        db_type = "PostgreSQL" if "postgresql" in db_uri else "SQLite" if "sqlite" in db_uri else "unknown"
        try:
            db.session.execute(db.text("SELECT 1"))
        except SQLAlchemyError as exc:
            db_status = "FAILED"
            issues.append(f"Preferences database unreachable: {exc}")

        # ── Live backend ─────────────────────────────────────────────
        store = app.extensions.get("crm_store")
        backend = "configured" if store is not None and store.live_available else "NOT CONFIGURED"
        mode = store.mode if store is not None else "?"
        if store is not None and store.last_load_error:
            issues.append(f"Live load failed, serving mock data: {store.last_load_error}")

        banner = f"""
+--------------------------------------------------------------+
|  CRM Hub - Startup Diagnostics                               |
+--------------------------------------------------------------+
|  Python      : {py:<46s}|
|  Debug       : {str(app.debug):<46s}|
|  Database    : {f'{db_type} ({db_status})':<46s}|
|  Backend     : {backend:<46s}|
|  Data source : {mode:<46s}|
+--------------------------------------------------------------+"""
        logger.info(banner)

        if issues:
            logger.warning("Startup issues detected:")
            for issue in issues:
                logger.warning("  - %s", issue)
        else:
            logger.info("All startup checks passed")
