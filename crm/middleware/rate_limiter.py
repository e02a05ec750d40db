"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in crm/__init__.py with no default limits;
this module applies granular limits per route category.

Usage:
    from crm.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"

# Blueprints carrying collection mutations
_WRITE_BLUEPRINTS = ("apps", "contacts", "deals", "tasks", "data_source")

# Read-only aggregate views
_READ_BLUEPRINTS = ("dashboard",)


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Collection endpoints:  60/minute
        - Dashboard / search:    200/minute (generous for SPA polling)
        - Health probes:         exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for bp_name in _WRITE_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    for bp_name in _READ_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(READ_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured: collections=%s, dashboard=%s, health exempt",
        WRITE_LIMIT, READ_LIMIT,
    )
