"""
Rate limiting configuration.

The Limiter instance is created in tracker/__init__.py with no default
limits; this module applies limits per blueprint.

Usage:
    from tracker.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

DEFAULT_REPORT_LIMIT = "120/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Report endpoints:  REPORT_PUSH_RATE_LIMIT (default 120/minute)
        - Health checks:     exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    report_limit = app.config.get("REPORT_PUSH_RATE_LIMIT") or DEFAULT_REPORT_LIMIT
    bp = app.blueprints.get("reports")
    if bp:
        limiter.limit(report_limit)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured: reports=%s, health exempt", report_limit)
