"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in app/__init__.py with no default limits;
this module applies granular limits per route category.

Usage:
    from app.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"

# Endpoint that publishes a whole plan into the tracker
COMMIT_ENDPOINT = "planning.commit_project_plan"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Plan commit:      COMMIT_RATE_LIMIT (default 10/minute)
        - Planning/tracker: 60/minute
        - Projects:         200/minute
        - Health check:     exempt

    Rate limiting is disabled in testing mode.
    """

    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    commit_limit = app.config.get("COMMIT_RATE_LIMIT", "10/minute")
    view = app.view_functions.get(COMMIT_ENDPOINT)
    if view:
        app.view_functions[COMMIT_ENDPOINT] = limiter.limit(commit_limit)(view)

    for bp_name in ("planning", "tracker"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    bp = app.blueprints.get("projects")
    if bp:
        limiter.limit(READ_LIMIT)(bp)

    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured — commit: %s, planning/tracker: %s, projects: %s",
        commit_limit, WRITE_LIMIT, READ_LIMIT,
    )
