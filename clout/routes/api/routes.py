from datetime import datetime, timezone

from flask import current_app, jsonify
from flask_wtf.csrf import generate_csrf

from clout import limiter
from clout.routes.api import bp


@bp.route("/health")
@limiter.exempt
def health():
    """Health check endpoint - exempt from rate limiting for monitoring systems"""
    return jsonify(
        {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": current_app.config.get("FLASK_ENV", "production"),
            "version": current_app.config.get("APP_VERSION"),
        }
    )


@bp.route("/csrf-token")
def csrf_token():
    """Signed, expiring CSRF token bound to the current session"""
    return jsonify(
        {
            "csrf_token": generate_csrf(),
            "expires_in": current_app.config.get("WTF_CSRF_TIME_LIMIT"),
        }
    )
