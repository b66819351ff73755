"""
Shared helpers for the JSON API blueprints
"""

import math
from functools import wraps

from flask import current_app, jsonify, request
from flask_login import current_user


def add_security_headers(f):
    """Add security headers to API responses"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        response = f(*args, **kwargs)
        if hasattr(response, "headers"):
            response.headers["X-Content-Type-Options"] = "nosniff"
            response.headers["X-Frame-Options"] = "DENY"
            response.headers["Cache-Control"] = (
                "no-store, no-cache, must-revalidate, max-age=0"
            )
        return response

    return decorated_function


def admin_required(f):
    """Reject non-admins; apply after login_required"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_admin:
            return jsonify({"error": "Admin privileges required"}), 403
        return f(*args, **kwargs)

    return decorated_function


def capper_required(f):
    """Only cappers may publish picks; apply after login_required"""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_capper:
            return jsonify({"error": "Only cappers can perform this action"}), 403
        return f(*args, **kwargs)

    return decorated_function


def form_error_response(form, message="Validation failed"):
    return jsonify({"error": message, "details": form.errors}), 400


def get_pagination_args():
    """Read page and limit from the query string, clamped to sane values"""
    default_limit = current_app.config.get("ITEMS_PER_PAGE", 10)
    max_limit = current_app.config.get("MAX_PAGE_SIZE", 100)

    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", default_limit, type=int)

    page = max(page or 1, 1)
    limit = min(max(limit or default_limit, 1), max_limit)
    return page, limit


def paginate_query(query):
    """
    Apply page/limit from the request to a query

    Returns:
        tuple: (items, pagination dict)
    """
    page, limit = get_pagination_args()
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()

    return items, {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if total else 0,
    }
