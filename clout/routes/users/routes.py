import logging

from flask import jsonify
from flask_login import current_user, login_required

from clout import db
from clout.models import User
from clout.models.user import follows
from clout.routes.users import bp
from clout.utils.api_utils import paginate_query
from clout.utils.cache_utils import invalidate_model_cache

logger = logging.getLogger(__name__)


def _get_active_user_or_404(user_id):
    return User.query.filter_by(id=user_id, is_active=True).first_or_404()


@bp.route("/<int:user_id>")
def profile(user_id):
    """Public profile"""
    user = _get_active_user_or_404(user_id)
    data = user.to_dict()
    if current_user.is_authenticated and current_user.id != user.id:
        data["is_followed"] = current_user.is_following(user)
    return jsonify({"user": data})


@bp.route("/<int:user_id>/follow", methods=["POST"])
@login_required
def follow(user_id):
    user = _get_active_user_or_404(user_id)

    success, message = current_user.follow(user)
    if not success:
        return jsonify({"error": message}), 400

    db.session.commit()
    invalidate_model_cache("Leaderboard")

    return jsonify(
        {
            "message": message,
            "follower_count": user.follower_count,
            "clout_score": user.clout_score,
        }
    )


@bp.route("/<int:user_id>/follow", methods=["DELETE"])
@login_required
def unfollow(user_id):
    user = _get_active_user_or_404(user_id)

    success, message = current_user.unfollow(user)
    if not success:
        return jsonify({"error": message}), 400

    db.session.commit()
    invalidate_model_cache("Leaderboard")

    return jsonify(
        {
            "message": message,
            "follower_count": user.follower_count,
            "clout_score": user.clout_score,
        }
    )


@bp.route("/<int:user_id>/followers")
def followers(user_id):
    user = _get_active_user_or_404(user_id)
    query = user.followers.order_by(follows.c.created_at.desc(), User.id.asc())

    users, pagination = paginate_query(query)
    return jsonify(
        {
            "followers": [follower.to_summary_dict() for follower in users],
            "pagination": pagination,
        }
    )


@bp.route("/<int:user_id>/following")
def following(user_id):
    user = _get_active_user_or_404(user_id)
    query = user.following.order_by(follows.c.created_at.desc(), User.id.asc())

    users, pagination = paginate_query(query)
    return jsonify(
        {
            "following": [followed.to_summary_dict() for followed in users],
            "pagination": pagination,
        }
    )
