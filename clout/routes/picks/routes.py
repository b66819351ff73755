import logging

from flask import jsonify, request
from flask_login import current_user, login_required

from clout import db, limiter
from clout.forms import form_from_json, submitted_fields
from clout.forms.auth import sanitize_input
from clout.forms.picks import MakePickForm, UpdatePickForm
from clout.models import Event, Pick, User
from clout.routes.picks import bp
from clout.utils.api_utils import (
    capper_required,
    form_error_response,
    paginate_query,
)
from clout.utils.cache_utils import invalidate_model_cache

logger = logging.getLogger(__name__)


def _active_picks():
    return Pick.query.filter(Pick.is_active.is_(True))


def _get_active_pick_or_404(pick_id):
    return _active_picks().filter(Pick.id == pick_id).first_or_404()


def _newest_first(query):
    return query.order_by(Pick.created_at.desc(), Pick.id.desc())


def _pick_list_response(query):
    picks, pagination = paginate_query(_newest_first(query))
    return jsonify(
        {"picks": [pick.to_dict() for pick in picks], "pagination": pagination}
    )


@bp.route("")
def list_picks():
    """All picks, newest first, filtered by organization, pending and capper"""
    query = _active_picks()

    organization = request.args.get("organization")
    if organization:
        query = query.join(Event, Pick.event_id == Event.id).filter(
            Event.organization == organization
        )

    if request.args.get("pending", "").lower() == "true":
        query = query.filter(
            Pick.verified_at.is_(None),
            Pick.event.has(Event.status != "completed"),
        )

    capper_id = request.args.get("capper_id", type=int)
    if capper_id:
        query = query.filter(Pick.capper_id == capper_id)

    return _pick_list_response(query)


@bp.route("/<int:pick_id>")
def get_pick(pick_id):
    pick = _get_active_pick_or_404(pick_id)
    return jsonify({"pick": pick.to_dict()})


@bp.route("/user/<int:user_id>")
def user_picks(user_id):
    db.get_or_404(User, user_id)
    return _pick_list_response(_active_picks().filter(Pick.capper_id == user_id))


@bp.route("", methods=["POST"])
@login_required
@capper_required
@limiter.limit("30 per hour")
def create_pick():
    form = form_from_json(MakePickForm)
    if not form.validate():
        return form_error_response(form)

    event = db.session.get(Event, form.event_id.data)
    if event is None:
        return jsonify({"error": "Event not found"}), 404

    fight = event.fight_at(form.fight_index.data)
    if fight is None:
        return (
            jsonify({"error": f"Event has no fight at index {form.fight_index.data}"}),
            400,
        )

    if not event.accepts_picks_on(fight):
        return jsonify({"error": "Picks are closed for this fight"}), 400

    winner = form.winner.data.strip()
    if winner not in fight.fighters:
        return jsonify({"error": f"{winner} is not on this fight"}), 400

    pick = Pick(
        capper_id=current_user.id,
        event_id=event.id,
        fight_index=fight.position,
        fight_event={
            "event_name": event.event_name,
            "organization": event.organization,
            "date": event.event_date.isoformat(),
            "fighters": fight.fighters,
        },
        predicted_winner=winner,
        predicted_method=form.method.data or None,
        predicted_round=form.round.data,
        predicted_odds=form.odds.data,
        confidence=form.confidence.data,
        analysis=sanitize_input(form.analysis.data) or None,
    )
    db.session.add(pick)
    db.session.commit()
    invalidate_model_cache("Leaderboard")

    logger.info(
        f"Pick {pick.id} by {current_user.username}: {winner} in event {event.id}"
    )
    return jsonify({"pick": pick.to_dict()}), 201


@bp.route("/<int:pick_id>", methods=["PATCH"])
@login_required
def update_pick(pick_id):
    pick = _get_active_pick_or_404(pick_id)

    allowed, message, status = pick.can_modify(current_user)
    if not allowed:
        return jsonify({"error": message}), status

    form = form_from_json(UpdatePickForm)
    if not form.validate():
        return form_error_response(form)

    fields = submitted_fields(form)
    if "winner" in fields:
        winner = form.winner.data.strip()
        fight = pick.fight
        if fight is not None and winner not in fight.fighters:
            return jsonify({"error": f"{winner} is not on this fight"}), 400
        pick.predicted_winner = winner
    if "method" in fields:
        pick.predicted_method = form.method.data or None
    if "round" in fields:
        pick.predicted_round = form.round.data
    if "odds" in fields:
        pick.predicted_odds = form.odds.data
    if "confidence" in fields:
        pick.confidence = form.confidence.data
    if "analysis" in fields:
        pick.analysis = sanitize_input(form.analysis.data) or None

    db.session.commit()
    invalidate_model_cache("Leaderboard")
    return jsonify({"pick": pick.to_dict()})


@bp.route("/<int:pick_id>", methods=["DELETE"])
@login_required
def delete_pick(pick_id):
    pick = _get_active_pick_or_404(pick_id)

    allowed, message, status = pick.can_modify(current_user)
    if not allowed:
        return jsonify({"error": message}), status

    pick.is_active = False
    db.session.commit()
    invalidate_model_cache("Leaderboard")

    logger.info(f"Pick {pick.id} deleted by {current_user.username}")
    return jsonify({"message": "Pick deleted"})


@bp.route("/<int:pick_id>/like", methods=["POST"])
@login_required
def like_pick(pick_id):
    pick = _get_active_pick_or_404(pick_id)

    if pick.is_liked_by(current_user):
        return jsonify({"error": "Pick already liked"}), 400

    pick.likes.append(current_user._get_current_object())
    db.session.commit()
    return jsonify({"like_count": pick.likes.count()})


@bp.route("/<int:pick_id>/like", methods=["DELETE"])
@login_required
def unlike_pick(pick_id):
    pick = _get_active_pick_or_404(pick_id)

    if not pick.is_liked_by(current_user):
        return jsonify({"error": "Pick not liked"}), 400

    pick.likes.remove(current_user._get_current_object())
    db.session.commit()
    return jsonify({"like_count": pick.likes.count()})
