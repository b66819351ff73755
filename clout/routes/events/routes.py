import logging
import uuid

from flask import current_app, jsonify, request
from flask_login import login_required

from clout import db
from clout.forms import form_from_json
from clout.forms.events import EventForm, EventStatusForm
from clout.forms.picks import FightResultForm
from clout.models import Event
from clout.models.event import EVENT_STATUSES, ORGANIZATIONS
from clout.routes.events import bp
from clout.services.verification_service import VerificationService
from clout.utils.api_utils import admin_required, form_error_response, paginate_query
from clout.utils.event_sync import EventSync
from clout.utils.timezone_utils import parse_api_datetime

logger = logging.getLogger(__name__)

FIGHT_FIELDS = (
    "fighter1_record",
    "fighter1_odds",
    "fighter2_record",
    "fighter2_odds",
    "weight_class",
    "scheduled_rounds",
)


def _fights_from_payload():
    """Validate the optional "fights" list of an event payload

    Returns:
        tuple: (fights, error message)
    """
    payload = request.get_json(silent=True) or {}
    fights = payload.get("fights") or []
    if not isinstance(fights, list):
        return None, "fights must be a list"

    cleaned = []
    for index, fight in enumerate(fights):
        if not isinstance(fight, dict):
            return None, f"Fight {index} must be an object"
        fighter1, fighter2 = fight.get("fighter1"), fight.get("fighter2")
        if not isinstance(fighter1, str) or not isinstance(fighter2, str):
            return None, f"Fight {index} needs fighter1 and fighter2 names"
        if not fighter1.strip() or not fighter2.strip() or fighter1 == fighter2:
            return None, f"Fight {index} needs two different fighters"
        extra = {key: fight[key] for key in FIGHT_FIELDS if fight.get(key) is not None}
        cleaned.append((fighter1.strip(), fighter2.strip(), extra))

    return cleaned, None


@bp.route("")
def list_events():
    """List events, soonest first, filtered by status and organization"""
    query = Event.query

    status = request.args.get("status")
    if status:
        if status not in EVENT_STATUSES:
            return jsonify({"error": f"Unknown status: {status}"}), 400
        query = query.filter(Event.status == status)

    organization = request.args.get("organization")
    if organization:
        if organization not in ORGANIZATIONS:
            return jsonify({"error": f"Unknown organization: {organization}"}), 400
        query = query.filter(Event.organization == organization)

    events, pagination = paginate_query(query.order_by(Event.event_date.asc()))
    return jsonify(
        {"events": [event.to_dict() for event in events], "pagination": pagination}
    )


@bp.route("/<int:event_id>")
def get_event(event_id):
    event = db.get_or_404(Event, event_id)
    return jsonify({"event": event.to_dict()})


@bp.route("", methods=["POST"])
@login_required
@admin_required
def create_event():
    form = form_from_json(EventForm)
    if not form.validate():
        return form_error_response(form)

    fights, error = _fights_from_payload()
    if error:
        return jsonify({"error": error}), 400

    event = Event(
        external_id=form.external_id.data or f"manual-{uuid.uuid4().hex[:12]}",
        event_name=form.event_name.data.strip(),
        organization=form.organization.data,
        event_date=parse_api_datetime(form.event_date.data),
        venue=form.venue.data,
        location=form.location.data,
    )
    for fighter1, fighter2, extra in fights:
        event.add_fight(fighter1, fighter2, **extra)

    db.session.add(event)
    db.session.commit()

    logger.info(f"Event created: {event.event_name} with {len(event.fights)} fights")
    return jsonify({"event": event.to_dict()}), 201


@bp.route("/<int:event_id>/fights/<int:fight_index>/result", methods=["POST"])
@login_required
@admin_required
def record_fight_result(event_id, fight_index):
    """Record a fight result; completing the card verifies its picks"""
    event = db.get_or_404(Event, event_id)
    fight = event.fight_at(fight_index)
    if fight is None:
        return jsonify({"error": f"Event has no fight at index {fight_index}"}), 404

    form = form_from_json(FightResultForm)
    if not form.validate():
        return form_error_response(form)

    try:
        fight.record_result(
            form.winner.data,
            form.method.data,
            round=form.round.data,
            time=form.time.data,
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    event.refresh_status(
        completion_hours=current_app.config.get("EVENT_COMPLETION_HOURS", 8)
    )
    db.session.commit()

    picks_verified = 0
    if event.is_completed:
        picks_verified = VerificationService().verify_picks_for_event(event.id)

    return jsonify(
        {
            "fight": fight.to_dict(),
            "event_status": event.status,
            "picks_verified": picks_verified,
        }
    )


@bp.route("/<int:event_id>/status", methods=["PATCH"])
@login_required
@admin_required
def update_event_status(event_id):
    event = db.get_or_404(Event, event_id)

    form = form_from_json(EventStatusForm)
    if not form.validate():
        return form_error_response(form)

    event.set_status(form.status.data)
    db.session.commit()

    logger.info(f"Event {event.id} status set to {event.status}")
    return jsonify({"event": event.to_dict(include_fights=False)})


@bp.route("/refresh", methods=["POST"])
@login_required
@admin_required
def refresh_events():
    """Pull upcoming events from the sports data API"""
    success, message = EventSync().fetch_upcoming_events()
    if not success:
        return jsonify({"error": f"Event refresh failed: {message}"}), 502
    return jsonify({"message": message})
