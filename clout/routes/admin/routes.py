import logging

from flask import jsonify, request
from flask_login import current_user, login_required

from clout import db
from clout.models import Event
from clout.routes.admin import bp
from clout.services.scheduler_service import scheduler_service
from clout.services.verification_service import VerificationService
from clout.utils.api_utils import add_security_headers, admin_required

logger = logging.getLogger(__name__)


@bp.route("/verification/run", methods=["POST"])
@login_required
@admin_required
def run_verification():
    """Verify open picks on every completed event"""
    logger.info(f"Manual verification run requested by {current_user.username}")
    summary = VerificationService().verify_all_pending_picks()
    return jsonify(summary)


@bp.route("/verification/events/<int:event_id>", methods=["POST"])
@login_required
@admin_required
def verify_event(event_id):
    event = db.get_or_404(Event, event_id)
    if not event.is_completed:
        return (
            jsonify({"error": f"Event is {event.status}, only completed events are verified"}),
            400,
        )

    picks_verified = VerificationService().verify_picks_for_event(event.id)
    return jsonify({"event_id": event.id, "picks_verified": picks_verified})


@bp.route("/stats/recompute", methods=["POST"])
@login_required
@admin_required
def recompute_stats():
    """Rebuild capper stats from verified picks, for one capper or all"""
    payload = request.get_json(silent=True) or {}
    capper_id = payload.get("capper_id")
    service = VerificationService()

    if capper_id is not None:
        try:
            capper_id = int(capper_id)
        except (TypeError, ValueError):
            return jsonify({"error": "capper_id must be an integer"}), 400

        stats = service.recompute_capper_stats(capper_id)
        if stats is None:
            return jsonify({"error": "Capper not found"}), 404
        return jsonify({"capper_id": capper_id, "stats": stats})

    recomputed = service.recompute_all_capper_stats()
    return jsonify({"cappers_recomputed": recomputed})


@bp.route("/scheduler")
@login_required
@admin_required
@add_security_headers
def scheduler_status():
    return jsonify(scheduler_service.get_status())


@bp.route("/scheduler/<job_name>/run", methods=["POST"])
@login_required
@admin_required
def run_job(job_name):
    if job_name not in scheduler_service.jobs:
        return jsonify({"error": f"Unknown job: {job_name}"}), 404

    success, message = scheduler_service.force_run(job_name)
    if success:
        return jsonify({"message": message})
    return jsonify({"error": message}), 500


@bp.route("/scheduler/action", methods=["POST"])
@login_required
@admin_required
def scheduler_action():
    """Start, stop, pause or resume the scheduler and its jobs"""
    payload = request.get_json(silent=True) or {}
    action = payload.get("action")

    if action == "start":
        scheduler_service.start()
        return jsonify({"message": "Scheduler started"})

    elif action == "stop":
        scheduler_service.stop()
        return jsonify({"message": "Scheduler stopped"})

    elif action in ("pause_job", "resume_job"):
        job_id = payload.get("job_id")
        if not job_id:
            return jsonify({"error": "Job ID required"}), 400

        if action == "pause_job":
            success, message = scheduler_service.pause_job(job_id)
        else:
            success, message = scheduler_service.resume_job(job_id)

        if success:
            return jsonify({"message": message})
        return jsonify({"error": message}), 500

    return jsonify({"error": "Unknown action"}), 400
