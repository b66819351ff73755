from flask import abort
from sqlalchemy import case, func

from clout import db
from clout.models import Event, Pick, User
from clout.routes.leaderboard import bp
from clout.utils.api_utils import get_pagination_args, paginate_query
from clout.utils.cache_utils import cached_route

RECENT_PICKS_LIMIT = 5


def _organization_breakdown(capper_id):
    """Verified pick counts per organization for one capper"""
    rows = (
        db.session.query(
            Event.organization,
            func.count(Pick.id),
            func.sum(case((Pick.is_correct.is_(True), 1), else_=0)),
        )
        .join(Event, Pick.event_id == Event.id)
        .filter(
            Pick.capper_id == capper_id,
            Pick.is_active.is_(True),
            Pick.verified_at.isnot(None),
        )
        .group_by(Event.organization)
        .order_by(Event.organization)
        .all()
    )

    breakdown = {}
    for organization, total, correct in rows:
        correct = int(correct or 0)
        breakdown[organization] = {
            "total_picks": total,
            "correct_picks": correct,
            "win_rate": round(correct / total, 2) if total else 0.0,
        }
    return breakdown


# Responses are plain dicts so they can be cached
@bp.route("")
@cached_route(timeout=300, key_prefix="Leaderboard")
def leaderboard():
    """Cappers ranked by stored clout score"""
    cappers, pagination = paginate_query(User.get_leaderboard_query())
    page, limit = get_pagination_args()
    offset = (page - 1) * limit

    entries = []
    for position, capper in enumerate(cappers, start=1):
        entry = {
            "rank": offset + position,
            "capper_id": capper.id,
            "username": capper.username,
            "display_name": capper.full_name,
            "avatar_url": capper.avatar_url,
        }
        entry.update(capper.stats_dict())
        entries.append(entry)

    return {"leaderboard": entries, "pagination": pagination}


@bp.route("/cappers/<int:capper_id>")
@cached_route(timeout=300, key_prefix="Leaderboard_capper")
def capper_stats(capper_id):
    """Stored stats for one capper, with pending picks and recent form"""
    capper = db.session.get(User, capper_id)
    if capper is None or not capper.is_capper:
        abort(404)

    active_picks = capper.picks.filter(Pick.is_active.is_(True))
    verified_count = active_picks.filter(Pick.verified_at.isnot(None)).count()
    pending_count = active_picks.filter(
        Pick.verified_at.is_(None),
        Pick.event.has(Event.status != "completed"),
    ).count()

    recent_picks = (
        active_picks.order_by(Pick.created_at.desc(), Pick.id.desc())
        .limit(RECENT_PICKS_LIMIT)
        .all()
    )

    return {
        "capper": capper.to_dict(),
        "stats": dict(
            capper.stats_dict(),
            verified_picks=verified_count,
            pending_picks=pending_count,
        ),
        "by_organization": _organization_breakdown(capper.id),
        "recent_picks": [pick.to_dict(include_capper=False) for pick in recent_picks],
    }
