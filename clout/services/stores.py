"""
SQLAlchemy-backed stores used by the verification engine.

Stores only stage changes on their session; the caller owns commit and
rollback so that one event's writes land together.
"""

from sqlalchemy import select, update

from clout import db
from clout.models import Event, Pick, User
from clout.utils.scoring import compute_stats

VERIFIED_FIELDS = (
    "verified_winner",
    "verified_method",
    "verified_round",
    "verified_at",
    "is_correct",
)


class EventStore:
    def __init__(self, session=None):
        self.session = session or db.session

    def find_completed_events_with_results(self):
        return Event.get_completed_with_results(self.session)

    def find_event(self, event_id):
        return self.session.get(Event, event_id)


class PickStore:
    def __init__(self, session=None):
        self.session = session or db.session

    def find_unverified_picks_for_event(self, event_id):
        return Pick.get_unverified_for_event(event_id, self.session)

    def find_verified_picks_for_capper(self, capper_id):
        return Pick.get_verified_for_capper(capper_id, self.session)

    def save_pick(self, pick):
        """
        Write a pick's verified outcome if the row is still open.

        The UPDATE is conditional on verified_at being NULL, so when two runs
        race on the same pick only one of them writes it. The in-memory pick
        is reloaded either way.

        Returns:
            bool: True if this call verified the pick
        """
        with self.session.no_autoflush:
            result = self.session.execute(
                update(Pick)
                .where(Pick.id == pick.id, Pick.verified_at.is_(None))
                .values({field: getattr(pick, field) for field in VERIFIED_FIELDS})
                .execution_options(synchronize_session=False)
            )
            self.session.refresh(pick)

        return result.rowcount == 1


class CapperStore:
    def __init__(self, session=None):
        self.session = session or db.session

    def find_capper(self, capper_id):
        """Get a user by id if they are a capper"""
        user = self.session.get(User, capper_id)
        if user is None or not user.is_capper:
            return None
        return user

    def find_all_cappers(self):
        return self.session.scalars(
            select(User).where(User.role == "capper").order_by(User.id)
        ).all()

    def save_capper(self, capper):
        self.session.add(capper)

    def record_outcome(self, capper_id, is_correct):
        """
        Count one verified pick against a capper's aggregate.

        The counters are incremented in SQL so concurrent verifications
        cannot lose updates; win rate and clout score are then derived from
        the fresh counters.

        Returns:
            The updated capper, or None if the capper doesn't exist
        """
        result = self.session.execute(
            update(User)
            .where(User.id == capper_id, User.role == "capper")
            .values(
                total_picks=User.total_picks + 1,
                correct_picks=User.correct_picks + (1 if is_correct else 0),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None

        capper = self.session.get(User, capper_id)
        self.session.refresh(capper)
        capper.apply_stats(
            compute_stats(
                capper.correct_picks, capper.total_picks, capper.follower_count
            )
        )
        self.save_capper(capper)
        return capper
