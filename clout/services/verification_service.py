"""
Pick verification for the Clout application

Reconciles open picks against recorded fight results and keeps each capper's
stored stats (total/correct picks, win rate, clout score) in sync. Invoked
hourly by the scheduler and on demand from the admin API and CLI.
"""

import logging
from datetime import datetime, timezone

from clout import db
from clout.models.event import NO_WINNER_METHODS
from clout.services.stores import CapperStore, EventStore, PickStore
from clout.utils.cache_utils import invalidate_model_cache
from clout.utils.scoring import compute_stats

logger = logging.getLogger(__name__)

# Legacy picks without a fight index are assumed to be on the main event
LEGACY_FIGHT_INDEX = 0


def is_pick_correct(prediction, result):
    """
    Judge a prediction against a fight result.

    The winner must match. Method and round are only checked when the
    capper predicted them.
    """
    if prediction["winner"] != result["winner"]:
        return False

    if prediction.get("method") and prediction["method"] != result.get("method"):
        return False

    if prediction.get("round") and prediction["round"] != result.get("round"):
        return False

    return True


class VerificationService:
    """Verifies picks against fight results and updates capper stats"""

    def __init__(
        self,
        event_store=None,
        pick_store=None,
        capper_store=None,
        session=None,
        clock=None,
    ):
        self.session = session or db.session
        self.event_store = event_store or EventStore(self.session)
        self.pick_store = pick_store or PickStore(self.session)
        self.capper_store = capper_store or CapperStore(self.session)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def verify_picks_for_event(self, event_id):
        """
        Verify every open pick on a completed event.

        The event's writes are committed together. Any error, including one
        while loading the event or its picks, rolls the session back so its
        picks stay open, and is re-raised.

        Returns:
            int: number of picks verified
        """
        verified = 0
        try:
            event = self.event_store.find_event(event_id)
            if event is None:
                logger.warning(f"Event {event_id} not found, nothing to verify")
                return 0

            if event.status != "completed":
                logger.debug(f"Event {event_id} is {event.status}, skipping verification")
                return 0

            picks = self.pick_store.find_unverified_picks_for_event(event.id)
            if not picks:
                return 0

            for pick in picks:
                if self._verify_pick(event, pick):
                    verified += 1

            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        if verified:
            invalidate_model_cache("Leaderboard")
            logger.info(
                f"Event {event.id} ({event.event_name}): verified {verified} "
                f"of {len(picks)} open picks"
            )

        return verified

    def _verify_pick(self, event, pick):
        """Verify one pick; returns False if it has to stay open"""
        fight_index = pick.fight_index
        if fight_index is None:
            fight_index = LEGACY_FIGHT_INDEX
            logger.warning(
                f"Pick {pick.id} has no fight index, assuming main event "
                f"(index {LEGACY_FIGHT_INDEX}) of event {event.id}"
            )

        fight = event.fight_at(fight_index)
        if fight is None:
            logger.warning(
                f"Pick {pick.id} references fight {fight_index} but event "
                f"{event.id} only has {len(event.fights)} fights, leaving it open"
            )
            return False

        if not fight.has_result:
            return False

        result = fight.result
        if not result["method"]:
            logger.warning(
                f"Fight {fight_index} of event {event.id} has a result without "
                f"a method, leaving pick {pick.id} open"
            )
            return False

        if not result["winner"] and result["method"] not in NO_WINNER_METHODS:
            logger.warning(
                f"Fight {fight_index} of event {event.id} has a {result['method']} "
                f"result without a winner, leaving pick {pick.id} open"
            )
            return False

        is_correct = is_pick_correct(pick.prediction, result)
        pick.mark_verified(result, is_correct, verified_at=self.clock())
        if not self.pick_store.save_pick(pick):
            logger.info(f"Pick {pick.id} was verified by another run, skipping")
            return False

        capper = self.capper_store.record_outcome(pick.capper_id, is_correct)
        if capper is None:
            logger.warning(
                f"Pick {pick.id} verified but owner {pick.capper_id} is not a "
                f"capper, stats not updated"
            )

        return True

    def verify_all_pending_picks(self):
        """
        Verify open picks on every completed event that has results.

        A failing event is logged and skipped; the rest still run.

        Returns:
            dict: events_processed, events_failed, picks_verified
        """
        summary = {"events_processed": 0, "events_failed": 0, "picks_verified": 0}

        events = self.event_store.find_completed_events_with_results()
        event_ids = [event.id for event in events]

        for event_id in event_ids:
            try:
                summary["picks_verified"] += self.verify_picks_for_event(event_id)
                summary["events_processed"] += 1
            except Exception as e:
                summary["events_failed"] += 1
                logger.error(f"Error verifying picks for event {event_id}: {e}", exc_info=True)

        logger.info(
            f"Verification run: {summary['picks_verified']} picks verified across "
            f"{summary['events_processed']} events ({summary['events_failed']} failed)"
        )
        return summary

    def recompute_capper_stats(self, capper_id):
        """
        Rebuild a capper's stats from their verified picks.

        Safe to run any time; repairs drift left by interrupted runs.

        Returns:
            dict of stats, or None if the capper doesn't exist
        """
        capper = self.capper_store.find_capper(capper_id)
        if capper is None:
            return None

        picks = self.pick_store.find_verified_picks_for_capper(capper_id)
        total_picks = len(picks)
        correct_picks = sum(1 for pick in picks if pick.is_correct)

        capper.total_picks = total_picks
        capper.correct_picks = correct_picks
        capper.follower_count = capper.followers.count()
        capper.apply_stats(
            compute_stats(correct_picks, total_picks, capper.follower_count)
        )
        self.capper_store.save_capper(capper)
        self.session.commit()

        return capper.stats_dict()

    def recompute_all_capper_stats(self):
        """
        Rebuild stats for every capper.

        Returns:
            int: number of cappers recomputed
        """
        capper_ids = [capper.id for capper in self.capper_store.find_all_cappers()]
        recomputed = 0

        for capper_id in capper_ids:
            try:
                if self.recompute_capper_stats(capper_id) is not None:
                    recomputed += 1
            except Exception as e:
                self.session.rollback()
                logger.error(f"Error recomputing stats for capper {capper_id}: {e}", exc_info=True)

        if recomputed:
            invalidate_model_cache("Leaderboard")

        logger.info(f"Recomputed stats for {recomputed} of {len(capper_ids)} cappers")
        return recomputed
