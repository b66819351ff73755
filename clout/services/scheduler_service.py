"""
Clout Background Scheduler Service

Runs pick verification and event/stat maintenance on a timer using
APScheduler. Every job runs with max_instances=1 and coalesce=True, so a
verification run never overlaps another and capper stat updates stay
serialized.
"""

import atexit
import logging
from datetime import datetime, timezone

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from clout import db
from clout.services.verification_service import VerificationService
from clout.utils.event_sync import EventSync

logger = logging.getLogger(__name__)


def _empty_stats():
    return {
        "last_run": None,
        "total_runs": 0,
        "successful_runs": 0,
        "failed_runs": 0,
        "last_error": None,
        "picks_verified": 0,
    }


class SchedulerService:
    """Owns the background scheduler and the jobs it runs"""

    def __init__(self, app=None, verification_factory=None, event_sync_factory=None):
        self.scheduler = None
        self.app = app
        self.is_running = False
        self._exit_hook_registered = False
        self.run_stats = _empty_stats()
        self.verification_factory = verification_factory or VerificationService
        self.event_sync_factory = event_sync_factory or EventSync

        self.jobs = {
            "verify_pending_picks": self._verify_pending_picks,
            "update_event_statuses": self._update_event_statuses,
            "fetch_events": self._fetch_events,
            "recompute_stats": self._recompute_stats,
        }

        if app:
            self.init_app(app)

    def init_app(self, app):
        """Initialize scheduler with Flask app"""
        self.stop()

        self.app = app
        self.scheduler = BackgroundScheduler(daemon=True, timezone="UTC")

        if not self._exit_hook_registered:
            atexit.register(self.shutdown)
            self._exit_hook_registered = True

        if app.config.get("SCHEDULER_ENABLED", True):
            self.start()

    def start(self):
        """Start the background scheduler"""
        if self.is_running:
            return
        if self.scheduler is None:
            raise RuntimeError("Scheduler not initialized, call init_app first")

        try:
            self.scheduler.remove_all_jobs()
            self._add_core_jobs()
            self.scheduler.start()
            self.is_running = True

            logger.info("Scheduler started successfully")

        except Exception as e:
            logger.error(f"Failed to start scheduler: {e}")
            raise

    def stop(self):
        """Stop the background scheduler"""
        if not self.is_running:
            return

        try:
            self.scheduler.shutdown(wait=False)
            self.is_running = False
            logger.info("Scheduler stopped")

        except Exception as e:
            logger.error(f"Error stopping scheduler: {e}")

    def shutdown(self):
        """Graceful shutdown"""
        self.stop()

    def _add_core_jobs(self):
        """Add core scheduled jobs"""
        config = self.app.config

        # Hourly verification of open picks
        self.scheduler.add_job(
            func=self._verify_pending_picks,
            trigger=CronTrigger(minute=config.get("VERIFICATION_CRON_MINUTE", "0")),
            id="verify_pending_picks",
            name="Verify Pending Picks",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=300,
        )

        self.scheduler.add_job(
            func=self._update_event_statuses,
            trigger=IntervalTrigger(minutes=config.get("STATUS_UPDATE_MINUTES", 15)),
            id="update_event_statuses",
            name="Update Event Statuses",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
        )

        self.scheduler.add_job(
            func=self._fetch_events,
            trigger=IntervalTrigger(hours=config.get("EVENT_FETCH_HOURS", 6)),
            id="fetch_events",
            name="Fetch Upcoming Events",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=600,
        )

        # Daily repair of capper stats from verified picks
        self.scheduler.add_job(
            func=self._recompute_stats,
            trigger=CronTrigger(hour=config.get("STATS_RECOMPUTE_HOUR", 3), minute=0),
            id="recompute_stats",
            name="Recompute Capper Stats",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=3600,
        )

        logger.info("Core scheduled jobs added")

    def _verify_pending_picks(self):
        """Advance event statuses, then verify every open pick that has a result"""
        with self.app.app_context():
            try:
                self.event_sync_factory().update_event_statuses()

                summary = self.verification_factory().verify_all_pending_picks()

                self._update_stats(
                    summary["events_failed"] == 0, summary["picks_verified"]
                )
                if summary["events_failed"]:
                    self.run_stats["last_error"] = (
                        f"{summary['events_failed']} events failed verification"
                    )

            except Exception as e:
                db.session.rollback()
                self._update_stats(False)
                self.run_stats["last_error"] = str(e)
                logger.error(f"Error in pick verification job: {e}", exc_info=True)

    def _update_event_statuses(self):
        with self.app.app_context():
            try:
                changed = self.event_sync_factory().update_event_statuses()
                if changed:
                    logger.info(f"Updated status of {changed} events")
                self._update_stats(True)

            except Exception as e:
                db.session.rollback()
                self._update_stats(False)
                self.run_stats["last_error"] = str(e)
                logger.error(f"Error updating event statuses: {e}", exc_info=True)

    def _fetch_events(self):
        with self.app.app_context():
            try:
                success, message = self.event_sync_factory().fetch_upcoming_events()

                self._update_stats(success)
                if success:
                    logger.info(f"Event fetch completed: {message}")
                else:
                    self.run_stats["last_error"] = message
                    logger.warning(f"Event fetch issues: {message}")

            except Exception as e:
                db.session.rollback()
                self._update_stats(False)
                self.run_stats["last_error"] = str(e)
                logger.error(f"Error fetching events: {e}", exc_info=True)

    def _recompute_stats(self):
        with self.app.app_context():
            try:
                logger.info("Running daily capper stats recompute...")
                self.verification_factory().recompute_all_capper_stats()
                self._update_stats(True)

            except Exception as e:
                db.session.rollback()
                self._update_stats(False)
                self.run_stats["last_error"] = str(e)
                logger.error(f"Error recomputing capper stats: {e}", exc_info=True)

    def _update_stats(self, success, picks_verified=0):
        """Update run statistics"""
        self.run_stats["last_run"] = datetime.now(timezone.utc)
        self.run_stats["total_runs"] += 1

        if success:
            self.run_stats["successful_runs"] += 1
            self.run_stats["picks_verified"] += picks_verified
            self.run_stats["last_error"] = None
        else:
            self.run_stats["failed_runs"] += 1
            self.run_stats["picks_verified"] += picks_verified

    def get_status(self):
        """Get scheduler status information"""
        jobs = []
        if self.scheduler:
            for job in self.scheduler.get_jobs():
                next_run = getattr(job, "next_run_time", None)
                jobs.append(
                    {
                        "id": job.id,
                        "name": job.name,
                        "next_run": next_run.isoformat() if next_run else None,
                        "trigger": str(job.trigger),
                    }
                )

        stats = dict(self.run_stats)
        if stats["last_run"]:
            stats["last_run"] = stats["last_run"].isoformat()

        return {"is_running": self.is_running, "jobs": jobs, "stats": stats}

    def force_run(self, job_name):
        """Manually trigger a job in the calling thread"""
        job = self.jobs.get(job_name)
        if job is None:
            return False, f"Unknown job: {job_name}"

        failed_before = self.run_stats["failed_runs"]
        job()

        if self.run_stats["failed_runs"] > failed_before:
            return False, f"Manual {job_name} run failed: {self.run_stats['last_error']}"
        return True, f"Manual {job_name} run completed"

    def pause_job(self, job_id):
        """Pause a specific job"""
        try:
            self.scheduler.pause_job(job_id)
            return True, f"Job {job_id} paused"
        except Exception as e:
            return False, f"Failed to pause job: {e}"

    def resume_job(self, job_id):
        """Resume a specific job"""
        try:
            self.scheduler.resume_job(job_id)
            return True, f"Job {job_id} resumed"
        except Exception as e:
            return False, f"Failed to resume job: {e}"


# Global scheduler instance
scheduler_service = SchedulerService()
