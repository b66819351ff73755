"""
Tests for admin event management, verification and scheduler endpoints.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from clout import db
from clout.models import Event, Pick, User


@pytest.fixture
def admin(login, make_user):
    admin_id = make_user(username="admin", is_admin=True)
    login(admin_id)
    return admin_id


class TestAdminAccess:
    def test_non_admin_forbidden(self, client, login, make_capper):
        login(make_capper())

        assert client.post("/api/admin/verification/run").status_code == 403
        assert client.get("/api/admin/scheduler").status_code == 403
        assert client.post("/api/events", json={}).status_code == 403

    def test_anonymous_unauthorized(self, client):
        assert client.post("/api/admin/verification/run").status_code == 401


class TestEventManagement:
    """Admins create events and record results."""

    def test_create_event_with_fights(self, client, admin):
        response = client.post(
            "/api/events",
            json={
                "event_name": "UFC 310",
                "organization": "UFC",
                "event_date": "2025-12-07T03:00:00Z",
                "venue": "T-Mobile Arena",
                "fights": [
                    {"fighter1": "Pantoja", "fighter2": "Asakura", "scheduled_rounds": 5},
                    {"fighter1": "Rakhmonov", "fighter2": "Garry"},
                ],
            },
        )

        assert response.status_code == 201
        event = response.get_json()["event"]
        assert event["status"] == "upcoming"
        assert event["external_id"].startswith("manual-")
        assert [fight["index"] for fight in event["fights"]] == [0, 1]
        assert event["fights"][0]["scheduled_rounds"] == 5

        listed = client.get("/api/events?organization=UFC").get_json()
        assert listed["pagination"]["total"] == 1

    def test_create_event_validation(self, client, admin):
        response = client.post(
            "/api/events",
            json={"event_name": "", "organization": "WWE", "event_date": "someday"},
        )

        assert response.status_code == 400
        assert set(response.get_json()["details"]) == {
            "event_name",
            "organization",
            "event_date",
        }

    def test_create_event_rejects_bad_fights(self, client, admin):
        response = client.post(
            "/api/events",
            json={
                "event_name": "UFC 311",
                "organization": "UFC",
                "event_date": "2025-12-07T03:00:00Z",
                "fights": [{"fighter1": "Same", "fighter2": "Same"}],
            },
        )

        assert response.status_code == 400

    def test_recording_last_result_completes_and_verifies(
        self, client, app, admin, make_capper, make_event, make_pick
    ):
        capper_id = make_capper()
        event_id = make_event(status="live")
        pick_id = make_pick(capper_id, event_id, winner="Fighter B")

        response = client.post(
            f"/api/events/{event_id}/fights/0/result",
            json={"winner": "Fighter B", "method": "Submission", "round": 2, "time": "3:41"},
        )

        assert response.status_code == 200
        data = response.get_json()
        assert data["event_status"] == "completed"
        assert data["picks_verified"] == 1
        assert data["fight"]["result"]["method"] == "Submission"

        with app.app_context():
            assert db.session.get(Pick, pick_id).is_correct is True
            assert db.session.get(User, capper_id).clout_score == 70

    def test_partial_results_leave_event_live(self, client, admin, make_event):
        event_id = make_event(fights=[("A", "B"), ("C", "D")], status="live")

        data = client.post(
            f"/api/events/{event_id}/fights/1/result",
            json={"winner": "C", "method": "Decision"},
        ).get_json()

        assert data["event_status"] == "live"
        assert data["picks_verified"] == 0

    def test_result_validation(self, client, admin, make_event):
        event_id = make_event()

        wrong_winner = client.post(
            f"/api/events/{event_id}/fights/0/result",
            json={"winner": "Nobody", "method": "KO/TKO"},
        )
        missing_fight = client.post(
            f"/api/events/{event_id}/fights/4/result",
            json={"winner": "Fighter A", "method": "KO/TKO"},
        )

        assert wrong_winner.status_code == 400
        assert missing_fight.status_code == 404

    def test_update_status(self, client, admin, make_event):
        event_id = make_event()

        response = client.patch(f"/api/events/{event_id}/status", json={"status": "live"})
        bad = client.patch(f"/api/events/{event_id}/status", json={"status": "postponed"})

        assert response.get_json()["event"]["status"] == "live"
        assert bad.status_code == 400

    def test_refresh_events(self, client, admin):
        with patch("clout.routes.events.routes.EventSync") as event_sync:
            event_sync.return_value.fetch_upcoming_events.return_value = (
                True,
                "Synced 4 events",
            )
            response = client.post("/api/events/refresh")

        assert response.status_code == 200
        assert response.get_json()["message"] == "Synced 4 events"

    def test_refresh_failure(self, client, admin):
        with patch("clout.routes.events.routes.EventSync") as event_sync:
            event_sync.return_value.fetch_upcoming_events.return_value = (False, "timeout")
            response = client.post("/api/events/refresh")

        assert response.status_code == 502


class TestVerificationEndpoints:
    def test_run_verification(
        self, client, admin, make_capper, make_event, make_pick, record_result
    ):
        capper_id = make_capper()
        event_id = make_event()
        make_pick(capper_id, event_id)
        record_result(event_id, "Fighter A", "KO/TKO")

        response = client.post("/api/admin/verification/run")

        assert response.status_code == 200
        assert response.get_json() == {
            "events_processed": 1,
            "events_failed": 0,
            "picks_verified": 1,
        }

    def test_verify_single_event(
        self, client, admin, make_capper, make_event, make_pick, record_result
    ):
        capper_id = make_capper()
        event_id = make_event()
        make_pick(capper_id, event_id)
        record_result(event_id, "Fighter A", "KO/TKO")

        response = client.post(f"/api/admin/verification/events/{event_id}")

        assert response.get_json() == {"event_id": event_id, "picks_verified": 1}

    def test_verify_open_event_rejected(self, client, admin, make_event):
        event_id = make_event()

        assert client.post(f"/api/admin/verification/events/{event_id}").status_code == 400

    def test_recompute_one_capper(self, client, app, admin, make_capper):
        capper_id = make_capper(correct_picks=5, total_picks=5, clout_score=70)

        response = client.post("/api/admin/stats/recompute", json={"capper_id": capper_id})

        assert response.status_code == 200
        assert response.get_json()["stats"]["total_picks"] == 0
        with app.app_context():
            assert db.session.get(User, capper_id).clout_score == 0

    def test_recompute_all(self, client, admin, make_capper):
        make_capper()
        make_capper()

        response = client.post("/api/admin/stats/recompute")

        assert response.get_json() == {"cappers_recomputed": 2}

    def test_recompute_unknown_capper(self, client, admin):
        response = client.post("/api/admin/stats/recompute", json={"capper_id": 9999})

        assert response.status_code == 404


class TestSchedulerEndpoints:
    def test_status(self, client, admin):
        response = client.get("/api/admin/scheduler")

        assert response.status_code == 200
        data = response.get_json()
        assert data["is_running"] is False
        assert "stats" in data

    def test_force_run_job(self, client, app, admin, make_event):
        started_id = make_event(event_date=datetime.now(timezone.utc) - timedelta(hours=1))
        later_id = make_event()

        response = client.post("/api/admin/scheduler/update_event_statuses/run")

        assert response.status_code == 200
        with app.app_context():
            assert db.session.get(Event, started_id).status == "live"
            assert db.session.get(Event, later_id).status == "upcoming"

    def test_unknown_job(self, client, admin):
        assert client.post("/api/admin/scheduler/nope/run").status_code == 404

    def test_pause_requires_job_id(self, client, admin):
        response = client.post("/api/admin/scheduler/action", json={"action": "pause_job"})

        assert response.status_code == 400

    def test_unknown_action(self, client, admin):
        response = client.post("/api/admin/scheduler/action", json={"action": "explode"})

        assert response.status_code == 400
