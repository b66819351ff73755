"""
Tests for the leaderboard and capper stat pages.
"""

from clout.services.verification_service import VerificationService


class TestLeaderboard:
    """Cappers ranked by stored clout score."""

    def test_ranked_by_clout_score(self, client, make_capper, make_user):
        low = make_capper(username="low", clout_score=10)
        high = make_capper(username="high", clout_score=80)
        make_user(username="just_a_fan", clout_score=99)

        response = client.get("/api/leaderboard")

        assert response.status_code == 200
        entries = response.get_json()["leaderboard"]
        assert [entry["capper_id"] for entry in entries] == [high, low]
        assert [entry["rank"] for entry in entries] == [1, 2]
        assert entries[0]["clout_score"] == 80

    def test_ties_keep_insertion_order(self, client, make_capper):
        first = make_capper(clout_score=50)
        second = make_capper(clout_score=50)

        entries = client.get("/api/leaderboard").get_json()["leaderboard"]

        assert [entry["capper_id"] for entry in entries] == [first, second]

    def test_rank_continues_across_pages(self, client, make_capper):
        for score in (90, 80, 70):
            make_capper(clout_score=score)

        data = client.get("/api/leaderboard?limit=2&page=2").get_json()

        assert [entry["rank"] for entry in data["leaderboard"]] == [3]
        assert data["pagination"] == {"page": 2, "limit": 2, "total": 3, "pages": 2}

    def test_verification_refreshes_cached_leaderboard(
        self, client, app, make_capper, make_event, make_pick, record_result
    ):
        capper_id = make_capper()
        event_id = make_event()
        make_pick(capper_id, event_id)

        before = client.get("/api/leaderboard").get_json()["leaderboard"]
        assert before[0]["clout_score"] == 0

        record_result(event_id, "Fighter A", "KO/TKO")
        with app.app_context():
            VerificationService().verify_picks_for_event(event_id)

        after = client.get("/api/leaderboard").get_json()["leaderboard"]
        assert after[0]["clout_score"] == 70
        assert after[0]["win_rate"] == 1


class TestCapperStats:
    """Detailed stats for one capper."""

    def test_capper_stats(
        self, client, app, make_capper, make_event, make_pick, record_result
    ):
        capper_id = make_capper(username="sharp")
        ufc_event = make_event(organization="UFC")
        pfl_event = make_event(organization="PFL")
        open_event = make_event(organization="UFC")
        make_pick(capper_id, ufc_event, winner="Fighter A")
        make_pick(capper_id, pfl_event, winner="Fighter A")
        make_pick(capper_id, open_event)
        record_result(ufc_event, "Fighter A", "KO/TKO")
        record_result(pfl_event, "Fighter B", "Decision")
        with app.app_context():
            VerificationService().verify_all_pending_picks()

        response = client.get(f"/api/leaderboard/cappers/{capper_id}")

        assert response.status_code == 200
        data = response.get_json()
        assert data["capper"]["username"] == "sharp"
        assert data["stats"]["total_picks"] == 2
        assert data["stats"]["correct_picks"] == 1
        assert data["stats"]["verified_picks"] == 2
        assert data["stats"]["pending_picks"] == 1
        assert data["by_organization"] == {
            "PFL": {"total_picks": 1, "correct_picks": 0, "win_rate": 0.0},
            "UFC": {"total_picks": 1, "correct_picks": 1, "win_rate": 1.0},
        }
        assert len(data["recent_picks"]) == 3

    def test_recent_picks_limited_to_five(self, client, make_capper, make_event, make_pick):
        capper_id = make_capper()
        event_id = make_event()
        for _ in range(7):
            make_pick(capper_id, event_id)

        data = client.get(f"/api/leaderboard/cappers/{capper_id}").get_json()

        assert len(data["recent_picks"]) == 5

    def test_non_capper_not_found(self, client, make_user):
        user_id = make_user(role="user")

        assert client.get(f"/api/leaderboard/cappers/{user_id}").status_code == 404
        assert client.get("/api/leaderboard/cappers/9999").status_code == 404
