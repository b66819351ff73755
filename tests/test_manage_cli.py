"""
Tests for the management CLI.
"""

import pytest
from click.testing import CliRunner

from clout import db
from clout.models import Event, Pick, User
from manage import cli


@pytest.fixture
def run_cli(app):
    runner = CliRunner()

    def _run(*args):
        with app.app_context():
            return runner.invoke(cli, list(args))

    return _run


class TestVerifyCommands:
    def test_verify_run(self, app, run_cli, make_capper, make_event, make_pick, record_result):
        capper_id = make_capper()
        event_id = make_event()
        pick_id = make_pick(capper_id, event_id)
        record_result(event_id, "Fighter A", "KO/TKO")

        result = run_cli("verify", "run")

        assert result.exit_code == 0
        assert "Verified 1 picks across 1 events" in result.output
        with app.app_context():
            assert db.session.get(Pick, pick_id).is_correct is True

    def test_verify_open_event(self, run_cli, make_event):
        event_id = make_event()

        result = run_cli("verify", "event", str(event_id))

        assert "nothing to verify" in result.output

    def test_verify_unknown_event(self, run_cli):
        assert "not found" in run_cli("verify", "event", "9999").output


class TestStatsCommands:
    def test_recompute_one(self, run_cli, make_capper):
        capper_id = make_capper(correct_picks=2, total_picks=2)

        result = run_cli("stats", "recompute", "--capper-id", str(capper_id))

        assert result.exit_code == 0
        assert f"Capper {capper_id}: 0/0 correct" in result.output

    def test_recompute_all(self, run_cli, make_capper):
        make_capper()

        assert "Recomputed stats for 1 cappers" in run_cli("stats", "recompute").output


class TestEventCommands:
    def test_record_result(self, app, run_cli, make_event):
        event_id = make_event()

        result = run_cli(
            "events", "result", str(event_id), "0", "Fighter B", "Decision", "--round", "3"
        )

        assert result.exit_code == 0
        with app.app_context():
            fight = db.session.get(Event, event_id).fight_at(0)
            assert fight.result_winner == "Fighter B"
            assert fight.result_round == 3

    def test_record_invalid_result(self, run_cli, make_event):
        event_id = make_event()

        result = run_cli("events", "result", str(event_id), "0", "Nobody", "KO/TKO")

        assert "is not on this fight" in result.output


class TestUserCommands:
    def test_create_admin(self, app, run_cli):
        result = run_cli("user", "create-admin", "boss", "Boss@Example.com", "secret123")

        assert result.exit_code == 0
        with app.app_context():
            admin = User.query.filter_by(username="boss").one()
            assert admin.is_admin is True
            assert admin.email == "boss@example.com"

        assert "already exists" in run_cli(
            "user", "create-admin", "boss", "other@example.com", "secret123"
        ).output

    def test_make_capper(self, app, run_cli, make_user):
        user_id = make_user(username="fan")

        run_cli("user", "make-capper", "fan")

        with app.app_context():
            assert db.session.get(User, user_id).role == "capper"
        assert "already a capper" in run_cli("user", "make-capper", "fan").output


def test_status(run_cli, make_capper):
    make_capper()

    result = run_cli("status")

    assert result.exit_code == 0
    assert "Database: Connected" in result.output
    assert "1 cappers" in result.output
