"""
Shared fixtures for the Clout test suite.

Factories return ids rather than model instances: each one commits in its
own app context, so tests re-load what they need in the context they run in.
"""

from datetime import datetime, timedelta, timezone

import pytest

from clout import create_app, db
from clout.models import Event, Pick, User


@pytest.fixture
def app():
    """Application with a fresh in-memory database"""
    app = create_app("testing")
    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """Pushed app context for model and service tests"""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make_user(
        username=None,
        role="user",
        is_admin=False,
        password="secret123",
        correct_picks=0,
        total_picks=0,
        follower_count=0,
        clout_score=0.0,
    ):
        counter["n"] += 1
        username = username or f"user{counter['n']}"
        with app.app_context():
            user = User(
                username=username,
                email=f"{username}@example.com",
                role=role,
                is_admin=is_admin,
                correct_picks=correct_picks,
                total_picks=total_picks,
                follower_count=follower_count,
                clout_score=clout_score,
            )
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make_user


@pytest.fixture
def make_capper(make_user):
    def _make_capper(username=None, **kwargs):
        return make_user(username=username, role="capper", **kwargs)

    return _make_capper


@pytest.fixture
def make_event(app):
    counter = {"n": 0}

    def _make_event(
        fights=(("Fighter A", "Fighter B"),),
        status="upcoming",
        organization="UFC",
        event_date=None,
        name=None,
    ):
        counter["n"] += 1
        with app.app_context():
            event = Event(
                external_id=f"test-{counter['n']}",
                event_name=name or f"UFC Test {counter['n']}",
                organization=organization,
                event_date=event_date
                or datetime.now(timezone.utc) + timedelta(days=7),
                status=status,
            )
            for fighter1, fighter2 in fights:
                event.add_fight(fighter1, fighter2)
            db.session.add(event)
            db.session.commit()
            return event.id

    return _make_event


@pytest.fixture
def make_pick(app):
    def _make_pick(
        capper_id,
        event_id,
        winner="Fighter A",
        fight_index=0,
        method=None,
        round=None,
        confidence=7,
    ):
        with app.app_context():
            pick = Pick(
                capper_id=capper_id,
                event_id=event_id,
                fight_index=fight_index,
                predicted_winner=winner,
                predicted_method=method,
                predicted_round=round,
                confidence=confidence,
            )
            db.session.add(pick)
            db.session.commit()
            return pick.id

    return _make_pick


@pytest.fixture
def record_result(app):
    """Record a result on a fight and optionally complete the event"""

    def _record_result(event_id, winner, method, fight_index=0, round=None, complete=True):
        with app.app_context():
            event = db.session.get(Event, event_id)
            event.fight_at(fight_index).record_result(winner, method, round=round)
            if complete:
                event.set_status("completed")
            db.session.commit()

    return _record_result


@pytest.fixture
def login(client):
    """Log the test client in as a user"""

    def _login(user_id):
        with client.session_transaction() as session:
            session["_user_id"] = str(user_id)
            session["_fresh"] = True

    return _login
