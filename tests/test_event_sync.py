"""
Tests for the sports data sync and event status updates.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
import requests

from clout import db
from clout.models import Event
from clout.utils.event_sync import (
    EventSync,
    organization_for_league,
    parse_event_date,
    parse_headliners,
)

API_EVENT = {
    "idEvent": "2052112",
    "strEvent": "UFC Fight Night: Moreno vs. Albazi",
    "strLeague": "UFC",
    "strTimestamp": "2025-06-01T02:00:00",
    "strVenue": "Rogers Place",
    "strCity": "Edmonton",
    "strCountry": "Canada",
}


def _response(status_code=200, payload=None, headers=None):
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    response.json.return_value = payload if payload is not None else {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status_code} error"
        )
    return response


@pytest.fixture
def sync(ctx):
    sync = EventSync(base_url="https://api.test/json", api_key="3", leagues=["4443"])
    sync.session = MagicMock()
    sync.min_request_interval = 0
    return sync


class TestParsing:
    """Helpers that read TheSportsDB payloads."""

    def test_parse_headliners(self):
        assert parse_headliners("UFC 300: Pereira vs. Hill") == ("Pereira", "Hill")
        assert parse_headliners("Jones vs Miocic") == ("Jones", "Miocic")
        assert parse_headliners("UFC 300") is None

    def test_organization_for_league(self):
        assert organization_for_league("UFC") == "UFC"
        assert organization_for_league("Bellator MMA") == "Bellator"
        assert organization_for_league("Cage Warriors") == "Other"
        assert organization_for_league(None) == "Other"

    def test_parse_event_date_from_timestamp(self):
        parsed = parse_event_date({"strTimestamp": "2025-06-01T02:00:00"})
        assert parsed == datetime(2025, 6, 1, 2, 0, tzinfo=timezone.utc)

    def test_parse_event_date_from_parts(self):
        parsed = parse_event_date({"dateEvent": "2025-06-01", "strTime": "02:00:00+00:00"})
        assert parsed == datetime(2025, 6, 1, 2, 0, tzinfo=timezone.utc)

    def test_parse_event_date_missing(self):
        assert parse_event_date({}) is None


class TestFetchUpcomingEvents:
    """Upserting events from the API."""

    def test_creates_event_with_headline_fight(self, sync):
        sync.session.get.return_value = _response(payload={"events": [API_EVENT]})

        success, message = sync.fetch_upcoming_events()

        assert success, message
        event = Event.query.filter_by(external_id="2052112").one()
        assert event.organization == "UFC"
        assert event.location == "Edmonton, Canada"
        assert event.status == "upcoming"
        assert [fight.fighters for fight in event.fights] == [["Moreno", "Albazi"]]
        assert event.fights[0].scheduled_rounds == 5

        url = sync.session.get.call_args[0][0]
        assert url == "https://api.test/json/3/eventsnextleague.php"
        assert sync.session.get.call_args[1]["params"] == {"id": "4443"}

    def test_refetch_updates_without_duplicating(self, sync):
        sync.session.get.return_value = _response(payload={"events": [API_EVENT]})
        sync.fetch_upcoming_events()

        renamed = dict(API_EVENT, strVenue="Edmonton Arena")
        sync.session.get.return_value = _response(payload={"events": [renamed]})
        sync.fetch_upcoming_events()

        events = Event.query.all()
        assert len(events) == 1
        assert events[0].venue == "Edmonton Arena"
        assert len(events[0].fights) == 1

    def test_skips_events_without_date(self, sync):
        undated = {"idEvent": "1", "strEvent": "Mystery Card"}
        sync.session.get.return_value = _response(payload={"events": [undated]})

        success, _ = sync.fetch_upcoming_events()

        assert success
        assert Event.query.count() == 0

    def test_empty_league(self, sync):
        sync.session.get.return_value = _response(payload={"events": None})

        success, message = sync.fetch_upcoming_events()

        assert success
        assert message == "Synced 0 events"

    def test_http_error_reports_failure(self, sync):
        sync.session.get.return_value = _response(status_code=404)

        success, message = sync.fetch_upcoming_events()

        assert not success
        assert "404" in message
        assert Event.query.count() == 0

    @patch("clout.utils.event_sync.time.sleep")
    def test_server_errors_retried(self, sleep, sync):
        sync.session.get.side_effect = [
            _response(status_code=503),
            _response(payload={"events": [API_EVENT]}),
        ]

        success, _ = sync.fetch_upcoming_events()

        assert success
        assert sync.session.get.call_count == 2
        sleep.assert_called()

    @patch("clout.utils.event_sync.time.sleep")
    def test_gives_up_after_max_retries(self, sleep, sync):
        sync.session.get.return_value = _response(status_code=500)

        success, message = sync.fetch_upcoming_events()

        assert not success
        assert "Max retries" in message
        assert sync.session.get.call_count == 3


class TestUpdateEventStatuses:
    """Moving events along their lifecycle."""

    def test_advances_open_events(self, sync, make_event):
        now = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
        started = make_event(event_date=now - timedelta(hours=1))
        finished = make_event(event_date=now - timedelta(hours=10))
        later = make_event(event_date=now + timedelta(days=2))

        changed = sync.update_event_statuses(now=now)

        assert changed == 2
        assert db.session.get(Event, started).status == "live"
        assert db.session.get(Event, finished).status == "completed"
        assert db.session.get(Event, later).status == "upcoming"

    def test_completed_events_left_alone(self, sync, make_event):
        now = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
        make_event(event_date=now + timedelta(days=2), status="completed")

        assert sync.update_event_statuses(now=now) == 0
