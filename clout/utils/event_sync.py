import logging
import re
import time
from datetime import datetime, timezone
from functools import wraps

import requests
from flask import current_app

from clout import db
from clout.models import Event

logger = logging.getLogger(__name__)

# "UFC Fight Night: Moreno vs. Albazi" -> ("Moreno", "Albazi")
HEADLINER_PATTERN = re.compile(r"(?:.*:\s*)?(.+?)\s+vs\.?\s+(.+)$", re.IGNORECASE)

LEAGUE_ORGANIZATIONS = (
    ("UFC", "UFC"),
    ("Bellator", "Bellator"),
    ("PFL", "PFL"),
    ("ONE", "ONE"),
    ("Boxing", "Boxing"),
)


def rate_limit_decorator(max_retries=3, base_delay=1.0, backoff_factor=2.0):
    """
    Decorator to handle API rate limiting with exponential backoff
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            for attempt in range(max_retries):
                try:
                    response = func(self, *args, **kwargs)

                    if response.status_code == 429:
                        retry_after = float(
                            response.headers.get(
                                "Retry-After",
                                base_delay * (backoff_factor**attempt),
                            )
                        )
                        logger.warning(
                            f"Rate limited. Waiting {retry_after}s before retry {attempt + 1}/{max_retries}"
                        )
                        time.sleep(retry_after)
                        continue
                    elif response.status_code >= 500:
                        delay = base_delay * (backoff_factor**attempt)
                        logger.warning(
                            f"Server error {response.status_code}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                        )
                        time.sleep(delay)
                        continue

                    return response

                except requests.exceptions.RequestException as e:
                    delay = base_delay * (backoff_factor**attempt)
                    logger.warning(
                        f"Request failed: {e}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                    if attempt < max_retries - 1:
                        time.sleep(delay)
                    else:
                        raise

            raise requests.exceptions.RetryError(f"Max retries ({max_retries}) exceeded")

        return wrapper

    return decorator


def parse_headliners(event_name):
    """Pull the two headline fighters out of an event name, if present"""
    match = HEADLINER_PATTERN.match(event_name or "")
    if not match:
        return None
    return match.group(1).strip(), match.group(2).strip()


def organization_for_league(league_name):
    for token, organization in LEAGUE_ORGANIZATIONS:
        if token.lower() in (league_name or "").lower():
            return organization
    return "Other"


def parse_event_date(event_data):
    """Parse the start time of a TheSportsDB event as an aware UTC datetime"""
    timestamp = event_data.get("strTimestamp")
    if timestamp:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    else:
        date_part = event_data.get("dateEvent")
        if not date_part:
            return None
        time_part = (event_data.get("strTime") or "00:00:00")[:8]
        parsed = datetime.fromisoformat(f"{date_part}T{time_part}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class EventSync:
    """
    Syncs fight cards from TheSportsDB and advances event statuses
    """

    def __init__(self, base_url=None, api_key=None, leagues=None):
        self.base_url = base_url or current_app.config["SPORTS_DB_BASE_URL"]
        self.api_key = api_key or current_app.config["SPORTS_DB_API_KEY"]
        if leagues is None:
            leagues = [
                league.strip()
                for league in current_app.config["SPORTS_DB_LEAGUES"].split(",")
                if league.strip()
            ]
        self.leagues = leagues

        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "Clout-API/1.0"})

        self.min_request_interval = 0.5
        self.last_request_time = 0

    def _enforce_rate_limit(self):
        """Keep a minimum interval between requests"""
        time_since_last = time.time() - self.last_request_time
        if time_since_last < self.min_request_interval:
            time.sleep(self.min_request_interval - time_since_last)
        self.last_request_time = time.time()

    @rate_limit_decorator(max_retries=3, base_delay=2.0)
    def _make_api_request(self, url, params=None):
        """Make API request with rate limiting and retry logic"""
        self._enforce_rate_limit()
        return self.session.get(url, params=params, timeout=30)

    def fetch_upcoming_events(self):
        """
        Fetch upcoming events for the configured leagues and upsert them.

        Returns:
            tuple: (success, message)
        """
        try:
            synced = []
            for league_id in self.leagues:
                url = f"{self.base_url}/{self.api_key}/eventsnextleague.php"
                response = self._make_api_request(url, params={"id": league_id})
                response.raise_for_status()

                for event_data in response.json().get("events") or []:
                    event = self._upsert_event(event_data)
                    if event is not None:
                        synced.append(event)

            db.session.commit()
            logger.info(f"Synced {len(synced)} events from {len(self.leagues)} leagues")
            return True, f"Synced {len(synced)} events"

        except Exception as e:
            db.session.rollback()
            logger.error(f"Error fetching events: {str(e)}", exc_info=True)
            return False, str(e)

    def _upsert_event(self, event_data):
        external_id = event_data.get("idEvent")
        event_date = parse_event_date(event_data)
        if not external_id or event_date is None:
            logger.warning(f"Skipping event without id or date: {event_data.get('strEvent')}")
            return None

        event = Event.query.filter_by(external_id=str(external_id)).first()
        if event is None:
            event = Event(external_id=str(external_id))
            db.session.add(event)

        event.event_name = event_data.get("strEvent") or "Unnamed event"
        event.organization = organization_for_league(event_data.get("strLeague"))
        event.event_date = event_date
        event.venue = event_data.get("strVenue")
        event.location = ", ".join(
            part for part in (event_data.get("strCity"), event_data.get("strCountry")) if part
        ) or None

        if not event.fights:
            headliners = parse_headliners(event.event_name)
            if headliners:
                event.add_fight(headliners[0], headliners[1], scheduled_rounds=5)

        return event

    def update_event_statuses(self, now=None):
        """
        Advance every open event through upcoming -> live -> completed.

        Returns:
            int: number of events whose status changed
        """
        completion_hours = current_app.config.get("EVENT_COMPLETION_HOURS", 8)
        changed = 0

        try:
            for event in Event.get_open_events():
                old_status = event.status
                if event.refresh_status(now=now, completion_hours=completion_hours):
                    changed += 1
                    logger.info(
                        f"Event {event.id} ({event.event_name}): {old_status} -> {event.status}"
                    )

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        return changed
