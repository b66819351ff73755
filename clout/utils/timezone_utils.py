"""
Timezone utility functions for the Clout application
"""

from datetime import datetime, timezone

import pytz
from flask import current_app


def get_app_timezone():
    """Get the application's configured timezone"""
    try:
        timezone_name = current_app.config.get("TIMEZONE", "UTC")
        return pytz.timezone(timezone_name)
    except pytz.UnknownTimeZoneError:
        return pytz.UTC


def convert_to_utc(dt):
    """Convert a datetime to UTC"""
    if dt is None:
        return None

    # If datetime is naive, assume it's in the application timezone
    if dt.tzinfo is None:
        app_tz = get_app_timezone()
        dt = app_tz.localize(dt)

    return dt.astimezone(timezone.utc)


def parse_api_datetime(value):
    """
    Parse an ISO 8601 string from an API payload into an aware UTC datetime.

    Raises:
        ValueError: if the value isn't a valid ISO 8601 datetime
    """
    if not value:
        raise ValueError("A datetime is required")
    return convert_to_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
