"""
Timezone formatting utilities for notification emails.
"""

from datetime import datetime

import pytz


def _localize(utc_dt: datetime, tz_name: str) -> datetime:
    # Naive datetimes are treated as UTC; unknown zones fall back to UTC
    if utc_dt.tzinfo is None:
        utc_dt = pytz.UTC.localize(utc_dt)
    try:
        return utc_dt.astimezone(pytz.timezone(tz_name))
    except pytz.UnknownTimeZoneError:
        return utc_dt.astimezone(pytz.UTC)


def format_datetime_in_timezone(
    utc_dt: datetime,
    tz_name: str,
) -> str:
    """
    Format a UTC datetime in a local timezone with explicit offset.

    Args:
        utc_dt: Datetime in UTC (naive datetimes treated as UTC)
        tz_name: Timezone string (e.g., "Africa/Kigali")

    Returns:
        Formatted string like "Friday at 10:00 AM (UTC+2)"
    """
    local_dt = _localize(utc_dt, tz_name)

    day_name = local_dt.strftime("%A")
    time_str = local_dt.strftime("%I:%M %p").lstrip("0")  # "3:00 PM" not "03:00 PM"

    offset = local_dt.strftime("%z")  # "+0200" or "-0500"
    if offset:
        hours = int(offset[:3])
        minutes = int(offset[0] + offset[3:5])
        if minutes == 0:
            offset_str = f"UTC{hours:+d}" if hours != 0 else "UTC"
        else:
            offset_str = f"UTC{hours:+d}:{abs(minutes):02d}"
    else:
        offset_str = "UTC"

    return f"{day_name} at {time_str} ({offset_str})"


def format_date_in_timezone(
    utc_dt: datetime,
    tz_name: str,
) -> str:
    """
    Format a UTC datetime as just a date in a local timezone.

    Returns:
        Formatted string like "Sunday, March 9"
    """
    local_dt = _localize(utc_dt, tz_name)
    return local_dt.strftime("%A, %B %d").replace(" 0", " ")  # "March 9" not "March 09"
