"""URL builder utilities for notification templates."""

from core.config import get_frontend_url


def build_activities_url() -> str:
    """Build URL to the facilitator's weekly activity log page."""
    base = get_frontend_url()
    return f"{base}/activities"


def build_offering_url(course_offering_id: int) -> str:
    """Build URL to a course offering's detail page."""
    base = get_frontend_url()
    return f"{base}/courses/offerings/{course_offering_id}"
