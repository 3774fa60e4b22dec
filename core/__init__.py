"""
Core business logic for the course management platform.
Used by the web API and the notification pipeline.
"""

# Database (SQLAlchemy)
from .database import get_connection, get_transaction, get_engine, close_engine, is_configured

# Enums
from .enums import UserRole, CourseOfferingStatus, ActivityStatus, CohortIntake

# Configuration
from .config import NotificationSettings, get_notification_settings

# Timezone formatting
from .timezone import format_datetime_in_timezone, format_date_in_timezone

__all__ = [
    # Database
    "get_connection", "get_transaction", "get_engine", "close_engine", "is_configured",
    # Enums
    "UserRole", "CourseOfferingStatus", "ActivityStatus", "CohortIntake",
    # Configuration
    "NotificationSettings", "get_notification_settings",
    # Timezone
    "format_datetime_in_timezone", "format_date_in_timezone",
]
