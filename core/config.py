"""
Centralized configuration for the course management platform.

Settings come from environment variables (loaded from .env / .env.local
by the entry point). Accessors are functions so tests can patch os.environ.
"""

import os
from dataclasses import dataclass
from datetime import timedelta


def is_dev_mode() -> bool:
    """Check if running in development mode (DEV_MODE env)."""
    return os.getenv("DEV_MODE", "").lower() in ("true", "1", "yes")


def is_production() -> bool:
    """Check if running in production (APP_ENV=production)."""
    return os.getenv("APP_ENV", "").lower() == "production"


def get_api_port() -> int:
    """Get API server port from env or default."""
    return int(os.getenv("API_PORT", "8000"))


def get_frontend_url() -> str:
    """Get the frontend base URL used in email links."""
    return os.environ.get(
        "FRONTEND_URL", f"http://localhost:{get_api_port()}"
    ).rstrip("/")


def get_allowed_origins() -> list[str]:
    """Get list of allowed CORS origins."""
    origins = [
        f"http://{host}:{port}"
        for host in ("localhost", "127.0.0.1")
        for port in (get_api_port(), 3000, 5173)
    ]
    frontend_url = get_frontend_url()
    if frontend_url not in origins:
        origins.append(frontend_url)
    return origins


# =============================================================================
# Notification settings
# =============================================================================


@dataclass(frozen=True)
class NotificationSettings:
    """Timing and queue knobs for the notification pipeline."""

    reminder_lead_time: timedelta = timedelta(hours=24)
    late_alert_grace: timedelta = timedelta(hours=1)
    # APScheduler reads numeric day-of-week as 0=Monday, so use names
    weekly_reminder_cron: str = "0 10 * * fri"
    timezone: str = "UTC"
    concurrency: int = 1
    stall_timeout: float | None = None


def get_notification_settings() -> NotificationSettings:
    """
    Build NotificationSettings from environment variables.

    Raises:
        ValueError: NOTIFICATION_QUEUE_CONCURRENCY is below 1
    """
    stall_timeout = os.environ.get("NOTIFICATION_STALL_TIMEOUT")
    concurrency = int(os.environ.get("NOTIFICATION_QUEUE_CONCURRENCY", "1"))
    if concurrency < 1:
        raise ValueError(
            f"NOTIFICATION_QUEUE_CONCURRENCY must be at least 1, got {concurrency}"
        )
    return NotificationSettings(
        reminder_lead_time=timedelta(
            hours=float(os.environ.get("DEADLINE_REMINDER_LEAD_HOURS", "24"))
        ),
        late_alert_grace=timedelta(
            minutes=float(os.environ.get("LATE_ALERT_GRACE_MINUTES", "60"))
        ),
        weekly_reminder_cron=os.environ.get("WEEKLY_REMINDER_CRON", "0 10 * * fri"),
        timezone=os.environ.get("NOTIFICATION_TIMEZONE", "UTC"),
        concurrency=concurrency,
        stall_timeout=float(stall_timeout) if stall_timeout else None,
    )


# Required environment variables for production
# Format: (name, description, required_in_dev)
REQUIRED_ENV_VARS = [
    ("DATABASE_URL", "PostgreSQL connection string", True),
    ("JWT_SECRET", "Secret key for JWT tokens", True),
    ("SENDGRID_API_KEY", "SendGrid API key for notification emails", False),
]


def check_required_env_vars() -> tuple[bool, list[str]]:
    """
    Check that required environment variables are set.

    Returns:
        (all_ok, warnings): Tuple of success flag and list of warning messages
    """
    warnings = []
    errors = []
    in_dev = is_dev_mode()

    for name, description, required_in_dev in REQUIRED_ENV_VARS:
        if os.environ.get(name):
            continue
        if is_production():
            errors.append(f"  ✗ {name}: Not set ({description})")
        elif required_in_dev or not in_dev:
            warnings.append(f"  ⚠ {name}: Not set ({description})")

    if errors:
        for error in errors:
            print(error)
        return False, warnings

    return True, warnings
