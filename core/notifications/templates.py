"""Email template loading and rendering."""

from pathlib import Path

import yaml


TEMPLATES_PATH = Path(__file__).parent / "messages.yaml"

_templates: dict | None = None


def load_templates() -> dict:
    """
    Load message templates from YAML file.

    Caches templates after first load.
    """
    global _templates
    if _templates is not None:
        return _templates

    with open(TEMPLATES_PATH) as f:
        _templates = yaml.safe_load(f)

    return _templates


def render_message(template: str, context: dict) -> str:
    """
    Render a message template with context variables.

    Raises:
        KeyError: If a required variable is missing from context
    """
    return template.format(**context)


def get_email(message_type: str, context: dict) -> tuple[str, str]:
    """
    Render the subject and body for a message type.

    Args:
        message_type: e.g., "deadline_reminder", "late_submission_alert"
        context: Variables to substitute

    Returns:
        (subject, body) tuple

    Raises:
        KeyError: Unknown message type or missing context variable
    """
    templates = load_templates()[message_type]
    return (
        render_message(templates["email_subject"], context),
        render_message(templates["email_body"], context),
    )
