"""SendGrid email delivery channel."""

import os
import re
from dataclasses import dataclass

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail


SENDGRID_API_KEY = os.environ.get("SENDGRID_API_KEY")
FROM_EMAIL = os.environ.get("FROM_EMAIL", "noreply@coursemanagement.example")
FROM_NAME = os.environ.get("FROM_NAME", "Course Management System")

# Regex to match markdown links: [text](url)
MARKDOWN_LINK_PATTERN = re.compile(r"\[([^\]]+)\]\(([^)]+)\)")
# Regex to match markdown bold: **text**
MARKDOWN_BOLD_PATTERN = re.compile(r"\*\*([^*]+)\*\*")

_client: SendGridAPIClient | None = None


@dataclass
class EmailMessage:
    """Email message data."""

    to_emails: list[str]
    subject: str
    body: str


def markdown_to_html(text: str) -> str:
    """
    Convert markdown links and bold text to HTML and wrap in basic HTML structure.

    Converts [text](url) to <a href="url">text</a>, **text** to <strong>,
    and preserves line breaks.
    """
    html_body = MARKDOWN_LINK_PATTERN.sub(r'<a href="\2">\1</a>', text)
    html_body = MARKDOWN_BOLD_PATTERN.sub(r"<strong>\1</strong>", html_body)
    html_body = html_body.replace("\n", "<br>\n")

    return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.5; color: #333;">
{html_body}
</body>
</html>"""


def markdown_to_plain_text(text: str) -> str:
    """
    Convert markdown links to "text (url)" and drop bold markers.
    """
    text = MARKDOWN_LINK_PATTERN.sub(r"\1 (\2)", text)
    return MARKDOWN_BOLD_PATTERN.sub(r"\1", text)


def _get_sendgrid_client() -> SendGridAPIClient | None:
    """Get or create SendGrid client singleton."""
    global _client
    if _client is None and SENDGRID_API_KEY:
        _client = SendGridAPIClient(SENDGRID_API_KEY)
    return _client


def send_email(message: EmailMessage) -> bool:
    """
    Send an email via SendGrid.

    The body can contain markdown-style links and bold text, which are
    converted for the HTML part. Both plain text and HTML versions are sent.
    With several recipients each gets their own copy (no shared To: line).

    Returns:
        True if sent successfully, False otherwise
    """
    client = _get_sendgrid_client()
    if not client:
        print("Warning: SendGrid not configured (SENDGRID_API_KEY not set)")
        return False

    try:
        mail = Mail(
            from_email=(FROM_EMAIL, FROM_NAME),
            to_emails=message.to_emails,
            subject=message.subject,
            plain_text_content=markdown_to_plain_text(message.body),
            html_content=markdown_to_html(message.body),
            is_multiple=len(message.to_emails) > 1,
        )

        response = client.send(mail)
        return response.status_code in (200, 201, 202)

    except Exception as e:
        print(f"Failed to send email to {', '.join(message.to_emails)}: {e}")
        return False
