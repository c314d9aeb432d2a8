# notes_app/services/email.py
from typing import Optional

import requests

from notes_app.core.config import settings
from notes_app.core.logging import get_logger

logger = get_logger(__name__)

RESEND_URL = "https://api.resend.com/emails"


def send_email(*, to: str, subject: str, text: str, html: Optional[str] = None) -> bool:
    """Send through Resend. Without an API key the email is only logged (dev mode)."""
    if not settings.RESEND_API_KEY:
        logger.warning("RESEND_API_KEY not set, not sending email %r to %s", subject, to)
        return True

    payload = {"from": settings.EMAIL_FROM, "to": to, "subject": subject, "text": text}
    if html:
        payload["html"] = html
    try:
        res = requests.post(
            RESEND_URL,
            json=payload,
            headers={"Authorization": f"Bearer {settings.RESEND_API_KEY}"},
            timeout=10,
        )
    except requests.RequestException as e:
        logger.error("email to %s failed: %s", to, e)
        return False
    if not res.ok:
        logger.error("email to %s rejected: %s %s", to, res.status_code, res.text[:200])
        return False
    return True
