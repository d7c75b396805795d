"""Transactional email via the Resend API.

All senders are fire-and-forget: they run as post-response background tasks
and log failures instead of raising.
"""

import html
import logging

import httpx

from resolvenow.core.config import settings

logger = logging.getLogger(__name__)

RESEND_SEND_URL = "https://api.resend.com/emails"
RESEND_TIMEOUT_SECONDS = 10.0


async def send_email(to: str, subject: str, body_html: str) -> bool:
    """Send one email. Returns False when disabled or on failure."""
    if not settings.RESEND_API_KEY:
        logger.info("Email disabled (no RESEND_API_KEY), skipping '%s'", subject)
        return False

    payload = {
        "from": settings.EMAIL_FROM,
        "to": [to],
        "subject": subject,
        "html": body_html,
    }
    headers = {"Authorization": f"Bearer {settings.RESEND_API_KEY}"}
    try:
        async with httpx.AsyncClient(timeout=RESEND_TIMEOUT_SECONDS) as client:
            response = await client.post(RESEND_SEND_URL, json=payload, headers=headers)
            response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning("Email send failed for '%s': %s", subject, exc)
        return False
    return True


def _case_link(case_id: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/cases/{case_id}"


# =============================================================================
# Templates
# =============================================================================

async def send_welcome(to: str, full_name: str) -> bool:
    body = (
        f"<p>Hello {html.escape(full_name)},</p>"
        "<p>Your ResolveNOW account is ready. You can now submit and track disputes.</p>"
    )
    return await send_email(to, "Welcome to ResolveNOW", body)


async def send_case_submitted(to: str, full_name: str, case_id: str, title: str) -> bool:
    body = (
        f"<p>Hello {html.escape(full_name)},</p>"
        f"<p>Your case <strong>{html.escape(title)}</strong> has been submitted "
        "and is pending review.</p>"
        f'<p><a href="{_case_link(case_id)}">View case</a></p>'
    )
    return await send_email(to, "Case submitted", body)


async def send_status_changed(
    to: str,
    full_name: str,
    case_id: str,
    title: str,
    new_status: str,
    resolution: str | None = None,
) -> bool:
    body = (
        f"<p>Hello {html.escape(full_name)},</p>"
        f"<p>The status of your case <strong>{html.escape(title)}</strong> "
        f"is now <strong>{html.escape(new_status)}</strong>.</p>"
    )
    if resolution:
        body += f"<p>Resolution: {html.escape(resolution)}</p>"
    body += f'<p><a href="{_case_link(case_id)}">View case</a></p>'
    return await send_email(to, f"Case update: {new_status}", body)
