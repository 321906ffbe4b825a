"""Transactional e-mail through the Resend HTTP API.

Delivery is best effort: failures are logged and reported as ``None`` so the
operation that triggered the e-mail is never rolled back.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

import httpx
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..core.config import settings

logger = logging.getLogger(__name__)

SUBJECT_PREVIEW = 50


@lru_cache(maxsize=1)
def _environment() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(settings.templates_dir / "emails")),
        autoescape=select_autoescape(["html"]),
    )


def render_email(template: str, context: Dict[str, Any]) -> str:
    return _environment().get_template(template).render(app_name=settings.APP_NAME, **context)


def resolve_recipient(address: str) -> str:
    """Apply ``MAIL_REDIRECTS`` so sandbox addresses reach a real mailbox."""

    cleaned = (address or "").strip().lower()
    return settings.MAIL_REDIRECTS.get(cleaned, cleaned)


def reservation_subject(justification: str) -> str:
    text = (justification or "").strip()
    if len(text) > SUBJECT_PREVIEW:
        text = text[:SUBJECT_PREVIEW] + "..."
    return f"Reservation confirmed - {text}"


def equipment_list(needs_tv: bool, needs_sound: bool, needs_mic: bool, mic_quantity: int = 0) -> List[str]:
    items: List[str] = []
    if needs_tv:
        items.append("TV")
    if needs_sound:
        items.append("Sound")
    if needs_mic:
        items.append(f"Microphone ({mic_quantity or 1})")
    return items


def reservation_email_context(reservation) -> Dict[str, Any]:
    return {
        "to": reservation.teacher_email,
        "teacher_name": reservation.teacher_name,
        "date": reservation.date,
        "time_slot": reservation.time_slot,
        "quantity": reservation.quantity_requested,
        "classroom": reservation.classroom,
        "justification": reservation.justification,
        "equipment": equipment_list(
            reservation.needs_tv,
            reservation.needs_sound,
            reservation.needs_mic,
            reservation.mic_quantity,
        ),
    }


async def send_email(to: str, subject: str, html: str) -> Optional[str]:
    """POST one message to Resend; returns the provider id or ``None`` on failure."""

    if not settings.RESEND_API_KEY:
        logger.warning("mail.not_configured", extra={"extra_data": {"to": to}})
        return None
    recipient = resolve_recipient(to)
    body = {"from": settings.MAIL_FROM, "to": [recipient], "subject": subject, "html": html}
    headers = {"Authorization": f"Bearer {settings.RESEND_API_KEY}"}
    try:
        async with httpx.AsyncClient(timeout=httpx.Timeout(10.0)) as client:
            response = await client.post(settings.RESEND_API_URL, json=body, headers=headers)
    except httpx.HTTPError as exc:
        logger.warning("mail.transport_failed", extra={"extra_data": {"to": recipient, "error": str(exc)}})
        return None
    if response.status_code >= 400:
        logger.warning(
            "mail.rejected",
            extra={"extra_data": {"to": recipient, "status": response.status_code, "body": response.text[:500]}},
        )
        return None
    try:
        message_id = (response.json() or {}).get("id")
    except ValueError:
        logger.warning(
            "mail.unexpected_response",
            extra={"extra_data": {"to": recipient, "status": response.status_code, "body": response.text[:500]}},
        )
        return None
    logger.info("mail.sent", extra={"extra_data": {"to": recipient, "id": message_id}})
    return message_id


async def send_reservation_confirmation(context: Dict[str, Any]) -> Optional[str]:
    """Render and send the confirmation for one reservation (see ``reservation_email_context``)."""

    if not context.get("to"):
        logger.warning("mail.no_recipient", extra={"extra_data": {"template": "reservation_confirmation"}})
        return None
    html = render_email("reservation_confirmation.html", context)
    return await send_email(context["to"], reservation_subject(context["justification"]), html)
