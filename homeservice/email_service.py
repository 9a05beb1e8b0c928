"""
Outbound mail: MJML from ``email_templates`` is compiled with mjml-python and handed to Resend.
Each ``send_*`` helper raises ``EmailDeliveryError``; callers log it and carry on, since no
account or booking action waits on mail.
"""

import logging
from typing import Optional

import resend
from mjml import mjml_to_html

from . import email_templates as templates
from .config import APP_NAME, EMAIL_FROM_ADDRESS, FRONTEND_URL, RESEND_API_KEY

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


class EmailDeliveryError(Exception):
    """Mail could not be rendered or Resend refused it"""


def render_html(mjml_source: str) -> str:
    result = mjml_to_html(mjml_source)
    errors = result.get("errors") if isinstance(result, dict) else getattr(result, "errors", None)
    if errors:
        logger.warning(f"⚠️ MJML reported {len(errors)} issue(s): {errors}")
    html = result.get("html") if isinstance(result, dict) else getattr(result, "html", None)
    if not html:
        raise EmailDeliveryError("MJML produced no HTML")
    return html


async def send_email(to: str, subject: str, mjml_source: str) -> dict:
    if not RESEND_API_KEY:
        raise EmailDeliveryError("RESEND_API_KEY is not set")

    message = {
        "from": EMAIL_FROM_ADDRESS,
        "to": [to],
        "subject": subject,
        "html": render_html(mjml_source),
    }
    try:
        receipt = resend.Emails.send(message)
    except Exception as e:
        raise EmailDeliveryError(f"Resend rejected '{subject}': {e}") from e

    logger.info(f"📧 '{subject}' accepted by Resend ({receipt.get('id', '?')})")
    return receipt


async def send_verification_email(to: str, user_name: str, token: str) -> dict:
    link = f"{FRONTEND_URL}/verify-email?token={token}"
    return await send_email(to, f"Verify Your Email - {APP_NAME}", templates.email_verification_template(user_name, link))


async def send_welcome_email(to: str, user_name: str, dashboard_path: str = "/") -> dict:
    return await send_email(
        to, f"Welcome to {APP_NAME}", templates.welcome_email_template(user_name, f"{FRONTEND_URL}{dashboard_path}")
    )


async def send_password_reset_email(to: str, reset_link: str) -> dict:
    return await send_email(to, f"Reset Your Password - {APP_NAME}", templates.password_reset_template(reset_link))


async def send_provider_approved_email(to: str, user_name: str, notes: Optional[str] = None) -> dict:
    return await send_email(
        to, f"Your {APP_NAME} provider account is approved", templates.provider_approved_template(user_name, notes)
    )


async def send_provider_rejected_email(to: str, user_name: str, reason: str, notes: Optional[str] = None) -> dict:
    return await send_email(
        to,
        f"Update on your {APP_NAME} provider application",
        templates.provider_rejected_template(user_name, reason, notes),
    )


async def send_booking_update_email(
    to: str, recipient_name: str, title: str, message: str, booking_number: str
) -> dict:
    """Mail copy of a booking notification"""
    return await send_email(
        to,
        f"{title} - #{booking_number}",
        templates.booking_update_template(recipient_name, title, message, booking_number),
    )
