"""
MJML bodies for transactional mail.

Every message is a heading, a few paragraphs and an optional button, wrapped in the same
branded card by ``render``. User supplied text is HTML-escaped before it reaches the markup.
"""

from html import escape
from typing import Iterable, Optional

from .config import APP_NAME, FRONTEND_URL

BRAND = "#e11d48"
INK = "#0f172a"
BODY_TEXT = "#334155"
MUTED = "#64748b"
PAGE = "#f8fafc"
RULE = "#e2e8f0"
FONT_STACK = "-apple-system, BlinkMacSystemFont, 'Segoe UI', Arial, sans-serif"


def paragraph(text: str, muted: bool = False) -> str:
    if muted:
        return f'<mj-text font-size="13px" color="{MUTED}">{text}</mj-text>'
    return f"<mj-text>{text}</mj-text>"


def greeting(name: str) -> str:
    return paragraph(f"Hi {escape(name)},")


def button(url: str, label: str) -> str:
    return f"""
    <mj-section background-color="#ffffff" padding="0 40px 40px 40px">
      <mj-column>
        <mj-button href="{escape(url, quote=True)}" background-color="{BRAND}" color="#ffffff"
                   font-weight="600" border-radius="8px" font-size="16px">{label}</mj-button>
      </mj-column>
    </mj-section>"""


def render(heading: str, preview: str, blocks: Iterable[str], action: Optional[tuple[str, str]] = None) -> str:
    """Wrap ``blocks`` in the shared card; ``action`` is an optional (url, label) button"""
    body = "\n".join(blocks)
    cta = button(*action) if action else ""
    return f"""
<mjml>
  <mj-head>
    <mj-title>{escape(heading)}</mj-title>
    <mj-preview>{escape(preview)}</mj-preview>
    <mj-attributes>
      <mj-all font-family="{FONT_STACK}" />
      <mj-text font-size="16px" line-height="1.6" color="{BODY_TEXT}" />
    </mj-attributes>
  </mj-head>
  <mj-body background-color="{PAGE}">
    <mj-section background-color="#ffffff" padding="28px 20px 0 20px">
      <mj-column>
        <mj-text align="center" font-size="20px" font-weight="700" color="{BRAND}">{APP_NAME}</mj-text>
        <mj-divider border-color="{RULE}" border-width="1px" />
      </mj-column>
    </mj-section>
    <mj-section background-color="#ffffff" padding="0 40px 24px 40px">
      <mj-column>
        <mj-text font-size="24px" font-weight="600" color="{INK}">{escape(heading)}</mj-text>
        {body}
      </mj-column>
    </mj-section>
    {cta}
    <mj-section padding="24px 20px">
      <mj-column>
        <mj-text align="center" font-size="12px" color="{MUTED}">
          Sent by {APP_NAME} about your account.
        </mj-text>
      </mj-column>
    </mj-section>
  </mj-body>
</mjml>"""


def email_verification_template(user_name: str, verification_link: str) -> str:
    return render(
        "Verify Your Email",
        "Confirm your email address",
        [
            greeting(user_name),
            paragraph("Confirm your email address to start booking and managing appointments."),
            paragraph("The link is valid for 24 hours.", muted=True),
        ],
        (verification_link, "Verify Email"),
    )


def welcome_email_template(user_name: str, dashboard_url: str) -> str:
    return render(
        f"Welcome to {APP_NAME}!",
        "Your account is ready",
        [greeting(user_name), paragraph("Your email is confirmed. Everything is set up.")],
        (dashboard_url, "Go to Dashboard"),
    )


def password_reset_template(reset_link: str) -> str:
    return render(
        "Reset Your Password",
        "Choose a new password",
        [
            paragraph("Someone asked to reset the password on your account. The link works for 1 hour."),
            paragraph("If that wasn't you, ignore this message and nothing will change.", muted=True),
        ],
        (reset_link, "Reset Password"),
    )


def provider_approved_template(user_name: str, notes: Optional[str] = None) -> str:
    blocks = [greeting(user_name), paragraph("Your provider account is approved and your services are now live.")]
    if notes:
        blocks.append(paragraph(f"Reviewer notes: {escape(notes)}"))
    return render(
        "You're Approved!",
        "Your provider account has been approved",
        blocks,
        (f"{FRONTEND_URL}/provider/dashboard", "Open Provider Dashboard"),
    )


def provider_rejected_template(user_name: str, reason: str, notes: Optional[str] = None) -> str:
    readable_reason = escape(reason.replace("-", " "))
    blocks = [
        greeting(user_name),
        paragraph(f"We couldn't approve your provider application. Reason: <strong>{readable_reason}</strong>"),
    ]
    if notes:
        blocks.append(paragraph(escape(notes)))
    return render(
        "Application Update",
        "An update on your provider application",
        blocks,
        (f"{FRONTEND_URL}/provider/verification-rejected", "View Details"),
    )


def booking_update_template(recipient_name: str, title: str, message: str, booking_number: str) -> str:
    return render(
        title,
        message,
        [
            greeting(recipient_name),
            paragraph(escape(message)),
            paragraph(f"Booking #{escape(booking_number)}", muted=True),
        ],
    )
