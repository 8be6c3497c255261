"""Email sending utilities for magic link authentication."""
import html
import logging
import smtplib
from datetime import datetime
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Optional, Tuple
from .. import config
from ..models.records import MagicLinkPurpose, utcnow

logger = logging.getLogger(__name__)

DELIVERY_SENT = "sent"
DELIVERY_LOGGED = "logged"
DELIVERY_FAILED = "failed"


def _subject(purpose: MagicLinkPurpose) -> str:
    if purpose == "register":
        return "Complete your Rakamin registration"
    return "Your Rakamin sign-in link"


def _expire_duration(expires_at: datetime, now: Optional[datetime] = None) -> str:
    remaining = (expires_at - (now or utcnow())).total_seconds()
    minutes = max(1, round(remaining / 60))
    return f"{minutes} minute" if minutes == 1 else f"{minutes} minutes"


def render_magic_link_email(
    email: str,
    magic_link_url: str,
    expires_at: datetime,
    purpose: MagicLinkPurpose,
) -> Tuple[str, str, str]:
    """Return (subject, html_body, text_body)."""
    subject = _subject(purpose)
    duration = _expire_duration(expires_at)
    action = "complete your registration" if purpose == "register" else "sign in"
    safe_url = html.escape(magic_link_url, quote=True)

    html_body = f"""<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="UTF-8" />
    <title>{html.escape(subject)}</title>
  </head>
  <body style="font-family: -apple-system, 'Segoe UI', sans-serif; background: #f3f4f6; padding: 32px;">
    <div style="max-width: 600px; margin: 0 auto; background: #ffffff; border-radius: 16px; padding: 36px 40px;">
      <h1 style="font-size: 24px; color: #0f172a;">{html.escape(subject)}</h1>
      <p>Hi {html.escape(email)},</p>
      <p>Use the button below to {action} on Rakamin.</p>
      <p style="color: #ef4444; font-weight: 500;">This link can only be used for {duration}.</p>
      <a href="{safe_url}" style="display: inline-block; margin: 24px 0; padding: 14px 28px; border-radius: 12px; background: #01959f; color: #ffffff; text-decoration: none; font-weight: 600;">Continue to Rakamin</a>
      <p>If the button does not work, copy this URL into your browser:</p>
      <p style="color: #01959f;">{safe_url}</p>
      <p>If you did not request this link, you can ignore this email.</p>
    </div>
  </body>
</html>
"""

    text_body = "\n".join([
        f"Hi {email},",
        "",
        f"Open the link below to {action} on Rakamin:",
        magic_link_url,
        "",
        f"The link is valid until {expires_at.strftime('%Y-%m-%d %H:%M UTC')}.",
        "If you did not request this link, you can ignore this email.",
    ])

    return subject, html_body, text_body


def smtp_configured() -> bool:
    return bool(config.SMTP_HOST and config.SMTP_PORT and config.SMTP_USER and config.SMTP_PASSWORD)


def send_magic_link_email(
    to_email: str,
    magic_link_url: str,
    expires_at: datetime,
    purpose: MagicLinkPurpose,
) -> str:
    """Send the magic link email and return the delivery status.

    Without a complete SMTP configuration the message is only logged and
    ``DELIVERY_LOGGED`` is returned. SMTP failures raise.
    """
    subject, html_body, text_body = render_magic_link_email(to_email, magic_link_url, expires_at, purpose)

    if not smtp_configured():
        logger.warning("SMTP env not fully set, logging the magic link email instead of sending it")
        logger.info(f"Magic link email to {to_email} ({subject}): {magic_link_url}")
        return DELIVERY_LOGGED

    msg = MIMEMultipart("alternative")
    msg["From"] = config.SMTP_FROM_EMAIL
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.attach(MIMEText(text_body, "plain"))
    msg.attach(MIMEText(html_body, "html"))

    try:
        if config.SMTP_PORT == 465:
            server = smtplib.SMTP_SSL(config.SMTP_HOST, config.SMTP_PORT, timeout=config.SMTP_TIMEOUT_SECONDS)
        else:
            server = smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=config.SMTP_TIMEOUT_SECONDS)
            if config.SMTP_USE_TLS:
                server.starttls()

        try:
            server.login(config.SMTP_USER, config.SMTP_PASSWORD)
            server.send_message(msg)
        finally:
            server.quit()
    except smtplib.SMTPAuthenticationError as e:
        logger.error(f"SMTP authentication failed for {config.SMTP_USER}: {e}")
        raise
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        raise

    return DELIVERY_SENT
