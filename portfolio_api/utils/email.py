import smtplib
import logging
from html import escape
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from typing import Any, Dict, Optional

from fastapi.concurrency import run_in_threadpool

from portfolio_api.core.config import Settings

logger = logging.getLogger(__name__)


def send_email(settings: Settings, to_email: str, subject: str, html_content: str) -> bool:
    try:
        message = MIMEMultipart()
        message["From"] = settings.EMAIL_FROM
        message["To"] = to_email
        message["Subject"] = subject

        message.attach(MIMEText(html_content, "html"))

        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
            server.starttls()
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            server.sendmail(settings.EMAIL_FROM, to_email, message.as_string())

        return True
    except Exception as e:
        logger.error(f"Error sending email to {to_email}: {e}")
        return False


def reply_subject(subject: Optional[str]) -> str:
    return f"Re: {subject or 'Your Message'}"


def build_reply_html(to_name: Optional[str], original_message: str, reply_message: str) -> str:
    greeting = escape(to_name) if to_name else "there"
    reply_html = escape(reply_message).replace("\n", "<br>")
    original_html = escape(original_message).replace("\n", "<br>")
    return f"""
    <html>
    <body>
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <p>Hi {greeting},</p>
            <div style="margin: 20px 0; line-height: 1.5;">
                {reply_html}
            </div>
            <div style="border-left: 3px solid #ccc; padding-left: 12px; color: #666; margin-top: 30px;">
                <p style="margin: 0 0 8px 0;"><strong>Your original message:</strong></p>
                <p style="margin: 0;">{original_html}</p>
            </div>
            <p style="margin-top: 30px;">Thanks for reaching out!</p>
        </div>
    </body>
    </html>
    """


async def send_reply_email(
    settings: Settings,
    to_email: str,
    to_name: Optional[str],
    subject: Optional[str],
    original_message: str,
    reply_message: str,
) -> Dict[str, Any]:
    """
    Send a reply to a contact-form sender.

    Returns {"sent": bool, "demo_mode": bool, "details": {...}}. With SMTP
    unconfigured nothing is sent and demo_mode is True.
    """
    details = {
        "to": f"{to_name} <{to_email}>" if to_name else to_email,
        "subject": reply_subject(subject),
        "body": reply_message,
    }

    if not settings.smtp_configured:
        logger.info(f"SMTP not configured, reply to {to_email} not sent (demo mode)")
        return {"sent": False, "demo_mode": True, "details": details}

    html_content = build_reply_html(to_name, original_message, reply_message)
    # smtplib blocks; keep it off the event loop
    sent = await run_in_threadpool(send_email, settings, to_email, details["subject"], html_content)
    return {"sent": sent, "demo_mode": False, "details": details}
