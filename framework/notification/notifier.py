from __future__ import annotations

from typing import Optional, List, Dict, Tuple
from email.message import EmailMessage

from framework.config import settings
from framework.logging.logger import get_logger

logger = get_logger("notifier")


def render_amend_email(orcid: str, section: str, items: List[Dict], source_name: Optional[str] = None) -> Tuple[str, str]:
    """Subject and plain-text body listing each changed item."""
    subject = f"[{settings.APP_NAME}] Your record has been amended"
    lines = [
        f"{source_name or 'A trusted organization'} has updated your record.",
        "",
        f"- iD: {settings.ORCID_BASE_URI}/{orcid}",
        f"- section: {section}",
    ]
    lines.extend(
        f"  * {item.get('action_type')} {item.get('item_type')} "
        f"{item.get('item_name')!r} (put code {item.get('put_code')})"
        for item in items
    )
    return subject, "\n".join(lines) + "\n"


def smtp_configured() -> bool:
    return bool(settings.SMTP_HOST and settings.SMTP_USER and settings.SMTP_PASSWORD)


async def send_email(email_to: str, subject: str, body: str) -> bool:
    """SMTP delivery with STARTTLS; False (logged) when the server refuses."""
    import aiosmtplib

    msg = EmailMessage()
    msg["From"] = settings.SMTP_USER
    msg["To"] = email_to
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        await aiosmtplib.send(
            msg,
            hostname=settings.SMTP_HOST,
            port=settings.SMTP_PORT or 587,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            start_tls=True,
        )
    except (aiosmtplib.SMTPException, OSError) as e:
        logger.warning(f"SMTP delivery to={email_to} failed: {e}")
        return False
    return True


async def notify_record_amended(
    email_to: Optional[str],
    orcid: str,
    section: str,
    items: List[Dict],
    source_name: Optional[str] = None,
) -> bool:
    """
    Tell a researcher that a trusted party changed their record.
    - email_to empty: do not send, return False
    - NOTIFICATION_DRIVER=mock: log only, return True
    - NOTIFICATION_DRIVER=email: send via SMTP
    """
    if not email_to:
        return False

    driver = (settings.NOTIFICATION_DRIVER or "mock").lower()
    if driver == "mock":
        logger.info(
            f"[MOCK] amend email to={email_to} orcid={orcid} "
            f"section={section} items={len(items)} source={source_name!r}"
        )
        return True
    if driver != "email":
        logger.warning(f"Unsupported NOTIFICATION_DRIVER={settings.NOTIFICATION_DRIVER!r}, skip sending")
        return False
    if not smtp_configured():
        logger.warning("SMTP_HOST/SMTP_USER/SMTP_PASSWORD missing, skip sending")
        return False

    subject, body = render_amend_email(orcid, section, items, source_name)
    sent = await send_email(email_to, subject, body)
    if sent:
        logger.info(f"Amend email sent to={email_to} orcid={orcid}")
    return sent
