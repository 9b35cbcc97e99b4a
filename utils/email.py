import logging
import mimetypes
import smtplib
from email.message import EmailMessage
from email.utils import formatdate
from pathlib import Path
from typing import List, Optional, Tuple

import config

logger = logging.getLogger(__name__)

Attachment = Tuple[str, Path]  # (filename shown to the recipient, file on disk)


def email_configured() -> bool:
    return bool(config.SMTP_HOST and config.SMTP_PORT and config.SMTP_USER and config.SMTP_PASSWORD)


def build_message(to: str, subject: str, html: str, attachments: Optional[List[Attachment]] = None) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = config.SMTP_FROM or config.SMTP_USER
    msg["To"] = to
    msg["Date"] = formatdate(localtime=True)
    msg.set_content("Your email client does not support HTML.")
    msg.add_alternative(html, subtype="html")

    for filename, path in attachments or []:
        content_type, _ = mimetypes.guess_type(filename)
        maintype, subtype = (content_type or "application/octet-stream").split("/", 1)
        msg.add_attachment(path.read_bytes(), maintype=maintype, subtype=subtype, filename=filename)
    return msg


def send_email(to: str, subject: str, html: str, attachments: Optional[List[Attachment]] = None) -> bool:
    """
    Sends an HTML email over SMTP with STARTTLS.

    Without SMTP credentials the send is skipped and logged; returns whether
    a message actually left. Transport errors propagate.
    """
    msg = build_message(to, subject, html, attachments)
    if not email_configured():
        logger.info("Email not configured, skipping send to %s (%s)", to, subject)
        return False

    with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT) as server:
        server.starttls()
        server.login(config.SMTP_USER, config.SMTP_PASSWORD)
        server.send_message(msg)
    logger.info("Email sent to %s", to)
    return True
