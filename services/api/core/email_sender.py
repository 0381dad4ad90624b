# services/api/core/email_sender.py
from __future__ import annotations
import aiosmtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

async def send_email(
    *,
    to_email: str,
    subject: str,
    body_html: str,
    smtp_host: str,
    smtp_port: int,
    smtp_user: str,
    smtp_password: str,
    from_email: str,
    from_name: str,
    cc_emails: Optional[List[str]] = None,
) -> bool:
    """
    Send an HTML email via SMTP (STARTTLS).
    Returns True on success, False on failure.
    """
    try:
        msg = MIMEMultipart()
        msg['From'] = f"{from_name} <{from_email}>"
        msg['To'] = to_email
        msg['Subject'] = subject

        clean_cc: List[str] = []
        if cc_emails:
            clean_cc = sorted(
                {
                    addr.strip()
                    for addr in cc_emails
                    if addr and addr.strip() and addr.strip().lower() != to_email.lower()
                }
            )
            if clean_cc:
                msg["Cc"] = ", ".join(clean_cc)

        msg.attach(MIMEText(body_html, 'html'))

        await aiosmtplib.send(
            msg,
            hostname=smtp_host,
            port=smtp_port,
            username=smtp_user or None,
            password=smtp_password or None,
            start_tls=True,
            recipients=[to_email] + clean_cc,
        )

        logger.info(f"✓ Email sent to {to_email}")
        return True

    except Exception as e:
        logger.error(f"✗ Email send failed to {to_email}: {e}")
        return False
