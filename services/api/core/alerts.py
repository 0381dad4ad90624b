# services/api/core/alerts.py
from __future__ import annotations

import html
import json
import logging
from typing import Any, Dict, List

from core.email_sender import send_email

logger = logging.getLogger(__name__)


class SyncAlerter:
    """
    Mails recipients when a sheet sync fails.
    TO = first recipient, CC = the rest. No recipients -> no-op.
    """

    def __init__(self, settings) -> None:
        self.settings = settings

    @property
    def recipients(self) -> List[str]:
        return self.settings.get_alert_recipients()

    async def sync_failed(self, *, error: str, context: Dict[str, Any]) -> bool:
        recipients = self.recipients
        if not recipients:
            return False

        s = self.settings
        body_html = (
            "<p><b>Sheet sync failed</b></p>"
            f"<p><b>Error:</b> {html.escape(error)}</p>"
            "<p><b>Context</b></p>"
            f"<pre>{html.escape(json.dumps(context, indent=2, default=str))}</pre>"
        )
        ok = await send_email(
            to_email=recipients[0],
            subject="ALERT: Sheet sync failed",
            body_html=body_html,
            smtp_host=s.smtp_host,
            smtp_port=s.smtp_port,
            smtp_user=s.smtp_user,
            smtp_password=s.smtp_password,
            from_email=s.smtp_from_email or s.smtp_user,
            from_name=s.smtp_from_name or "Sheet Editor",
            cc_emails=recipients[1:] or None,
        )
        if not ok:
            logger.error("Sync alert email send returned False")
        return ok
