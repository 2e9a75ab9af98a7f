"""RQ job definitions: customer notification emails."""

from __future__ import annotations

import logging
from email.message import EmailMessage

from quote_portal.db.models import Quote
from quote_portal.db.session import SessionLocal
from quote_portal.gmail.client import GmailClient
from quote_portal.notify.emails import quote_accepted_email, quote_link_email

logger = logging.getLogger(__name__)


def _deliver(message: EmailMessage, client: GmailClient | None = None) -> dict:
    client = client or GmailClient()
    if not client.is_configured():
        # Local/dev: nothing to send through, keep the content visible
        logger.warning(
            "Gmail not configured, email not sent\nTo: %s\nSubject: %s\n\n%s",
            message["To"],
            message["Subject"],
            message.get_body(preferencelist=("plain",)).get_content(),
        )
        return {"status": "skipped", "to": message["To"]}
    message_id = client.send_message(message)
    return {"status": "sent", "to": message["To"], "message_id": message_id}


def send_quote_link_email(quote_id: int) -> dict:
    """Background job: mail the customer their magic link."""
    db = SessionLocal()
    try:
        quote = db.get(Quote, quote_id)
        if quote is None:
            logger.warning("Quote %s vanished before its link email was sent", quote_id)
            return {"status": "missing", "quote_id": quote_id}
        return _deliver(quote_link_email(quote))
    finally:
        db.close()


def send_quote_accepted_email(quote_id: int) -> dict:
    """Background job: confirm an acceptance to the customer."""
    db = SessionLocal()
    try:
        quote = db.get(Quote, quote_id)
        if quote is None:
            logger.warning("Quote %s vanished before its acceptance email was sent", quote_id)
            return {"status": "missing", "quote_id": quote_id}
        return _deliver(quote_accepted_email(quote))
    finally:
        db.close()
