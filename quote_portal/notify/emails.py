"""Customer-facing quote emails."""

from __future__ import annotations

from email.message import EmailMessage
from email.utils import formataddr
from html import escape

from quote_portal.core.config import Settings, get_settings
from quote_portal.db.models import Quote
from quote_portal.quotes.lifecycle import as_utc


def _base_message(settings: Settings, quote: Quote, subject: str) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = formataddr((settings.MAIL_FROM_NAME, settings.MAIL_FROM))
    msg["To"] = formataddr((quote.customer_name, quote.customer_email))
    msg["Subject"] = subject
    return msg


def quote_link_email(quote: Quote, settings: Settings | None = None) -> EmailMessage:
    settings = settings or get_settings()
    link = settings.quote_link(quote.magic_token)
    valid_until = as_utc(quote.valid_until).strftime("%B %d, %Y")
    msg = _base_message(settings, quote, f"Your quote {quote.quote_number}: {quote.title}")
    msg.set_content(
        f"Hi {quote.customer_name},\n\n"
        f"Your quote {quote.quote_number} for \"{quote.title}\" is ready.\n"
        f"Total: ${quote.total:,.2f}\n"
        f"Valid until: {valid_until}\n\n"
        f"View, choose colors and respond here:\n{link}\n\n"
        "Anyone with this link can view the quote, so please don't forward it.\n"
    )
    msg.add_alternative(
        f"<p>Hi {escape(quote.customer_name)},</p>"
        f"<p>Your quote <strong>{quote.quote_number}</strong> for \"{escape(quote.title)}\" is ready.</p>"
        f"<p>Total: <strong>${quote.total:,.2f}</strong><br>Valid until: {valid_until}</p>"
        f"<p><a href=\"{link}\">View your quote</a></p>",
        subtype="html",
    )
    return msg


def quote_accepted_email(quote: Quote, settings: Settings | None = None) -> EmailMessage:
    settings = settings or get_settings()
    msg = _base_message(settings, quote, f"Quote Accepted - {quote.quote_number}")
    msg.set_content(
        f"Thank you, {quote.customer_name}!\n\n"
        f"Your quote {quote.quote_number} has been accepted. "
        "We'll be in touch shortly to discuss the next steps.\n\n"
        "This is an automated message. Please do not reply to this email.\n"
    )
    return msg
