"""Quote status machine.

States and allowed moves::

    draft -> sent -> viewed -> accepted | declined
    any non-terminal -> expired   (when valid_until has passed)

Accepted, declined and expired are terminal. Every status write on a
``Quote`` goes through this module; the functions mutate the ORM object and
leave committing to the caller. Customer responses are the exception: the
store writes them with a guarded UPDATE after ``check_response`` passes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Mapping

from quote_portal.core.errors import ConflictError, InvalidTransition
from quote_portal.db.models import Quote


class QuoteStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    EXPIRED = "expired"


class ResponseChoice(str, Enum):
    ACCEPTED = "accepted"
    DECLINED = "declined"


TERMINAL = frozenset({QuoteStatus.ACCEPTED, QuoteStatus.DECLINED, QuoteStatus.EXPIRED})

TRANSITIONS: dict[QuoteStatus, frozenset[QuoteStatus]] = {
    # A customer may open the link before staff flag the quote as sent
    QuoteStatus.DRAFT: frozenset({QuoteStatus.SENT, QuoteStatus.VIEWED, QuoteStatus.EXPIRED}),
    QuoteStatus.SENT: frozenset(
        {QuoteStatus.VIEWED, QuoteStatus.ACCEPTED, QuoteStatus.DECLINED, QuoteStatus.EXPIRED}
    ),
    QuoteStatus.VIEWED: frozenset({QuoteStatus.ACCEPTED, QuoteStatus.DECLINED, QuoteStatus.EXPIRED}),
    QuoteStatus.ACCEPTED: frozenset(),
    QuoteStatus.DECLINED: frozenset(),
    QuoteStatus.EXPIRED: frozenset(),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def status_of(quote: Quote) -> QuoteStatus:
    return QuoteStatus(quote.status)


def is_terminal(quote: Quote) -> bool:
    return status_of(quote) in TERMINAL


def can_transition(current: QuoteStatus, target: QuoteStatus) -> bool:
    return target in TRANSITIONS[current]


def transition(quote: Quote, target: QuoteStatus) -> None:
    current = status_of(quote)
    if not can_transition(current, target):
        raise InvalidTransition(current.value, target.value)
    quote.status = target.value


def is_past_deadline(quote: Quote, now: datetime) -> bool:
    return as_utc(quote.valid_until) < as_utc(now)


def effective_status(quote: Quote, now: datetime) -> QuoteStatus:
    current = status_of(quote)
    if current not in TERMINAL and is_past_deadline(quote, now):
        return QuoteStatus.EXPIRED
    return current


def apply_expiry(quote: Quote, now: datetime) -> bool:
    """Move an overdue, still-open quote to expired. Returns True if it moved."""
    if effective_status(quote, now) is QuoteStatus.EXPIRED and not is_terminal(quote):
        transition(quote, QuoteStatus.EXPIRED)
        return True
    return False


def ensure_open(quote: Quote) -> None:
    if is_terminal(quote):
        raise ConflictError(
            "This quote is no longer open for changes", {"status": quote.status}
        )


def mark_sent(quote: Quote, now: datetime) -> None:
    transition(quote, QuoteStatus.SENT)
    quote.sent_at = now


def mark_viewed(quote: Quote, now: datetime) -> bool:
    """Stamp the first customer view.

    Only the first call changes anything; later fetches keep the original
    ``viewed_at`` and never regress the status.
    """
    if quote.viewed_at is not None or is_terminal(quote):
        return False
    quote.viewed_at = now
    if status_of(quote) in (QuoteStatus.DRAFT, QuoteStatus.SENT):
        transition(quote, QuoteStatus.VIEWED)
    return True


def responding_states(response: ResponseChoice) -> frozenset[QuoteStatus]:
    """States a quote may be in for ``response`` to be recorded."""
    target = QuoteStatus(response.value)
    return frozenset(state for state, targets in TRANSITIONS.items() if target in targets)


def check_response(quote: Quote, response: ResponseChoice) -> None:
    if is_terminal(quote):
        raise ConflictError(
            "You have already responded to this quote"
            if quote.responded_at is not None
            else "This quote is no longer open for changes",
            {"status": quote.status},
        )
    if not can_transition(status_of(quote), QuoteStatus(response.value)):
        raise InvalidTransition(quote.status, response.value)


def merge_colors(quote: Quote, colors: Mapping[str, str]) -> dict[str, str]:
    ensure_open(quote)
    merged = {**(quote.paint_colors or {}), **colors}
    # Reassign so the JSON column is flagged dirty
    quote.paint_colors = merged
    return merged
