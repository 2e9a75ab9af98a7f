"""Token-authenticated operations behind the customer quote page.

Every operation resolves the quote by magic token before looking at the
payload, so an unknown token is always a not-found, never a validation
error. Writes only ever touch the quote that owns the token.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from pydantic import ValidationError
from sqlalchemy.orm import Session

from quote_portal.core.errors import ConflictError, InputValidationError, NotFoundError
from quote_portal.db.crud import quotes as quote_store
from quote_portal.db.models import Quote, QuoteLineItem
from quote_portal.quotes import lifecycle
from quote_portal.schemas.dto import ColorsIn, CustomerLineItemIn, RespondIn

logger = logging.getLogger(__name__)


def resolve(db: Session, token: str, now: datetime) -> Quote:
    quote = quote_store.get_quote_by_token(db, token) if token else None
    if quote is None:
        # Same answer whether the token never existed or its quote was deleted
        raise NotFoundError("Quote", "Quote not found or expired")
    if lifecycle.apply_expiry(quote, now):
        logger.info("Quote %s expired on access", quote.quote_number, extra={"quote_id": quote.id})
    return quote


def _parse(model: type, payload: Any, message: str):
    try:
        return model.model_validate(payload if payload is not None else {})
    except ValidationError as exc:
        raise InputValidationError.from_pydantic(exc, message) from exc


def fetch_by_token(db: Session, token: str, now: datetime) -> Quote:
    quote = resolve(db, token, now)
    if lifecycle.mark_viewed(quote, now):
        logger.info("Quote %s viewed by customer", quote.quote_number, extra={"quote_id": quote.id})
    db.commit()
    return quote


def submit_response(db: Session, token: str, payload: Any, now: datetime) -> Quote:
    quote = resolve(db, token, now)
    # Persist a lazily-detected expiry even when the response is rejected
    db.commit()
    body: RespondIn = _parse(RespondIn, payload, "Invalid response. Must be 'accepted' or 'declined'")
    lifecycle.check_response(quote, body.response)
    open_states = [state.value for state in lifecycle.responding_states(body.response)]
    if not quote_store.save_response(db, quote, body.response.value, body.notes, now, open_states):
        # Another request answered between our read and this write
        db.rollback()
        raise ConflictError("You have already responded to this quote", {"quoteId": quote.id})
    db.commit()
    db.refresh(quote)
    logger.info(
        "Quote %s %s by customer",
        quote.quote_number,
        body.response.value,
        extra={"quote_id": quote.id, "status": quote.status},
    )
    return quote


def submit_colors(db: Session, token: str, payload: Any, now: datetime) -> Quote:
    quote = resolve(db, token, now)
    db.commit()
    body: ColorsIn = _parse(ColorsIn, payload, "Invalid color data")
    lifecycle.merge_colors(quote, body.paint_colors)
    db.commit()
    return quote


def add_customer_line_item(db: Session, token: str, payload: Any, now: datetime) -> QuoteLineItem:
    quote = resolve(db, token, now)
    db.commit()
    body: CustomerLineItemIn = _parse(CustomerLineItemIn, payload, "Invalid line item data")
    lifecycle.ensure_open(quote)
    item = quote_store.add_line_item(db, quote, body.model_dump(), created_by_customer=True)
    db.commit()
    logger.info(
        "Customer added line item %s to quote %s", item.id, quote.quote_number, extra={"quote_id": quote.id}
    )
    return item
