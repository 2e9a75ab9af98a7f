"""Staff quote management. All routes require the X-API-Key header."""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from quote_portal.core.security import api_key_auth
from quote_portal.db.crud import quotes as quote_store
from quote_portal.db.session import get_db
from quote_portal.quotes import lifecycle
from quote_portal.schemas.dto import (
    ImageIn,
    ImageOut,
    LineItemIn,
    LineItemOut,
    LineItemUpdate,
    QuoteCreate,
    QuoteDetailOut,
    QuoteOut,
    QuoteUpdate,
)
from quote_portal.workers.jobs import send_quote_link_email
from quote_portal.workers.queue import enqueue

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(api_key_auth)])


def _load(db: Session, quote_id: int):
    quote = quote_store.get_quote_or_404(db, quote_id)
    if lifecycle.apply_expiry(quote, lifecycle.utcnow()):
        db.commit()
    return quote


@router.get("", response_model=list[QuoteOut])
def list_quotes(db: Session = Depends(get_db)) -> list[QuoteOut]:
    now = lifecycle.utcnow()
    quotes = quote_store.list_quotes(db)
    if any([lifecycle.apply_expiry(q, now) for q in quotes]):
        db.commit()
    return [QuoteOut.model_validate(q) for q in quotes]


@router.post("", response_model=QuoteDetailOut, status_code=201)
def create_quote(body: QuoteCreate, db: Session = Depends(get_db)) -> QuoteDetailOut:
    quote = quote_store.create_quote(db, body.model_dump(), lifecycle.utcnow())
    db.commit()
    logger.info("Created quote %s", quote.quote_number, extra={"quote_id": quote.id})
    return QuoteDetailOut.model_validate(quote)


@router.get("/{quote_id}", response_model=QuoteDetailOut)
def get_quote(quote_id: int, db: Session = Depends(get_db)) -> QuoteDetailOut:
    return QuoteDetailOut.model_validate(_load(db, quote_id))


# Columns that cannot be cleared through PATCH
REQUIRED_FIELDS = frozenset({"title", "customer_name", "customer_email", "tax_rate", "valid_until"})


@router.patch("/{quote_id}", response_model=QuoteDetailOut)
def update_quote(quote_id: int, body: QuoteUpdate, db: Session = Depends(get_db)) -> QuoteDetailOut:
    quote = _load(db, quote_id)
    changes = {
        k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None or k not in REQUIRED_FIELDS
    }
    if "tax_rate" in changes:
        # Totals of a decided quote are frozen
        lifecycle.ensure_open(quote)
    quote_store.update_quote(db, quote, changes)
    db.commit()
    return QuoteDetailOut.model_validate(quote)


@router.delete("/{quote_id}", status_code=204)
def delete_quote(quote_id: int, db: Session = Depends(get_db)) -> Response:
    quote = quote_store.get_quote_or_404(db, quote_id)
    quote_store.delete_quote(db, quote)
    db.commit()
    logger.info("Deleted quote %s", quote_id, extra={"quote_id": quote_id})
    return Response(status_code=204)


@router.post("/{quote_id}/send", response_model=QuoteDetailOut)
def send_quote(quote_id: int, db: Session = Depends(get_db)) -> QuoteDetailOut:
    quote = _load(db, quote_id)
    lifecycle.mark_sent(quote, lifecycle.utcnow())
    db.commit()
    enqueue(send_quote_link_email, quote.id)
    logger.info("Quote %s sent to %s", quote.quote_number, quote.customer_email, extra={"quote_id": quote.id})
    return QuoteDetailOut.model_validate(quote)


# --- Line items -------------------------------------------------------------

@router.get("/{quote_id}/line-items", response_model=list[LineItemOut])
def list_line_items(quote_id: int, db: Session = Depends(get_db)) -> list[LineItemOut]:
    quote_store.get_quote_or_404(db, quote_id)
    return [LineItemOut.model_validate(i) for i in quote_store.list_line_items(db, quote_id)]


@router.post("/{quote_id}/line-items", response_model=LineItemOut, status_code=201)
def add_line_item(quote_id: int, body: LineItemIn, db: Session = Depends(get_db)) -> LineItemOut:
    quote = _load(db, quote_id)
    lifecycle.ensure_open(quote)
    item = quote_store.add_line_item(db, quote, body.model_dump())
    db.commit()
    return LineItemOut.model_validate(item)


@router.patch("/{quote_id}/line-items/{item_id}", response_model=LineItemOut)
def update_line_item(
    quote_id: int, item_id: int, body: LineItemUpdate, db: Session = Depends(get_db)
) -> LineItemOut:
    quote = _load(db, quote_id)
    lifecycle.ensure_open(quote)
    item = quote_store.get_line_item(db, quote_id, item_id)
    changes = {k: v for k, v in body.model_dump(exclude_unset=True).items() if v is not None}
    quote_store.update_line_item(db, quote, item, changes)
    db.commit()
    return LineItemOut.model_validate(item)


@router.delete("/{quote_id}/line-items/{item_id}", status_code=204)
def delete_line_item(quote_id: int, item_id: int, db: Session = Depends(get_db)) -> Response:
    quote = _load(db, quote_id)
    lifecycle.ensure_open(quote)
    item = quote_store.get_line_item(db, quote_id, item_id)
    quote_store.delete_line_item(db, quote, item)
    db.commit()
    return Response(status_code=204)


# --- Images -----------------------------------------------------------------

@router.post("/{quote_id}/images", response_model=ImageOut, status_code=201)
def add_image(quote_id: int, body: ImageIn, db: Session = Depends(get_db)) -> ImageOut:
    quote = quote_store.get_quote_or_404(db, quote_id)
    image = quote_store.add_image(db, quote, body.model_dump())
    db.commit()
    return ImageOut.model_validate(image)


@router.delete("/{quote_id}/images/{image_id}", status_code=204)
def delete_image(quote_id: int, image_id: int, db: Session = Depends(get_db)) -> Response:
    quote = quote_store.get_quote_or_404(db, quote_id)
    quote_store.delete_image(db, quote, image_id)
    db.commit()
    return Response(status_code=204)
