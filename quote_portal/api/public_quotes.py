"""Customer-facing quote routes. The magic token in the path is the only credential."""

from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from quote_portal.db.session import get_db
from quote_portal.quotes import gateway
from quote_portal.quotes.lifecycle import QuoteStatus, utcnow
from quote_portal.schemas.dto import LineItemOut, QuoteDetailOut
from quote_portal.workers.jobs import send_quote_accepted_email
from quote_portal.workers.queue import enqueue

router = APIRouter()


@router.get("/quotes/{token}", response_model=QuoteDetailOut)
def get_public_quote(token: str, db: Session = Depends(get_db)) -> QuoteDetailOut:
    quote = gateway.fetch_by_token(db, token, utcnow())
    return QuoteDetailOut.model_validate(quote)


@router.post("/quotes/{token}/respond", response_model=QuoteDetailOut)
def respond_to_quote(token: str, payload: Any = Body(default=None), db: Session = Depends(get_db)) -> QuoteDetailOut:
    quote = gateway.submit_response(db, token, payload, utcnow())
    if quote.status == QuoteStatus.ACCEPTED.value:
        enqueue(send_quote_accepted_email, quote.id)
    return QuoteDetailOut.model_validate(quote)


@router.post("/quotes/{token}/colors", response_model=QuoteDetailOut)
def update_quote_colors(token: str, payload: Any = Body(default=None), db: Session = Depends(get_db)) -> QuoteDetailOut:
    quote = gateway.submit_colors(db, token, payload, utcnow())
    return QuoteDetailOut.model_validate(quote)


@router.post("/quotes/public/{token}/line-items", response_model=LineItemOut, status_code=201)
def add_customer_line_item(
    token: str, payload: Any = Body(default=None), db: Session = Depends(get_db)
) -> LineItemOut:
    item = gateway.add_customer_line_item(db, token, payload, utcnow())
    return LineItemOut.model_validate(item)
