"""Quote store: quotes, line items and images."""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from quote_portal.core.errors import NotFoundError
from quote_portal.db.models import Quote, QuoteImage, QuoteLineItem
from quote_portal.quotes.tokens import issue_unique_token

CENTS = Decimal("0.01")
HUNDRED = Decimal("100")


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def compute_line_total(
    quantity: Decimal,
    unit_price: Decimal,
    discount_percentage: Decimal | None = None,
    discount_amount: Decimal | None = None,
) -> Decimal:
    gross = quantity * unit_price
    total = gross
    if discount_percentage:
        total -= gross * discount_percentage / HUNDRED
    if discount_amount:
        total -= discount_amount
    return _money(max(total, Decimal("0")))


def recalculate_totals(quote: Quote) -> None:
    subtotal = _money(sum((item.total_price for item in quote.line_items), Decimal("0")))
    tax_amount = _money(subtotal * (quote.tax_rate or Decimal("0")) / HUNDRED)
    quote.subtotal = subtotal
    quote.tax_amount = tax_amount
    quote.total = subtotal + tax_amount


def next_quote_number(db: Session, now: datetime) -> str:
    """Q-<year>-<seq>, seq restarting at 001 each calendar year."""
    prefix = f"Q-{now.year}-"
    numbers = db.scalars(select(Quote.quote_number).where(Quote.quote_number.like(f"{prefix}%"))).all()
    highest = 0
    for number in numbers:
        suffix = number[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1:03d}"


def token_exists(db: Session, token: str) -> bool:
    return db.scalar(select(Quote.id).where(Quote.magic_token == token)) is not None


# --- Quotes -----------------------------------------------------------------

def list_quotes(db: Session) -> list[Quote]:
    return list(db.scalars(select(Quote).order_by(Quote.created_at.desc(), Quote.id.desc())).all())


def get_quote(db: Session, quote_id: int) -> Optional[Quote]:
    return db.get(Quote, quote_id)


def get_quote_or_404(db: Session, quote_id: int) -> Quote:
    quote = get_quote(db, quote_id)
    if quote is None:
        raise NotFoundError("Quote")
    return quote


def get_quote_by_token(db: Session, token: str) -> Optional[Quote]:
    return db.scalars(
        select(Quote)
        .options(selectinload(Quote.line_items), selectinload(Quote.images))
        .where(Quote.magic_token == token)
    ).one_or_none()


def create_quote(db: Session, data: dict[str, Any], now: datetime) -> Quote:
    """Insert a draft quote with its token, number, line items and images.

    Nothing is flushed until the token is issued, so a failing random source
    leaves no row behind.
    """
    line_items = data.pop("line_items", None) or []
    images = data.pop("images", None) or []

    token = issue_unique_token(lambda t: token_exists(db, t))
    quote = Quote(
        **data,
        quote_number=next_quote_number(db, now),
        magic_token=token,
        status="draft",
    )
    for item in line_items:
        quote.line_items.append(_build_line_item(item))
    for image in images:
        quote.images.append(QuoteImage(**image))
    recalculate_totals(quote)
    db.add(quote)
    db.flush()
    return quote


def update_quote(db: Session, quote: Quote, changes: dict[str, Any]) -> Quote:
    for key, value in changes.items():
        setattr(quote, key, value)
    if "tax_rate" in changes:
        recalculate_totals(quote)
    db.flush()
    return quote


def save_response(
    db: Session,
    quote: Quote,
    response: str,
    notes: Optional[str],
    now: datetime,
    open_states: Iterable[str],
) -> bool:
    """Write the customer's answer only if nobody answered first.

    Returns False when the row was already responded to or left ``open_states``
    since it was loaded; the in-memory ``quote`` is left untouched then.
    """
    result = db.execute(
        update(Quote)
        .where(
            Quote.id == quote.id,
            Quote.responded_at.is_(None),
            Quote.status.in_(list(open_states)),
        )
        .values(status=response, customer_response=response, customer_notes=notes, responded_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def delete_quote(db: Session, quote: Quote) -> None:
    db.delete(quote)
    db.flush()


# --- Line items -------------------------------------------------------------

def _build_line_item(data: dict[str, Any], *, created_by_customer: bool = False) -> QuoteLineItem:
    item = QuoteLineItem(**data, created_by_customer=created_by_customer)
    item.quantity = data.get("quantity", Decimal("1"))
    item.discount_percentage = data.get("discount_percentage", Decimal("0"))
    item.discount_amount = data.get("discount_amount", Decimal("0"))
    item.total_price = compute_line_total(
        item.quantity, item.unit_price, item.discount_percentage, item.discount_amount
    )
    return item


def list_line_items(db: Session, quote_id: int) -> list[QuoteLineItem]:
    return list(
        db.scalars(
            select(QuoteLineItem)
            .where(QuoteLineItem.quote_id == quote_id)
            .order_by(QuoteLineItem.sort_order, QuoteLineItem.id)
        ).all()
    )


def get_line_item(db: Session, quote_id: int, item_id: int) -> QuoteLineItem:
    item = db.get(QuoteLineItem, item_id)
    if item is None or item.quote_id != quote_id:
        raise NotFoundError("Line item")
    return item


def add_line_item(db: Session, quote: Quote, data: dict[str, Any], *, created_by_customer: bool = False) -> QuoteLineItem:
    item = _build_line_item(data, created_by_customer=created_by_customer)
    quote.line_items.append(item)
    recalculate_totals(quote)
    db.flush()
    return item


def update_line_item(db: Session, quote: Quote, item: QuoteLineItem, changes: dict[str, Any]) -> QuoteLineItem:
    for key, value in changes.items():
        setattr(item, key, value)
    item.total_price = compute_line_total(
        item.quantity, item.unit_price, item.discount_percentage, item.discount_amount
    )
    recalculate_totals(quote)
    db.flush()
    return item


def delete_line_item(db: Session, quote: Quote, item: QuoteLineItem) -> None:
    quote.line_items.remove(item)
    recalculate_totals(quote)
    db.flush()


# --- Images -----------------------------------------------------------------

def add_image(db: Session, quote: Quote, data: dict[str, Any]) -> QuoteImage:
    image = QuoteImage(**data)
    quote.images.append(image)
    db.flush()
    return image


def delete_image(db: Session, quote: Quote, image_id: int) -> None:
    image = db.get(QuoteImage, image_id)
    if image is None or image.quote_id != quote.id:
        raise NotFoundError("Image")
    quote.images.remove(image)
    db.flush()
