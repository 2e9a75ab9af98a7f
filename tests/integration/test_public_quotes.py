from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest

from quote_portal.core.errors import ConflictError
from quote_portal.db.models import Quote
from quote_portal.quotes import gateway
from quote_portal.quotes.lifecycle import utcnow


def reload(db, quote_id: int) -> Quote:
    db.expire_all()
    return db.get(Quote, quote_id)


def test_first_fetch_marks_viewed_once(client, db, make_quote):
    quote = make_quote(status="sent")

    r1 = client.get(f"/quotes/{quote.magic_token}")
    assert r1.status_code == 200
    body = r1.json()
    assert body["status"] == "viewed"
    assert body["quoteNumber"] == quote.quote_number
    assert body["lineItems"][0]["description"] == "Tile work"
    first_viewed_at = body["viewedAt"]
    assert first_viewed_at is not None

    r2 = client.get(f"/quotes/{quote.magic_token}")
    assert r2.status_code == 200
    assert r2.json()["viewedAt"] == first_viewed_at
    assert reload(db, quote.id).status == "viewed"


def test_unknown_token_is_not_found(client):
    r = client.get("/quotes/not-a-real-token")
    assert r.status_code == 404
    assert r.json() == {"error": "Quote not found or expired"}


def test_unknown_token_wins_over_bad_payload(client):
    r = client.post("/quotes/not-a-real-token/respond", json={"response": "maybe"})
    assert r.status_code == 404
    r = client.post("/quotes/public/not-a-real-token/line-items", json={})
    assert r.status_code == 404


def test_accepting_records_response_and_queues_email(client, db, make_quote, enqueued):
    quote = make_quote(status="sent")
    client.get(f"/quotes/{quote.magic_token}")

    r = client.post(f"/quotes/{quote.magic_token}/respond", json={"response": "accepted", "notes": "Go ahead"})
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "accepted"
    assert body["customerResponse"] == "accepted"
    assert body["respondedAt"] is not None

    stored = reload(db, quote.id)
    assert stored.status == "accepted"
    assert stored.customer_notes == "Go ahead"
    assert ("send_quote_accepted_email", (quote.id,)) in enqueued


def test_invalid_response_value_leaves_quote_untouched(client, db, make_quote, enqueued):
    quote = make_quote(status="sent")
    client.get(f"/quotes/{quote.magic_token}")

    r = client.post(f"/quotes/{quote.magic_token}/respond", json={"response": "maybe"})
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid response. Must be 'accepted' or 'declined'"

    stored = reload(db, quote.id)
    assert stored.status == "viewed"
    assert stored.responded_at is None
    assert enqueued == []


def test_second_response_conflicts(client, db, make_quote):
    quote = make_quote(status="sent")
    client.post(f"/quotes/{quote.magic_token}/respond", json={"response": "declined"})

    r = client.post(f"/quotes/{quote.magic_token}/respond", json={"response": "accepted"})
    assert r.status_code == 409
    assert r.json()["error"] == "You have already responded to this quote"
    assert reload(db, quote.id).status == "declined"


def test_response_racing_a_stale_read_conflicts(db, session_factory, make_quote):
    quote = make_quote(status="viewed")
    token = quote.magic_token

    # Load the quote, as a slower request would, before the first answer lands
    late = session_factory()
    gateway.resolve(late, token, utcnow())
    late.commit()

    early = session_factory()
    gateway.submit_response(early, token, {"response": "accepted", "notes": "first"}, utcnow())
    early.close()

    try:
        with pytest.raises(ConflictError) as exc:
            gateway.submit_response(late, token, {"response": "declined", "notes": "second"}, utcnow())
    finally:
        late.close()
    assert exc.value.message == "You have already responded to this quote"

    stored = reload(db, quote.id)
    assert stored.status == "accepted"
    assert stored.customer_response == "accepted"
    assert stored.customer_notes == "first"


def test_declining_does_not_queue_email(client, make_quote, enqueued):
    quote = make_quote(status="viewed")
    r = client.post(f"/quotes/{quote.magic_token}/respond", json={"response": "declined"})
    assert r.status_code == 200
    assert enqueued == []


def test_expired_quote_reads_as_expired_and_rejects_response(client, db, make_quote):
    now = utcnow()
    quote = make_quote(status="sent", now=now - timedelta(days=40), valid_until=now - timedelta(days=1))

    r = client.get(f"/quotes/{quote.magic_token}")
    assert r.status_code == 200
    assert r.json()["status"] == "expired"
    assert reload(db, quote.id).viewed_at is None

    r = client.post(f"/quotes/{quote.magic_token}/respond", json={"response": "accepted"})
    assert r.status_code == 409
    assert reload(db, quote.id).status == "expired"


def test_colors_merge_without_changing_status(client, db, make_quote):
    quote = make_quote(status="sent", paint_colors={"walls": "Sage Green"})
    client.get(f"/quotes/{quote.magic_token}")

    r = client.post(f"/quotes/{quote.magic_token}/colors", json={"paintColors": {"trim": "Chantilly Lace"}})
    assert r.status_code == 200
    assert r.json()["paintColors"] == {"walls": "Sage Green", "trim": "Chantilly Lace"}

    stored = reload(db, quote.id)
    assert stored.status == "viewed"
    assert stored.paint_colors == {"walls": "Sage Green", "trim": "Chantilly Lace"}


def test_colors_rejected_after_decision(client, make_quote):
    quote = make_quote(status="accepted")
    r = client.post(f"/quotes/{quote.magic_token}/colors", json={"paintColors": {"trim": "White"}})
    assert r.status_code == 409


def test_colors_require_string_mapping(client, make_quote):
    quote = make_quote(status="sent")
    r = client.post(f"/quotes/{quote.magic_token}/colors", json={"paintColors": ["white"]})
    assert r.status_code == 400


def test_customer_line_item_updates_totals(client, db, make_quote):
    quote = make_quote(status="sent")
    assert quote.total == Decimal("432.00")

    r = client.post(
        f"/quotes/public/{quote.magic_token}/line-items",
        json={"category": "Fixtures", "description": "Extra towel bar", "quantity": "2", "unitPrice": "25.00"},
    )
    assert r.status_code == 201
    item = r.json()
    assert item["createdByCustomer"] is True
    assert Decimal(item["totalPrice"]) == Decimal("50.00")

    stored = reload(db, quote.id)
    assert stored.subtotal == Decimal("450.00")
    assert stored.tax_amount == Decimal("36.00")
    assert stored.total == Decimal("486.00")


def test_customer_line_item_category_is_restricted(client, make_quote):
    quote = make_quote(status="sent")
    r = client.post(
        f"/quotes/public/{quote.magic_token}/line-items",
        json={"category": "Discount", "description": "Free stuff", "unitPrice": "0"},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid line item data"


def test_writes_only_touch_the_tokens_quote(client, db, make_quote):
    mine = make_quote(status="sent")
    other = make_quote(status="sent", paint_colors={"walls": "Grey"})

    client.post(f"/quotes/{mine.magic_token}/colors", json={"paintColors": {"walls": "Blue"}})
    assert reload(db, other.id).paint_colors == {"walls": "Grey"}
