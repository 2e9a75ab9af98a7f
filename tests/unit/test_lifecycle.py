from datetime import datetime, timedelta, timezone

import pytest

from quote_portal.core.errors import ConflictError, InvalidTransition
from quote_portal.db.models import Quote
from quote_portal.quotes import lifecycle
from quote_portal.quotes.lifecycle import QuoteStatus, ResponseChoice

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_quote(status: str = "draft", **kwargs) -> Quote:
    kwargs.setdefault("valid_until", NOW + timedelta(days=7))
    kwargs.setdefault("paint_colors", {})
    return Quote(status=status, **kwargs)


def test_transition_table_terminal_states_have_no_exits():
    for state in lifecycle.TERMINAL:
        assert lifecycle.TRANSITIONS[state] == frozenset()


def test_mark_sent_from_draft():
    quote = make_quote()
    lifecycle.mark_sent(quote, NOW)
    assert quote.status == "sent"
    assert quote.sent_at == NOW


def test_mark_sent_twice_is_invalid():
    quote = make_quote("sent")
    with pytest.raises(InvalidTransition):
        lifecycle.mark_sent(quote, NOW)


def test_mark_viewed_only_stamps_once():
    quote = make_quote("sent")
    assert lifecycle.mark_viewed(quote, NOW) is True
    assert quote.status == "viewed"
    assert quote.viewed_at == NOW

    later = NOW + timedelta(hours=1)
    assert lifecycle.mark_viewed(quote, later) is False
    assert quote.viewed_at == NOW


def test_mark_viewed_from_draft():
    quote = make_quote("draft")
    lifecycle.mark_viewed(quote, NOW)
    assert quote.status == "viewed"


def test_mark_viewed_does_not_touch_terminal_quote():
    quote = make_quote("accepted")
    assert lifecycle.mark_viewed(quote, NOW) is False
    assert quote.status == "accepted"
    assert quote.viewed_at is None


@pytest.mark.parametrize("start", ["sent", "viewed"])
def test_check_response_allows_open_quote_without_touching_it(start):
    quote = make_quote(start)
    lifecycle.check_response(quote, ResponseChoice.ACCEPTED)
    assert quote.status == start
    assert quote.responded_at is None


def test_check_response_after_decision_conflicts():
    quote = make_quote("declined", responded_at=NOW)
    with pytest.raises(ConflictError) as exc:
        lifecycle.check_response(quote, ResponseChoice.ACCEPTED)
    assert "already responded" in exc.value.message


def test_check_response_on_expired_quote_is_closed():
    with pytest.raises(ConflictError) as exc:
        lifecycle.check_response(make_quote("expired"), ResponseChoice.ACCEPTED)
    assert exc.value.message == "This quote is no longer open for changes"


def test_check_response_from_draft_is_invalid():
    with pytest.raises(InvalidTransition):
        lifecycle.check_response(make_quote("draft"), ResponseChoice.DECLINED)


def test_responding_states_are_sent_and_viewed():
    expected = {QuoteStatus.SENT, QuoteStatus.VIEWED}
    assert lifecycle.responding_states(ResponseChoice.ACCEPTED) == expected
    assert lifecycle.responding_states(ResponseChoice.DECLINED) == expected


def test_apply_expiry_moves_open_quote():
    quote = make_quote("sent", valid_until=NOW - timedelta(seconds=1))
    assert lifecycle.effective_status(quote, NOW) is QuoteStatus.EXPIRED
    assert lifecycle.apply_expiry(quote, NOW) is True
    assert quote.status == "expired"


def test_apply_expiry_keeps_terminal_state():
    quote = make_quote("accepted", valid_until=NOW - timedelta(days=1))
    assert lifecycle.apply_expiry(quote, NOW) is False
    assert quote.status == "accepted"


def test_apply_expiry_handles_naive_deadline():
    quote = make_quote("viewed", valid_until=(NOW - timedelta(minutes=5)).replace(tzinfo=None))
    assert lifecycle.apply_expiry(quote, NOW) is True


def test_merge_colors_keeps_status_and_existing_keys():
    quote = make_quote("viewed", paint_colors={"walls": "Sage"})
    merged = lifecycle.merge_colors(quote, {"trim": "White"})
    assert merged == {"walls": "Sage", "trim": "White"}
    assert quote.paint_colors == merged
    assert quote.status == "viewed"


def test_merge_colors_rejected_when_closed():
    quote = make_quote("expired")
    with pytest.raises(ConflictError):
        lifecycle.merge_colors(quote, {"walls": "Sage"})
