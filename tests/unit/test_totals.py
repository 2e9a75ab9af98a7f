from decimal import Decimal
from types import SimpleNamespace

from quote_portal.db.crud.quotes import compute_line_total, recalculate_totals


def test_line_total_applies_percentage_then_amount():
    # 2 x 100 = 200, -10% = 180, -5 = 175
    assert compute_line_total(Decimal("2"), Decimal("100"), Decimal("10"), Decimal("5")) == Decimal("175.00")


def test_line_total_never_negative():
    assert compute_line_total(Decimal("1"), Decimal("20"), Decimal("0"), Decimal("50")) == Decimal("0.00")


def test_line_total_rounds_to_cents():
    assert compute_line_total(Decimal("3"), Decimal("3.333")) == Decimal("10.00")


def test_recalculate_totals_sums_items_and_tax():
    quote = SimpleNamespace(
        tax_rate=Decimal("8.25"),
        line_items=[SimpleNamespace(total_price=Decimal("200.00")), SimpleNamespace(total_price=Decimal("50.00"))],
        subtotal=None,
        tax_amount=None,
        total=None,
    )
    recalculate_totals(quote)
    assert quote.subtotal == Decimal("250.00")
    assert quote.tax_amount == Decimal("20.63")
    assert quote.total == Decimal("270.63")


def test_recalculate_totals_with_no_items():
    quote = SimpleNamespace(tax_rate=Decimal("10"), line_items=[], subtotal=None, tax_amount=None, total=None)
    recalculate_totals(quote)
    assert quote.total == Decimal("0.00")
