"""Seed a sample quote and print its customer link.

Usage:
  python scripts/seed_quote.py

Requirements:
  - DB schema applied (alembic upgrade head)
  - DATABASE_URL configured (e.g., via .env)
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from quote_portal.core.config import get_settings
from quote_portal.db.crud.quotes import create_quote
from quote_portal.db.session import SessionLocal
from quote_portal.quotes.lifecycle import utcnow

LINE_ITEMS = [
    {
        "category": "Cabinetry",
        "description": "Custom white shaker-style cabinets with soft-close hardware",
        "quantity": Decimal("1"),
        "unit": "set",
        "unit_price": Decimal("15000.00"),
    },
    {
        "category": "Countertops",
        "description": "Quartz countertops - Calacatta Nuvo",
        "quantity": Decimal("45"),
        "unit": "sq ft",
        "unit_price": Decimal("85.00"),
    },
    {
        "category": "Flooring",
        "description": "Luxury vinyl plank flooring - Weathered Oak",
        "quantity": Decimal("180"),
        "unit": "sq ft",
        "unit_price": Decimal("8.50"),
        "discount_percentage": Decimal("10"),
    },
    {
        "category": "Painting",
        "description": "Walls and ceiling, two coats",
        "quantity": Decimal("1"),
        "unit": "job",
        "unit_price": Decimal("2400.00"),
        "discount_amount": Decimal("200.00"),
    },
]


def main() -> None:
    now = utcnow()
    db = SessionLocal()
    try:
        quote = create_quote(
            db,
            {
                "title": "Complete Kitchen Renovation",
                "description": "Full kitchen remodel including cabinets, countertops and flooring.",
                "project_type": "Kitchen Remodel",
                "location": "Springfield, IL",
                "customer_name": "Sarah Johnson",
                "customer_email": "sarah.johnson@example.com",
                "customer_phone": "(555) 123-4567",
                "tax_rate": Decimal("8.00"),
                "valid_until": now + timedelta(days=30),
                "paint_colors": {"cabinets": "Chantilly Lace", "walls": "Revere Pewter"},
                "line_items": LINE_ITEMS,
                "images": [{"image_url": "https://example.com/kitchen-before.jpg", "category": "before"}],
            },
            now,
        )
        db.commit()
        print(
            {
                "quote_id": quote.id,
                "quote_number": quote.quote_number,
                "total": str(quote.total),
                "link": get_settings().quote_link(quote.magic_token),
            }
        )
    finally:
        db.close()


if __name__ == "__main__":
    main()
