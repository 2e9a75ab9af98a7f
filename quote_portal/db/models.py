from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from quote_portal.db.base import Base, JSONType

# SQLite only autoincrements INTEGER primary keys
PK = BigInteger().with_variant(Integer(), "sqlite")


class Quote(Base):
    __tablename__ = "quotes"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    quote_number: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    magic_token: Mapped[str] = mapped_column(String, unique=True, nullable=False, index=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")

    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    project_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    customer_email: Mapped[str] = mapped_column(Text, nullable=False)
    customer_phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    customer_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=Decimal("0"))
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    valid_until: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    paint_colors: Mapped[dict[str, str]] = mapped_column(JSONType, nullable=False, default=dict)
    customer_response: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    customer_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    viewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    responded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    line_items: Mapped[List[QuoteLineItem]] = relationship(
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by=lambda: [QuoteLineItem.sort_order, QuoteLineItem.id],
    )  # type: ignore[name-defined]
    images: Mapped[List[QuoteImage]] = relationship(
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by=lambda: [QuoteImage.sort_order, QuoteImage.id],
    )  # type: ignore[name-defined]


class QuoteLineItem(Base):
    __tablename__ = "quote_line_items"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    quote_id: Mapped[int] = mapped_column(ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False)
    category: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("1"))
    unit: Mapped[str] = mapped_column(String, nullable=False, default="each")
    unit_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    discount_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False, default=Decimal("0"))
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by_customer: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    quote: Mapped[Quote] = relationship(back_populates="line_items")  # type: ignore[name-defined]


class QuoteImage(Base):
    __tablename__ = "quote_images"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    quote_id: Mapped[int] = mapped_column(ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    caption: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String, nullable=False, default="reference")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    quote: Mapped[Quote] = relationship(back_populates="images")  # type: ignore[name-defined]


class QuoteAnalyticsEvent(Base):
    __tablename__ = "quote_analytics"

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    quote_id: Mapped[int] = mapped_column(ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True)
    event: Mapped[str] = mapped_column(String, nullable=False)
    event_data: Mapped[Optional[Any]] = mapped_column(JSONType, nullable=True)
    session_id: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    device_type: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    browser: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    operating_system: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    screen_resolution: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    ip_address: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    country: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    timezone: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    time_on_page: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    scroll_depth: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    referrer: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    utm_source: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    utm_medium: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    utm_campaign: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class QuoteViewSession(Base):
    __tablename__ = "quote_view_sessions"
    __table_args__ = (
        UniqueConstraint("quote_id", "session_id", name="uq_quote_view_session"),
    )

    id: Mapped[int] = mapped_column(PK, primary_key=True, autoincrement=True)
    quote_id: Mapped[int] = mapped_column(ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False)
    session_id: Mapped[str] = mapped_column(String, nullable=False, index=True)

    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    last_activity: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    total_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    page_views: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    device_fingerprint: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    max_scroll_depth: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sections_viewed: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    actions_performed: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, nullable=False, default=list)

    customer_email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    customer_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
