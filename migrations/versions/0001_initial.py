"""initial schema

Revision ID: 0001_initial
Revises: 
Create Date: 2026-10-19 00:00:00

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # quotes
    op.create_table(
        "quotes",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("quote_number", sa.String(), nullable=False, unique=True),
        sa.Column("magic_token", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="draft"),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("project_type", sa.Text(), nullable=True),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("customer_name", sa.Text(), nullable=False),
        sa.Column("customer_email", sa.Text(), nullable=False),
        sa.Column("customer_phone", sa.Text(), nullable=True),
        sa.Column("customer_address", sa.Text(), nullable=True),
        sa.Column("subtotal", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("tax_rate", sa.Numeric(6, 2), nullable=False, server_default="0"),
        sa.Column("tax_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("total", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column("paint_colors", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("customer_response", sa.String(), nullable=True),
        sa.Column("customer_notes", sa.Text(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("viewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.CheckConstraint(
            "status IN ('draft','sent','viewed','accepted','declined','expired')", name="ck_quotes_status"
        ),
    )
    op.create_index("ix_quotes_magic_token", "quotes", ["magic_token"], unique=True)

    # quote_line_items
    op.create_table(
        "quote_line_items",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("quote_id", sa.BigInteger(), sa.ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("quantity", sa.Numeric(10, 2), nullable=False, server_default="1"),
        sa.Column("unit", sa.String(), nullable=False, server_default="each"),
        sa.Column("unit_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("discount_percentage", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("discount_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("total_price", sa.Numeric(10, 2), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_by_customer", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_quote_line_items_quote_id", "quote_line_items", ["quote_id"])

    # quote_images
    op.create_table(
        "quote_images",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("quote_id", sa.BigInteger(), sa.ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("image_url", sa.Text(), nullable=False),
        sa.Column("caption", sa.Text(), nullable=True),
        sa.Column("category", sa.String(), nullable=False, server_default="reference"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_quote_images_quote_id", "quote_images", ["quote_id"])

    # quote_analytics
    op.create_table(
        "quote_analytics",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("quote_id", sa.BigInteger(), sa.ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("event", sa.String(), nullable=False),
        sa.Column("event_data", postgresql.JSONB(), nullable=True),
        sa.Column("session_id", sa.String(), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("device_type", sa.String(), nullable=True),
        sa.Column("browser", sa.String(), nullable=True),
        sa.Column("operating_system", sa.String(), nullable=True),
        sa.Column("screen_resolution", sa.String(), nullable=True),
        sa.Column("ip_address", sa.String(), nullable=True),
        sa.Column("country", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("timezone", sa.String(), nullable=True),
        sa.Column("time_on_page", sa.Integer(), nullable=True),
        sa.Column("scroll_depth", sa.Integer(), nullable=True),
        sa.Column("referrer", sa.Text(), nullable=True),
        sa.Column("utm_source", sa.String(), nullable=True),
        sa.Column("utm_medium", sa.String(), nullable=True),
        sa.Column("utm_campaign", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )
    op.create_index("ix_quote_analytics_quote_id", "quote_analytics", ["quote_id"])
    op.create_index("ix_quote_analytics_event_created", "quote_analytics", ["event", "created_at"])

    # quote_view_sessions
    op.create_table(
        "quote_view_sessions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("quote_id", sa.BigInteger(), sa.ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("session_id", sa.String(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("last_activity", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("total_duration", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("page_views", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("device_fingerprint", sa.String(), nullable=True),
        sa.Column("max_scroll_depth", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("sections_viewed", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("actions_performed", postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("customer_email", sa.Text(), nullable=True),
        sa.Column("customer_name", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.UniqueConstraint("quote_id", "session_id", name="uq_quote_view_session"),
    )
    op.create_index("ix_quote_view_sessions_session_id", "quote_view_sessions", ["session_id"])


def downgrade() -> None:
    op.drop_index("ix_quote_view_sessions_session_id", table_name="quote_view_sessions")
    op.drop_table("quote_view_sessions")
    op.drop_index("ix_quote_analytics_event_created", table_name="quote_analytics")
    op.drop_index("ix_quote_analytics_quote_id", table_name="quote_analytics")
    op.drop_table("quote_analytics")
    op.drop_index("ix_quote_images_quote_id", table_name="quote_images")
    op.drop_table("quote_images")
    op.drop_index("ix_quote_line_items_quote_id", table_name="quote_line_items")
    op.drop_table("quote_line_items")
    op.drop_index("ix_quotes_magic_token", table_name="quotes")
    op.drop_table("quotes")
