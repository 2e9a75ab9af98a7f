"""Analytics CRUD: raw events, per-visit view sessions and aggregates."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from quote_portal.analytics.tracker import PAGE_VIEW_EVENT
from quote_portal.db.models import QuoteAnalyticsEvent, QuoteViewSession

# The dashboard counts the event the tracker sends once per page load
VIEW_EVENT = PAGE_VIEW_EVENT
TOP_QUOTES_LIMIT = 5


def track_event(
    db: Session,
    quote_id: int,
    data: dict[str, Any],
    *,
    user_agent: str | None,
    ip_address: str | None,
    now: datetime,
) -> QuoteAnalyticsEvent:
    event = QuoteAnalyticsEvent(
        quote_id=quote_id,
        user_agent=user_agent,
        ip_address=ip_address,
        created_at=now,
        **data,
    )
    db.add(event)
    db.flush()
    return event


def get_session(db: Session, quote_id: int, session_id: str) -> Optional[QuoteViewSession]:
    return (
        db.query(QuoteViewSession)
        .filter(QuoteViewSession.quote_id == quote_id, QuoteViewSession.session_id == session_id)
        .one_or_none()
    )


def upsert_session(db: Session, quote_id: int, data: dict[str, Any], now: datetime) -> QuoteViewSession:
    """Create the visit, or count another page view on an existing one.

    Sections and actions are replaced when sent; customer identity already on
    the session is kept unless a new value is provided.
    """
    session = get_session(db, quote_id, data["session_id"])
    if session is None:
        session = QuoteViewSession(
            quote_id=quote_id,
            session_id=data["session_id"],
            device_fingerprint=data.get("device_fingerprint"),
            sections_viewed=data.get("sections_viewed") or [],
            actions_performed=data.get("actions_performed") or [],
            customer_email=data.get("customer_email"),
            customer_name=data.get("customer_name"),
            page_views=1,
            start_time=now,
            last_activity=now,
        )
        db.add(session)
        db.flush()
        return session

    session.page_views = (session.page_views or 0) + 1
    session.last_activity = now
    if data.get("sections_viewed") is not None:
        session.sections_viewed = list(data["sections_viewed"])
    if data.get("actions_performed") is not None:
        session.actions_performed = list(data["actions_performed"])
    if data.get("device_fingerprint") and not session.device_fingerprint:
        session.device_fingerprint = data["device_fingerprint"]
    session.customer_email = data.get("customer_email") or session.customer_email
    session.customer_name = data.get("customer_name") or session.customer_name
    db.flush()
    return session


def update_scroll_depth(db: Session, session_id: str, scroll_depth: int, now: datetime) -> int:
    """Raise max_scroll_depth on every session with this id; never lowers it."""
    sessions = db.query(QuoteViewSession).filter(QuoteViewSession.session_id == session_id).all()
    for session in sessions:
        session.max_scroll_depth = max(session.max_scroll_depth or 0, scroll_depth)
        session.last_activity = now
    db.flush()
    return len(sessions)


def update_duration(db: Session, session_id: str, duration: int, now: datetime) -> int:
    sessions = db.query(QuoteViewSession).filter(QuoteViewSession.session_id == session_id).all()
    for session in sessions:
        session.total_duration = duration
        session.last_activity = now
    db.flush()
    return len(sessions)


# --- Reporting --------------------------------------------------------------

def summary(db: Session, quote_id: int) -> dict[str, Any]:
    row = (
        db.query(
            func.count(QuoteAnalyticsEvent.id),
            func.count(func.distinct(QuoteAnalyticsEvent.session_id)),
            func.sum(QuoteAnalyticsEvent.time_on_page),
            func.avg(QuoteAnalyticsEvent.scroll_depth),
        )
        .filter(QuoteAnalyticsEvent.quote_id == quote_id)
        .one()
    )
    total_events, unique_sessions, total_time, avg_scroll = row
    return {
        "totalViews": int(total_events or 0),
        "uniqueSessions": int(unique_sessions or 0),
        "totalTimeOnPage": int(total_time or 0),
        "avgScrollDepth": round(float(avg_scroll or 0)),
    }


def list_sessions(db: Session, quote_id: int) -> list[QuoteViewSession]:
    return (
        db.query(QuoteViewSession)
        .filter(QuoteViewSession.quote_id == quote_id)
        .order_by(QuoteViewSession.last_activity.desc(), QuoteViewSession.id.desc())
        .all()
    )


def device_stats(db: Session, quote_id: int) -> list[dict[str, Any]]:
    rows = (
        db.query(
            QuoteAnalyticsEvent.device_type,
            QuoteAnalyticsEvent.browser,
            QuoteAnalyticsEvent.operating_system,
            func.count(QuoteAnalyticsEvent.id),
        )
        .filter(QuoteAnalyticsEvent.quote_id == quote_id)
        .group_by(
            QuoteAnalyticsEvent.device_type,
            QuoteAnalyticsEvent.browser,
            QuoteAnalyticsEvent.operating_system,
        )
        .all()
    )
    return [
        {"deviceType": device, "browser": browser, "operatingSystem": os_name, "count": int(count)}
        for device, browser, os_name, count in rows
    ]


def geo_stats(db: Session, quote_id: int) -> list[dict[str, Any]]:
    rows = (
        db.query(QuoteAnalyticsEvent.country, QuoteAnalyticsEvent.city, func.count(QuoteAnalyticsEvent.id))
        .filter(QuoteAnalyticsEvent.quote_id == quote_id)
        .group_by(QuoteAnalyticsEvent.country, QuoteAnalyticsEvent.city)
        .all()
    )
    return [{"country": country, "city": city, "count": int(count)} for country, city, count in rows]


def list_events(db: Session, quote_id: int, limit: int = 100) -> list[QuoteAnalyticsEvent]:
    return (
        db.query(QuoteAnalyticsEvent)
        .filter(QuoteAnalyticsEvent.quote_id == quote_id)
        .order_by(QuoteAnalyticsEvent.created_at.desc(), QuoteAnalyticsEvent.id.desc())
        .limit(limit)
        .all()
    )


def dashboard(db: Session, now: datetime) -> dict[str, Any]:
    """Cross-quote totals over page-view events plus session averages."""
    views = db.query(QuoteAnalyticsEvent).filter(QuoteAnalyticsEvent.event == VIEW_EVENT)
    total_views = views.count()
    unique_sessions = (
        db.query(func.count(func.distinct(QuoteAnalyticsEvent.session_id)))
        .filter(QuoteAnalyticsEvent.event == VIEW_EVENT)
        .scalar()
    )
    avg_time = db.query(func.avg(QuoteViewSession.total_duration)).scalar()
    avg_scroll = db.query(func.avg(QuoteViewSession.max_scroll_depth)).scalar()
    recent = views.filter(QuoteAnalyticsEvent.created_at >= now - timedelta(hours=24)).count()

    view_count = func.count(QuoteAnalyticsEvent.id)
    top = (
        db.query(QuoteAnalyticsEvent.quote_id, view_count)
        .filter(QuoteAnalyticsEvent.event == VIEW_EVENT)
        .group_by(QuoteAnalyticsEvent.quote_id)
        .order_by(view_count.desc(), QuoteAnalyticsEvent.quote_id)
        .limit(TOP_QUOTES_LIMIT)
        .all()
    )
    return {
        "summary": {
            "totalViews": int(total_views),
            "uniqueSessions": int(unique_sessions or 0),
            "avgTimeOnPage": round(float(avg_time or 0)),
            "avgScrollDepth": round(float(avg_scroll or 0)),
            "recentViews24h": int(recent),
        },
        "topQuotes": [{"quoteId": int(quote_id), "views": int(count)} for quote_id, count in top],
    }
