"""Quote analytics ingestion (public, throttled) and reporting (API key)."""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from quote_portal.core.security import api_key_auth
from quote_portal.core.throttle import client_key, throttle_analytics
from quote_portal.db.crud import analytics as analytics_store
from quote_portal.db.crud import quotes as quote_store
from quote_portal.db.session import get_db
from quote_portal.quotes.lifecycle import utcnow
from quote_portal.schemas.dto import (
    AnalyticsEventOut,
    DurationIn,
    ScrollIn,
    SessionIn,
    SessionOut,
    TrackEventIn,
    TrackEventOut,
    ViewSessionOut,
)

public_router = APIRouter(dependencies=[Depends(throttle_analytics)])
admin_router = APIRouter(dependencies=[Depends(api_key_auth)])


@public_router.post("/quotes/{quote_id}/analytics/track", response_model=TrackEventOut, status_code=201)
def track_event(
    quote_id: int, body: TrackEventIn, request: Request, db: Session = Depends(get_db)
) -> TrackEventOut:
    quote_store.get_quote_or_404(db, quote_id)
    event = analytics_store.track_event(
        db,
        quote_id,
        body.model_dump(),
        user_agent=request.headers.get("user-agent"),
        ip_address=client_key(request),
        now=utcnow(),
    )
    db.commit()
    return TrackEventOut(event_id=event.id)


@public_router.post("/quotes/{quote_id}/analytics/session", response_model=SessionOut)
def upsert_session(quote_id: int, body: SessionIn, db: Session = Depends(get_db)) -> SessionOut:
    quote_store.get_quote_or_404(db, quote_id)
    session = analytics_store.upsert_session(db, quote_id, body.model_dump(), utcnow())
    db.commit()
    return SessionOut(session_id=session.session_id)


@public_router.patch("/analytics/session/scroll")
def update_scroll(body: ScrollIn, db: Session = Depends(get_db)) -> dict[str, Any]:
    analytics_store.update_scroll_depth(db, body.session_id, body.scroll_depth, utcnow())
    db.commit()
    return {"success": True}


# POST is what navigator.sendBeacon emits on page unload
@public_router.api_route("/analytics/session/duration", methods=["PATCH", "POST"])
def update_duration(body: DurationIn, db: Session = Depends(get_db)) -> dict[str, Any]:
    analytics_store.update_duration(db, body.session_id, body.duration, utcnow())
    db.commit()
    return {"success": True}


@admin_router.get("/quotes/{quote_id}/analytics/summary")
def analytics_summary(quote_id: int, db: Session = Depends(get_db)) -> dict[str, Any]:
    quote_store.get_quote_or_404(db, quote_id)
    sessions = analytics_store.list_sessions(db, quote_id)
    return {
        "summary": analytics_store.summary(db, quote_id),
        "sessions": [ViewSessionOut.model_validate(s).model_dump(mode="json", by_alias=True) for s in sessions],
        "deviceStats": analytics_store.device_stats(db, quote_id),
        "geoStats": analytics_store.geo_stats(db, quote_id),
    }


@admin_router.get("/quotes/{quote_id}/analytics/details", response_model=list[AnalyticsEventOut])
def analytics_details(
    quote_id: int,
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[AnalyticsEventOut]:
    quote_store.get_quote_or_404(db, quote_id)
    return [AnalyticsEventOut.model_validate(e) for e in analytics_store.list_events(db, quote_id, limit)]


@admin_router.get("/analytics/dashboard")
def analytics_dashboard(db: Session = Depends(get_db)) -> dict[str, Any]:
    return analytics_store.dashboard(db, utcnow())
