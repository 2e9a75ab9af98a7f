from __future__ import annotations

from quote_portal.analytics.tracker import QuoteAnalyticsTracker
from quote_portal.core.throttle import RequestThrottler
from quote_portal.db.models import QuoteViewSession
from tests.conftest import ADMIN_HEADERS


def view_session(db, session_id: str) -> QuoteViewSession:
    db.expire_all()
    return db.query(QuoteViewSession).filter(QuoteViewSession.session_id == session_id).one()


def test_track_event_captures_request_context(client, make_quote):
    quote = make_quote(status="sent")
    r = client.post(
        f"/quotes/{quote.id}/analytics/track",
        json={"event": "page_view", "sessionId": "s-1", "deviceType": "mobile", "scrollDepth": 40, "timeOnPage": 12},
        headers={"User-Agent": "pytest-agent", "X-Forwarded-For": "203.0.113.9"},
    )
    assert r.status_code == 201
    assert r.json()["success"] is True
    assert isinstance(r.json()["eventId"], int)

    events = client.get(f"/quotes/{quote.id}/analytics/details", headers=ADMIN_HEADERS).json()
    assert events[0]["event"] == "page_view"
    assert events[0]["sessionId"] == "s-1"


def test_track_event_validation_and_unknown_quote(client, make_quote):
    quote = make_quote()
    assert client.post(f"/quotes/{quote.id}/analytics/track", json={"sessionId": "s"}).status_code == 400
    assert client.post("/quotes/9999/analytics/track", json={"event": "page_view"}).status_code == 404


def test_session_upsert_counts_page_views_and_keeps_identity(client, db, make_quote):
    quote = make_quote()
    url = f"/quotes/{quote.id}/analytics/session"

    r = client.post(url, json={"sessionId": "s-2", "deviceFingerprint": "fp", "customerEmail": "c@example.com"})
    assert r.status_code == 200
    assert r.json() == {"success": True, "sessionId": "s-2"}

    client.post(url, json={"sessionId": "s-2", "sectionsViewed": ["summary", "line-items"]})
    session = view_session(db, "s-2")
    assert session.page_views == 2
    assert session.sections_viewed == ["summary", "line-items"]
    assert session.customer_email == "c@example.com"
    assert session.device_fingerprint == "fp"


def test_scroll_depth_is_monotonic(client, db, make_quote):
    quote = make_quote()
    client.post(f"/quotes/{quote.id}/analytics/session", json={"sessionId": "s-3"})

    assert client.patch("/analytics/session/scroll", json={"sessionId": "s-3", "scrollDepth": 70}).status_code == 200
    client.patch("/analytics/session/scroll", json={"sessionId": "s-3", "scrollDepth": 30})
    assert view_session(db, "s-3").max_scroll_depth == 70

    r = client.patch("/analytics/session/scroll", json={"sessionId": "s-3", "scrollDepth": 140})
    assert r.status_code == 400


def test_duration_accepts_patch_and_beacon_post(client, db, make_quote):
    quote = make_quote()
    client.post(f"/quotes/{quote.id}/analytics/session", json={"sessionId": "s-4"})

    assert client.patch("/analytics/session/duration", json={"sessionId": "s-4", "duration": 30}).status_code == 200
    assert view_session(db, "s-4").total_duration == 30
    assert client.post("/analytics/session/duration", json={"sessionId": "s-4", "duration": 95}).status_code == 200
    assert view_session(db, "s-4").total_duration == 95


def test_summary_and_dashboard(client, make_quote):
    a = make_quote()
    b = make_quote()
    for session_id in ("x", "y"):
        client.post(f"/quotes/{a.id}/analytics/track", json={"event": "page_view", "sessionId": session_id, "country": "US"})
    client.post(f"/quotes/{b.id}/analytics/track", json={"event": "page_view", "sessionId": "z"})
    client.post(f"/quotes/{b.id}/analytics/track", json={"event": "button_click", "sessionId": "w"})
    client.post(f"/quotes/{a.id}/analytics/session", json={"sessionId": "x"})
    client.patch("/analytics/session/duration", json={"sessionId": "x", "duration": 60})

    summary = client.get(f"/quotes/{a.id}/analytics/summary", headers=ADMIN_HEADERS).json()
    assert summary["summary"]["totalViews"] == 2
    assert summary["summary"]["uniqueSessions"] == 2
    assert summary["geoStats"] == [{"country": "US", "city": None, "count": 2}]
    assert [s["sessionId"] for s in summary["sessions"]] == ["x"]

    dashboard = client.get("/analytics/dashboard", headers=ADMIN_HEADERS).json()
    assert dashboard["summary"]["totalViews"] == 3
    assert dashboard["summary"]["uniqueSessions"] == 3
    assert dashboard["summary"]["recentViews24h"] == 3
    assert dashboard["summary"]["avgTimeOnPage"] == 60
    assert dashboard["topQuotes"] == [{"quoteId": a.id, "views": 2}, {"quoteId": b.id, "views": 1}]


def test_dashboard_counts_tracker_page_views(client, make_quote):
    quote = make_quote(status="sent")
    tracker = QuoteAnalyticsTracker(quote.id, "http://testserver", http=client, user_agent="pytest-agent")
    tracker.start()
    tracker.destroy()

    dashboard = client.get("/analytics/dashboard", headers=ADMIN_HEADERS).json()
    assert dashboard["summary"]["totalViews"] == 1
    assert dashboard["summary"]["uniqueSessions"] == 1
    assert dashboard["topQuotes"] == [{"quoteId": quote.id, "views": 1}]


def test_reporting_requires_api_key(client, make_quote):
    quote = make_quote()
    assert client.get(f"/quotes/{quote.id}/analytics/summary").status_code == 401
    assert client.get("/analytics/dashboard").status_code == 401


def test_public_analytics_routes_are_throttled(app, client, make_quote):
    quote = make_quote()
    app.state.analytics_throttler = RequestThrottler(window_seconds=60, max_requests=2)
    url = f"/quotes/{quote.id}/analytics/track"

    assert client.post(url, json={"event": "page_view"}).status_code == 201
    assert client.post(url, json={"event": "page_view"}).status_code == 201
    r = client.post(url, json={"event": "page_view"})
    assert r.status_code == 429
    assert r.json()["details"]["retryAfter"] >= 1
    assert int(r.headers["Retry-After"]) >= 1
