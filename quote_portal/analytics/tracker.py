"""Client for streaming a customer's quote-page visit to the analytics API.

The view that renders the quote owns the tracker: it constructs one per
page visit, calls ``start()``, feeds it visibility, scroll and section
signals, drives ``tick()`` from its own timer, and calls
``flush_on_unload()`` and ``destroy()`` when the page goes away.

Telemetry is best effort. Every network failure is logged and swallowed;
no tracker method raises because the analytics API is unreachable.
"""

from __future__ import annotations

import hashlib
import logging
import random
import string
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional

import requests

from quote_portal.analytics.dedupe import RequestDeduplicator, request_key

logger = logging.getLogger(__name__)

EVENT_COOLDOWN_SECONDS = 3.0
DURATION_INTERVAL_SECONDS = 30.0
SECTION_VISIBLE_RATIO = 0.5
REQUEST_TIMEOUT_SECONDS = 5.0
PAGE_VIEW_EVENT = "page_view"

_BASE36 = string.digits + string.ascii_lowercase
_MOBILE_MARKERS = ("Android", "iPhone", "iPad", "iPod", "BlackBerry", "IEMobile", "Opera Mini")


def new_session_id(now: float) -> str:
    """``<epoch ms>-<9 base36 chars>``. Groups events; grants no access."""
    suffix = "".join(random.choices(_BASE36, k=9))
    return f"{int(now * 1000)}-{suffix}"


def device_info(user_agent: str, screen_resolution: str | None = None) -> dict[str, Optional[str]]:
    lowered = user_agent.lower()
    device_type = "desktop"
    if any(marker.lower() in lowered for marker in _MOBILE_MARKERS):
        device_type = "tablet" if "ipad" in lowered else "mobile"

    browser = "unknown"
    for name in ("Chrome", "Safari", "Firefox", "Edge"):
        if name in user_agent:
            browser = name
            break

    operating_system = "unknown"
    for marker, name in (("Windows", "Windows"), ("Mac", "macOS"), ("Linux", "Linux"), ("Android", "Android"), ("iOS", "iOS")):
        if marker in user_agent:
            operating_system = name
            break

    return {
        "deviceType": device_type,
        "browser": browser,
        "operatingSystem": operating_system,
        "screenResolution": screen_resolution,
    }


def device_fingerprint(user_agent: str, language: str = "", screen_resolution: str = "", tz_offset: int = 0) -> str:
    raw = "|".join([user_agent, language, screen_resolution, str(tz_offset)])
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:32]


class QuoteAnalyticsTracker:
    def __init__(
        self,
        quote_id: int,
        base_url: str,
        http: requests.Session | None = None,
        clock: Callable[[], float] = time.time,
        *,
        user_agent: str = "",
        screen_resolution: str | None = None,
        language: str = "",
        timezone: str | None = None,
        referrer: str | None = None,
        utm: dict[str, str] | None = None,
        deduplicator: RequestDeduplicator | None = None,
    ) -> None:
        self.quote_id = quote_id
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()
        self._clock = clock
        self.session_id = new_session_id(clock())
        self.user_agent = user_agent
        self.screen_resolution = screen_resolution
        self.fingerprint = device_fingerprint(user_agent, language, screen_resolution or "")
        self.timezone = timezone
        self.referrer = referrer
        self.utm = utm or {}
        self.deduplicator = deduplicator or RequestDeduplicator()

        self.start_time = clock()
        self.scroll_depth = 0
        self.sections_viewed: list[str] = []
        self.actions_performed: list[dict[str, Any]] = []
        self._last_event_at: float | None = None
        self._last_duration_report = self.start_time
        self._started = False
        self._destroyed = False
        self._beacons: ThreadPoolExecutor | None = None

    # --- lifecycle ------------------------------------------------------

    @property
    def active(self) -> bool:
        return self._started and not self._destroyed

    def start(self) -> None:
        if self._started:
            return
        self._started = True
        self.start_time = self._clock()
        self._last_duration_report = self.start_time
        self.track_event(PAGE_VIEW_EVENT)
        self.sync_session()

    def destroy(self, wait: bool = False) -> None:
        """Stop reporting. Pending beacons finish in the background unless ``wait``."""
        self._destroyed = True
        if self._beacons is not None:
            self._beacons.shutdown(wait=wait)
            self._beacons = None

    # --- events ---------------------------------------------------------

    def time_on_page(self) -> int:
        return int(self._clock() - self.start_time)

    def track_event(self, event: str, data: Any = None) -> bool:
        """Send one event. Returns False when suppressed by the cooldown or when sending failed."""
        if not self.active:
            return False
        now = self._clock()
        if self._last_event_at is not None and now - self._last_event_at < EVENT_COOLDOWN_SECONDS:
            logger.debug("Suppressed '%s' inside cooldown", event, extra={"session_id": self.session_id})
            return False
        self._last_event_at = now

        payload: dict[str, Any] = {
            "event": event,
            "eventData": data,
            "sessionId": self.session_id,
            **device_info(self.user_agent, self.screen_resolution),
            "timezone": self.timezone,
            "referrer": self.referrer,
            "utmSource": self.utm.get("utm_source"),
            "utmMedium": self.utm.get("utm_medium"),
            "utmCampaign": self.utm.get("utm_campaign"),
            "timeOnPage": self.time_on_page(),
            "scrollDepth": self.scroll_depth,
        }
        return self._send("POST", f"/quotes/{self.quote_id}/analytics/track", payload)

    def _record_action(self, action: str, **details: Any) -> None:
        self.actions_performed.append({"action": action, **details, "timestamp": int(self._clock() * 1000)})

    def track_button_click(self, button: str, context: Any = None) -> bool:
        sent = self.track_event("button_click", {"button": button, "context": context})
        self._record_action("button_click", button=button, context=context)
        return sent

    def track_form_submission(self, form: str, data: Any = None) -> bool:
        sent = self.track_event("form_submit", {"form": form, "data": data})
        self._record_action("form_submit", form=form)
        return sent

    def track_download(self, file_name: str, file_type: str | None = None) -> bool:
        sent = self.track_event("download", {"file": file_name, "type": file_type})
        self._record_action("download", file=file_name, type=file_type)
        return sent

    def track_image_interaction(self, action: str, context: Any = None) -> bool:
        sent = self.track_event("image_interaction", {"action": action, "context": context})
        self._record_action("image_interaction", details=action, context=context)
        return sent

    def track_customer_info(self, email: str | None = None, name: str | None = None) -> bool:
        if not self.active or not (email or name):
            return False
        payload = {"sessionId": self.session_id, "customerEmail": email, "customerName": name}
        return self._send("POST", f"/quotes/{self.quote_id}/analytics/session", payload)

    def on_visibility_change(self, hidden: bool) -> bool:
        return self.track_event("page_hidden" if hidden else "page_visible")

    # --- page signals ---------------------------------------------------

    def section_visible(self, section_id: str, ratio: float) -> bool:
        """Feed an intersection ratio for a section; reports each section once."""
        if not self.active or not section_id or ratio < SECTION_VISIBLE_RATIO:
            return False
        if section_id in self.sections_viewed:
            return False
        # Unsent sections stay unrecorded so a later intersection retries them
        if not self.track_event("section_view", {"section": section_id}):
            return False
        self.sections_viewed.append(section_id)
        return True

    def update_scroll_depth(self, scroll_top: float, document_height: float, viewport_height: float) -> bool:
        """Report the scroll position as a percentage; only increases are sent."""
        if not self.active:
            return False
        scrollable = document_height - viewport_height
        current = 100 if scrollable <= 0 else round(scroll_top / scrollable * 100)
        if current <= self.scroll_depth:
            return False
        self.scroll_depth = min(current, 100)
        self._send("PATCH", "/analytics/session/scroll", {"sessionId": self.session_id, "scrollDepth": self.scroll_depth})
        return True

    def tick(self) -> bool:
        """Call periodically; reports cumulative time on page every 30 seconds."""
        if not self.active:
            return False
        now = self._clock()
        if now - self._last_duration_report < DURATION_INTERVAL_SECONDS:
            return False
        self._last_duration_report = now
        self._send("PATCH", "/analytics/session/duration", self._duration_payload())
        return True

    def flush_on_unload(self) -> None:
        """Fire the final duration report without waiting for it."""
        if not self.active:
            return
        if self._beacons is None:
            self._beacons = ThreadPoolExecutor(max_workers=1, thread_name_prefix="quote-analytics-beacon")
        self._beacons.submit(self._send, "POST", "/analytics/session/duration", self._duration_payload())

    def sync_session(self) -> bool:
        """Upsert the visit's session record; identical concurrent upserts share one request."""
        if not self.active:
            return False
        path = f"/quotes/{self.quote_id}/analytics/session"
        payload = {
            "sessionId": self.session_id,
            "deviceFingerprint": self.fingerprint,
            "sectionsViewed": list(self.sections_viewed),
            "actionsPerformed": list(self.actions_performed),
        }
        return self.deduplicator.run(request_key("POST", path, payload), lambda: self._send("POST", path, payload))

    # --- transport ------------------------------------------------------

    def _duration_payload(self) -> dict[str, Any]:
        return {"sessionId": self.session_id, "duration": self.time_on_page()}

    def _send(self, method: str, path: str, payload: dict[str, Any]) -> bool:
        try:
            response = self.http.request(method, f"{self.base_url}{path}", json=payload, timeout=REQUEST_TIMEOUT_SECONDS)
            response.raise_for_status()
        except requests.RequestException as exc:
            logger.warning(
                "Analytics %s %s failed: %s", method, path, exc, extra={"session_id": self.session_id}
            )
            return False
        return True
