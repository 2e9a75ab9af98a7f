from __future__ import annotations

from tests.conftest import ADMIN_HEADERS, quote_payload


def test_draft_sent_viewed_declined(client, enqueued):
    created = client.post("/admin/quotes", json=quote_payload(), headers=ADMIN_HEADERS).json()
    assert created["status"] == "draft"
    token = created["magicToken"]

    sent = client.post(f"/admin/quotes/{created['id']}/send", headers=ADMIN_HEADERS).json()
    assert sent["status"] == "sent"

    viewed = client.get(f"/quotes/{token}").json()
    assert viewed["status"] == "viewed"
    assert viewed["viewedAt"] is not None

    r = client.post(f"/quotes/{token}/respond", json={"response": "declined", "notes": "too expensive"})
    assert r.status_code == 200

    final = client.get(f"/admin/quotes/{created['id']}", headers=ADMIN_HEADERS).json()
    assert final["status"] == "declined"
    assert final["customerResponse"] == "declined"
    assert final["customerNotes"] == "too expensive"
    assert final["respondedAt"] is not None
    assert final["viewedAt"] == viewed["viewedAt"]
    assert [name for name, _ in enqueued] == ["send_quote_link_email"]


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}
