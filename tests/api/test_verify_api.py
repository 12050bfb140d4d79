"""Scan verification over HTTP.

Covers both credential kinds, the GET (path) and POST (body) forms, and
the status codes the door scanner UI branches on.
"""

from __future__ import annotations

import json
from urllib.parse import quote

from fastapi.testclient import TestClient

from boxoffice.models.batch import Batch
from boxoffice.models.credential import Credential
from boxoffice.repos.store import Store
from tests.conftest import seed_credential, seed_event

TICKET_ID = "6f1c2b9e-3a4d-4e5f-8a9b-0c1d2e3f4a5b"
CARD_ID = "0a1b2c3d-aaaa-4bbb-8ccc-123456789abc"


def _seed(store: Store, **ticket_overrides) -> Credential:
    seed_event(store)
    store.ticket_batches._by_code["SPRING24"] = Batch(  # type: ignore[attr-defined]
        batch_code="SPRING24", kind="ticket", event_id="evt-1", num_credentials=1
    )
    fields = {
        "id": TICKET_ID,
        "kind": "ticket",
        "event_id": "evt-1",
        "batch_code": "SPRING24",
        "purchase_channel": "physical_batch",
        "is_active": True,
        "price": 10000,
    }
    fields.update(ticket_overrides)
    return seed_credential(store, Credential(**fields))


def test_valid_then_already_used(client: TestClient, app_store: Store) -> None:
    _seed(app_store)

    first = client.get(f"/api/tickets/verify/{TICKET_ID}")
    second = client.get(f"/api/tickets/verify/{TICKET_ID}")

    assert first.status_code == 200
    body = first.json()
    assert body["valid"] is True
    assert body["message"] == "Valid ticket"
    assert body["ticket"]["id"] == TICKET_ID
    assert body["ticket"]["used"] is True
    assert body["ticket"]["price"] == 10000
    assert body["ticket"]["event"]["title"] == "Spring Showcase"

    assert second.status_code == 200
    assert second.json()["valid"] is False
    assert second.json()["message"] == "Ticket already used"


def test_url_encoded_qr_payload_in_path(client: TestClient, app_store: Store) -> None:
    _seed(app_store)
    payload = json.dumps({"ticket_id": TICKET_ID, "batch_code": "SPRING24"})

    resp = client.get(f"/api/tickets/verify/{quote(payload, safe='')}")

    assert resp.status_code == 200
    assert resp.json()["valid"] is True


def test_post_with_raw_scan_text(client: TestClient, app_store: Store) -> None:
    _seed(app_store)
    resp = client.post(
        "/api/tickets/verify", json={"raw_code": f'{{"ticket_id":"{TICKET_ID}"}}'}
    )
    assert resp.status_code == 200
    assert resp.json()["valid"] is True


def test_unknown_ticket_is_404(client: TestClient) -> None:
    resp = client.get("/api/tickets/verify/00000000-0000-4000-8000-000000000000")
    assert resp.status_code == 404
    assert resp.json() == {"valid": False, "message": "Ticket not found"}


def test_blank_scan_is_400(client: TestClient) -> None:
    resp = client.post("/api/tickets/verify", json={"raw_code": "  "})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Please enter a ticket ID"


def test_dormant_ticket_is_not_activated(client: TestClient, app_store: Store) -> None:
    _seed(app_store, is_active=False)
    resp = client.get(f"/api/tickets/verify/{TICKET_ID}")
    assert resp.status_code == 200
    assert resp.json()["valid"] is False
    assert resp.json()["message"] == "Ticket not activated"
    assert resp.json()["ticket"]["used"] is False


def test_deactivated_batch(client: TestClient, app_store: Store, admin_headers: dict) -> None:
    _seed(app_store)
    client.patch(
        "/admin/batches/ticket/SPRING24", json={"is_active": False}, headers=admin_headers
    )

    resp = client.get(f"/api/tickets/verify/{TICKET_ID}")

    assert resp.json()["message"] == "Ticket batch has been deactivated"


def test_invitation_card_routes(client: TestClient, app_store: Store) -> None:
    seed_event(app_store)
    seed_credential(
        app_store,
        Credential(
            id=CARD_ID,
            kind="invitation_card",
            event_id="evt-1",
            batch_code=None,
            purchase_channel="online",
            is_active=True,
            card_type="VIP",
        ),
    )

    first = client.get(f"/api/invitation-cards/verify/{CARD_ID}")
    second = client.post("/api/invitation-cards/verify", json={"raw_code": CARD_ID})

    assert first.json()["message"] == "Valid invitation card"
    assert first.json()["card"]["card_type"] == "VIP"
    assert "ticket" not in first.json()
    assert second.json()["message"] == "Invitation card already used"


# ---- operator override ----


def test_redeem_marks_used(client: TestClient, app_store: Store, admin_headers: dict) -> None:
    _seed(app_store, is_active=False)

    resp = client.put(
        f"/api/tickets/verify/{TICKET_ID}", json={"used": True}, headers=admin_headers
    )

    assert resp.status_code == 200
    assert resp.json() == {
        "valid": True,
        "message": "Ticket marked as used",
        "ticket": {"id": TICKET_ID, "used": True},
    }


def test_redeem_reset_allows_a_rescan(
    client: TestClient, app_store: Store, admin_headers: dict
) -> None:
    _seed(app_store, used=True)

    resp = client.put(
        f"/api/tickets/verify/{TICKET_ID}", json={"used": False}, headers=admin_headers
    )

    assert resp.json()["message"] == "Ticket status updated"
    assert client.get(f"/api/tickets/verify/{TICKET_ID}").json()["valid"] is True


def test_redeem_unknown(client: TestClient, admin_headers: dict) -> None:
    resp = client.put(
        "/api/invitation-cards/verify/missing", json={"used": True}, headers=admin_headers
    )
    assert resp.status_code == 404
    assert resp.json() == {"valid": False, "message": "Invitation card not found"}


def test_redeem_requires_admin(client: TestClient, app_store: Store, token: str) -> None:
    _seed(app_store)
    assert client.put(f"/api/tickets/verify/{TICKET_ID}", json={"used": True}).status_code == 401
    resp = client.put(
        f"/api/tickets/verify/{TICKET_ID}",
        json={"used": True},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert resp.status_code == 403
