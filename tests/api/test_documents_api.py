from __future__ import annotations

from fastapi.testclient import TestClient

from boxoffice.models.credential import Credential
from boxoffice.repos.store import Store
from tests.conftest import FakeCompositor, seed_credential, seed_event

TICKET_ID = "6f1c2b9e-3a4d-4e5f-8a9b-0c1d2e3f4a5b"


def test_single_ticket_document(
    client: TestClient, app_store: Store, fake_compositor: FakeCompositor
) -> None:
    seed_event(app_store)
    seed_credential(
        app_store,
        Credential(
            id=TICKET_ID,
            kind="ticket",
            event_id="evt-1",
            batch_code=None,
            purchase_channel="online",
            is_active=True,
            buyer_name="Jane Doe",
            confirmation_code="CONF-42",
        ),
    )

    resp = client.get(f"/api/tickets/{TICKET_ID}/document")

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert 'filename="ticket-6F1C2B9E-3A4.pdf"' in resp.headers["content-disposition"]
    assert "x-batch-code" not in resp.headers
    rendered, _ = fake_compositor.calls[0]
    assert [c.id for c in rendered] == [TICKET_ID]


def test_unknown_ticket_document(client: TestClient, fake_compositor: FakeCompositor) -> None:
    resp = client.get("/api/tickets/missing/document")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Ticket not found"
    assert fake_compositor.calls == []


def test_document_downloads_are_rate_limited(
    client: TestClient, fake_compositor: FakeCompositor
) -> None:
    statuses = [client.get("/api/tickets/missing/document").status_code for _ in range(15)]
    assert 429 in statuses
