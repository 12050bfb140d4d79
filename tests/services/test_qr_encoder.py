from __future__ import annotations

import base64
import json

from boxoffice.models.credential import Credential
from boxoffice.services import qr_encoder
from boxoffice.services.scan_normalizer import normalize

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


def _ticket(**overrides) -> Credential:
    fields = {
        "id": "6f1c2b9e-3a4d-4e5f-8a9b-0c1d2e3f4a5b",
        "kind": "ticket",
        "event_id": "evt-1",
        "batch_code": "SPRING24",
        "purchase_channel": "physical_batch",
    }
    fields.update(overrides)
    return Credential(**fields)


def test_ticket_payload_is_compact_json() -> None:
    payload = qr_encoder.qr_payload(_ticket())
    assert " " not in payload
    assert json.loads(payload) == {
        "ticket_id": "6f1c2b9e-3a4d-4e5f-8a9b-0c1d2e3f4a5b",
        "batch_code": "SPRING24",
        "event_id": "evt-1",
    }


def test_invitation_card_payload_uses_card_id_and_type() -> None:
    card = _ticket(kind="invitation_card", card_type="VIP")
    data = json.loads(qr_encoder.qr_payload(card))
    assert data["card_id"] == card.id
    assert data["card_type"] == "VIP"
    assert "ticket_id" not in data


def test_payload_round_trips_through_the_scan_normalizer() -> None:
    ticket = _ticket()
    card = _ticket(id="0a1b2c3d-aaaa-4bbb-8ccc-123456789abc", kind="invitation_card")
    assert normalize(qr_encoder.qr_payload(ticket)) == ticket.id
    assert normalize(qr_encoder.qr_payload(card)) == card.id


def test_encode_returns_png_bytes() -> None:
    png = qr_encoder.encode(qr_encoder.qr_payload(_ticket()))
    assert png.startswith(PNG_MAGIC)


def test_encode_is_deterministic() -> None:
    payload = qr_encoder.qr_payload(_ticket())
    assert qr_encoder.encode(payload) == qr_encoder.encode(payload)


def test_data_uri_wraps_the_png() -> None:
    payload = qr_encoder.qr_payload(_ticket())
    uri = qr_encoder.encode_data_uri(payload)
    assert uri.startswith("data:image/png;base64,")
    assert base64.b64decode(uri.split(",", 1)[1]) == qr_encoder.encode(payload)
