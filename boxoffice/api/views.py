"""JSON and PDF shapes shared by the routers."""

from __future__ import annotations

from urllib.parse import quote

from fastapi.responses import Response

from boxoffice.models.batch import Batch
from boxoffice.models.credential import Credential
from boxoffice.models.event import Event


def credential_view(credential: Credential, event: Event | None = None) -> dict:
    view: dict = {
        "id": credential.id,
        "short_id": credential.short_id,
        "event_id": credential.event_id,
        "batch_code": credential.batch_code,
        "purchase_channel": credential.purchase_channel,
        "is_active": credential.is_active,
        "used": credential.used,
        "buyer_name": credential.buyer_name,
        "buyer_phone": credential.buyer_phone,
        "confirmation_code": credential.confirmation_code,
    }
    if credential.kind == "ticket":
        view["price"] = credential.price
    else:
        view["card_type"] = credential.card_type
    if event is not None:
        view["event"] = {
            "id": event.id,
            "title": event.title,
            "date": event.date.isoformat() if event.date else None,
            "location": event.location,
        }
    return view


def batch_view(batch: Batch) -> dict:
    return {
        "batch_code": batch.batch_code,
        "kind": batch.kind,
        "event_id": batch.event_id,
        "num_credentials": batch.num_credentials,
        "card_type": batch.card_type,
        "price": batch.price,
        "is_active": batch.is_active,
        "created_at": batch.created_at,
    }


def pdf_response(document: bytes, filename: str, *, batch_code: str | None = None) -> Response:
    ascii_name = filename.encode("ascii", "replace").decode("ascii").replace('"', "")
    headers = {
        "Content-Disposition": (
            f'attachment; filename="{ascii_name}"; '
            f"filename*=UTF-8''{quote(filename)}"
        ),
    }
    if batch_code is not None:
        headers["X-Batch-Code"] = quote(batch_code, safe="-_.~")
    return Response(content=document, media_type="application/pdf", headers=headers)
