"""Back-office batch management and point-of-sale activation."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import Response
from pydantic import BaseModel

from boxoffice.api.dependencies import AdminDep, CompositorDep, StoreDep
from boxoffice.api.views import batch_view, credential_view, pdf_response
from boxoffice.models.credential import CredentialKind, kind_traits
from boxoffice.services import activation_service, issuance_service
from boxoffice.services.activation_service import ActivationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["batches"])


class BatchToggle(BaseModel):
    is_active: bool


class TicketActivation(BaseModel):
    ticket_id: str
    buyer_name: str
    buyer_phone: str | None = None


def _batch_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Batch not found")


@router.get("/batches")
async def list_batches(
    store: StoreDep, _admin: AdminDep, kind: CredentialKind = "ticket"
) -> dict:
    batches = await activation_service.list_batches(store, kind)
    return {"batches": [batch_view(b) for b in batches]}


@router.patch("/batches/{kind}/{batch_code}")
async def toggle_batch(
    kind: CredentialKind,
    batch_code: str,
    body: BatchToggle,
    store: StoreDep,
    principal: AdminDep,
) -> dict:
    batch = await activation_service.set_batch_active(
        store, kind, batch_code, body.is_active
    )
    if batch is None:
        raise _batch_not_found()
    logger.info(
        "Batch toggled by user=%s code=%s is_active=%s",
        principal.user_id,
        batch_code,
        body.is_active,
    )
    return {"batch": batch_view(batch)}


@router.post("/batches/{kind}/{batch_code}/activate-all")
async def activate_all(
    kind: CredentialKind,
    batch_code: str,
    store: StoreDep,
    _admin: AdminDep,
) -> dict:
    count = await activation_service.activate_all_in_batch(store, kind, batch_code)
    if count is None:
        raise _batch_not_found()
    return {"batch_code": batch_code, "activated": count}


@router.get("/batches/{kind}/{batch_code}/document")
async def batch_document(
    kind: CredentialKind,
    batch_code: str,
    store: StoreDep,
    compositor: CompositorDep,
    _admin: AdminDep,
) -> Response:
    found = await issuance_service.batch_document(
        store, kind, batch_code, compositor=compositor
    )
    if found is None:
        raise _batch_not_found()
    batch, document = found
    filename = f"{kind_traits(kind).file_prefix}-{batch.batch_code}.pdf"
    return pdf_response(document, filename, batch_code=batch.batch_code)


@router.post("/tickets/activate")
async def activate_ticket(
    body: TicketActivation,
    store: StoreDep,
    principal: AdminDep,
) -> dict:
    try:
        ticket = await activation_service.activate_credential(
            store,
            "ticket",
            body.ticket_id.strip(),
            buyer_name=body.buyer_name,
            buyer_phone=body.buyer_phone,
        )
    except ActivationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    if ticket is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Ticket not found or not a physical batch ticket",
        )
    logger.info("Ticket sold by user=%s id=%s", principal.user_id, ticket.id)
    return {"success": True, "ticket": credential_view(ticket)}
