"""Batch issuance endpoints.

Both return the rendered PDF directly; the admin UI turns the response
into a download.  Failures come back as ``{"error": "..."}`` through the
IssuanceError handler registered in main.py.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import Response
from pydantic import BaseModel

from boxoffice.api.dependencies import AdminDep, CompositorDep, StoreDep
from boxoffice.api.views import pdf_response
from boxoffice.services import issuance_service
from boxoffice.services.issuance_service import IssuanceRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["issuance"])


# Every field optional so a missing one is reported by issue_batch with the
# message the admin UI expects, instead of a 422 validation dump.
class TicketBatchRequest(BaseModel):
    event_id: str | None = None
    num_tickets: int | None = None
    batch_code: str | None = None
    price: int = 0


class InvitationCardBatchRequest(BaseModel):
    event_id: str | None = None
    num_cards: int | None = None
    batch_code: str | None = None
    card_type: str | None = None


@router.post("/tickets/generate-batch")
async def generate_ticket_batch(
    body: TicketBatchRequest,
    store: StoreDep,
    compositor: CompositorDep,
    principal: AdminDep,
) -> Response:
    logger.info(
        "Ticket batch requested  user=%s event=%s count=%s code=%s",
        principal.user_id,
        body.event_id,
        body.num_tickets,
        body.batch_code,
    )
    issued = await issuance_service.issue_batch(
        store,
        IssuanceRequest(
            kind="ticket",
            event_id=body.event_id,
            count=body.num_tickets,
            batch_code=body.batch_code,
            price=body.price,
        ),
        compositor=compositor,
    )
    return pdf_response(
        issued.document, issued.filename, batch_code=issued.batch.batch_code
    )


@router.post("/invitation-cards")
async def generate_invitation_cards(
    body: InvitationCardBatchRequest,
    store: StoreDep,
    compositor: CompositorDep,
    principal: AdminDep,
) -> Response:
    logger.info(
        "Invitation card batch requested  user=%s event=%s count=%s code=%s",
        principal.user_id,
        body.event_id,
        body.num_cards,
        body.batch_code,
    )
    card_type = (body.card_type or "").strip() or None
    issued = await issuance_service.issue_batch(
        store,
        IssuanceRequest(
            kind="invitation_card",
            event_id=body.event_id,
            count=body.num_cards,
            batch_code=body.batch_code,
            card_type=card_type,
        ),
        compositor=compositor,
    )
    return pdf_response(
        issued.document, issued.filename, batch_code=issued.batch.batch_code
    )
