"""Single-ticket download.

Public like the verify page: the ticket id is the bearer secret, and the
buyer downloading their own ticket has no back-office account.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from boxoffice.api.dependencies import CompositorDep, StoreDep
from boxoffice.api.ratelimit import require_rate_limit
from boxoffice.api.views import pdf_response
from boxoffice.services import issuance_service
from boxoffice.services.rate_limiter import RateLimitConfig

router = APIRouter(prefix="/api/tickets", tags=["documents"])

# Rendering is expensive; keep anonymous downloads slow
_download_limit = require_rate_limit(
    RateLimitConfig(capacity=10, refill_rate=0.5), bucket="document"
)


@router.get("/{ticket_id}/document", dependencies=[Depends(_download_limit)])
async def ticket_document(
    ticket_id: str, store: StoreDep, compositor: CompositorDep
) -> Response:
    found = await issuance_service.credential_document(
        store, "ticket", ticket_id, compositor=compositor
    )
    if found is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Ticket not found")
    ticket, document = found
    return pdf_response(document, f"ticket-{ticket.short_id}.pdf")
