"""Scan verification endpoints (public) and the operator override (admin).

  GET  /api/tickets/verify/{raw_code}   verify and consume
  POST /api/tickets/verify              same, raw scan text in the body
  PUT  /api/tickets/verify/{ticket_id}  set ``used`` explicitly

The invitation-card routes are identical under /api/invitation-cards and
answer with a ``card`` key instead of ``ticket``.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from boxoffice.api.dependencies import AdminDep, StoreDep
from boxoffice.api.ratelimit import require_rate_limit
from boxoffice.api.views import credential_view
from boxoffice.models.credential import CredentialKind, kind_traits
from boxoffice.services import verification_service
from boxoffice.services.rate_limiter import RateLimitConfig
from boxoffice.services.verification_service import VerificationResult

logger = logging.getLogger(__name__)

router = APIRouter(tags=["verify"])

# A busy door scans a few tickets a second per device
_verify_limit = require_rate_limit(
    RateLimitConfig(capacity=120, refill_rate=4.0), bucket="verify"
)

_STATUS_BY_OUTCOME = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "unreadable": status.HTTP_400_BAD_REQUEST,
}


class ScanRequest(BaseModel):
    raw_code: str | None = None


class UsedUpdate(BaseModel):
    used: bool


def _response_key(kind: CredentialKind) -> str:
    return "ticket" if kind == "ticket" else "card"


def verification_response(kind: CredentialKind, result: VerificationResult) -> JSONResponse:
    body: dict = {"valid": result.valid, "message": result.message}
    if result.credential is not None:
        body[_response_key(kind)] = credential_view(result.credential, result.event)
    return JSONResponse(
        status_code=_STATUS_BY_OUTCOME.get(result.outcome, status.HTTP_200_OK),
        content=body,
    )


def _register(prefix: str, kind: CredentialKind) -> None:
    key = _response_key(kind)
    label = kind_traits(kind).label

    @router.post(
        f"{prefix}/verify",
        dependencies=[Depends(_verify_limit)],
        name=f"verify_{kind}_scan",
    )
    async def verify_scan(body: ScanRequest, store: StoreDep) -> JSONResponse:
        result = await verification_service.verify(store, kind, body.raw_code)
        return verification_response(kind, result)

    @router.get(
        f"{prefix}/verify/{{raw_code:path}}",
        dependencies=[Depends(_verify_limit)],
        name=f"verify_{kind}",
    )
    async def verify_code(raw_code: str, store: StoreDep) -> JSONResponse:
        result = await verification_service.verify(store, kind, raw_code)
        return verification_response(kind, result)

    @router.put(f"{prefix}/verify/{{credential_id}}", name=f"redeem_{kind}")
    async def redeem(
        credential_id: str,
        body: UsedUpdate,
        store: StoreDep,
        principal: AdminDep,
    ) -> JSONResponse:
        result = await verification_service.redeem(store, kind, credential_id, body.used)
        if result is None:
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content={"valid": False, "message": f"{label} not found"},
            )
        logger.info(
            "Override by user=%s id=%s used=%s", principal.user_id, credential_id, body.used
        )
        return JSONResponse(
            content={
                "valid": True,
                "message": result.message,
                key: {"id": result.credential.id, "used": result.credential.used},
            }
        )


_register("/api/tickets", "ticket")
_register("/api/invitation-cards", "invitation_card")
