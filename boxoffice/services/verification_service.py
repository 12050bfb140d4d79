"""Scan verification and redemption.

A credential moves through three states, computed from its stored flags:

  issued     -> activated   (point-of-sale activation, buyer binding, or
                             an admin "activate all" on the batch)
  activated  -> redeemed    (verify: first successful scan consumes it)
  *          -> redeemed / back   (redeem: operator override)

``verify`` reports and consumes in one call.  The consume step is a
compare-and-swap in the store, and its result alone decides between
"valid" and "already used": two scanners racing on one ticket get exactly
one "valid".

Domain outcomes (not found, already used, not activated ...) are results,
not exceptions.  Store errors propagate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Literal

from boxoffice.core.metrics import VERIFICATIONS
from boxoffice.models.batch import Batch
from boxoffice.models.credential import Credential, CredentialKind, kind_traits
from boxoffice.models.event import Event
from boxoffice.repos.store import Store
from boxoffice.services.scan_normalizer import ScanNormalizationError, normalize

logger = logging.getLogger(__name__)

CredentialState = Literal["issued", "activated", "redeemed"]

Outcome = Literal[
    "valid",
    "unreadable",
    "not_found",
    "already_used",
    "not_activated",
    "batch_not_found",
    "batch_deactivated",
]


@dataclass(frozen=True, slots=True)
class VerificationResult:
    valid: bool
    outcome: Outcome
    message: str
    credential: Credential | None = None
    event: Event | None = None


@dataclass(frozen=True, slots=True)
class RedemptionResult:
    credential: Credential
    message: str


def credential_state(credential: Credential, batch: Batch | None) -> CredentialState:
    if credential.used:
        return "redeemed"
    if _blocking_outcome(credential, batch) is None:
        return "activated"
    return "issued"


def _blocking_outcome(credential: Credential, batch: Batch | None) -> Outcome | None:
    """Why an unused credential may not be admitted, or None if it may.

    A buyer-bound credential skips both the activation and the batch
    checks: once sold at the door it stays valid even if its batch is
    later switched off.
    """
    if not credential.is_physical:
        return None
    bound = credential.has_buyer_binding
    if not (credential.is_active or bound):
        return "not_activated"
    if bound:
        return None
    if batch is None:
        return "batch_not_found"
    if not batch.is_active:
        return "batch_deactivated"
    return None


_MESSAGES: dict[Outcome, str] = {
    "valid": "Valid {lower}",
    "not_found": "{label} not found",
    "already_used": "{label} already used",
    "not_activated": "{label} not activated",
    "batch_not_found": "{label} batch not found",
    "batch_deactivated": "{label} batch has been deactivated",
}


def _message(outcome: Outcome, kind: CredentialKind) -> str:
    label = kind_traits(kind).label
    return _MESSAGES[outcome].format(label=label, lower=label.lower())


def _result(
    kind: CredentialKind,
    outcome: Outcome,
    *,
    message: str | None = None,
    credential: Credential | None = None,
    event: Event | None = None,
) -> VerificationResult:
    VERIFICATIONS.labels(kind=kind, outcome=outcome).inc()
    log = logger.info if outcome == "valid" else logger.warning
    log(
        "Verification %s  kind=%s id=%s",
        outcome,
        kind,
        credential.id if credential else "-",
        extra={
            "kind": kind,
            "outcome": outcome,
            "credential_id": credential.id if credential else None,
        },
    )
    return VerificationResult(
        valid=outcome == "valid",
        outcome=outcome,
        message=message if message is not None else _message(outcome, kind),
        credential=credential,
        event=event,
    )


async def verify(store: Store, kind: CredentialKind, raw_code: str | None) -> VerificationResult:
    """Resolve ``raw_code`` and, if the credential is admissible, consume it."""
    try:
        credential_id = normalize(raw_code)
    except ScanNormalizationError as e:
        return _result(kind, "unreadable", message=str(e))

    credentials = store.credentials_for(kind)
    credential = await credentials.get_by_id(credential_id)
    if credential is None:
        return _result(kind, "not_found")

    event = await store.events.get(credential.event_id)

    if credential.used:
        return _result(kind, "already_used", credential=credential, event=event)

    batch = None
    if credential.is_physical and credential.batch_code:
        batch = await store.batches_for(kind).get_by_code(credential.batch_code)

    blocked = _blocking_outcome(credential, batch)
    if blocked is not None:
        return _result(kind, blocked, credential=credential, event=event)

    consumed = await credentials.mark_used(credential.id)
    if consumed is None:
        # Lost the race to a concurrent scan of the same credential
        latest = await credentials.get_by_id(credential.id)
        return _result(kind, "already_used", credential=latest or credential, event=event)

    return _result(kind, "valid", credential=consumed, event=event)


async def redeem(
    store: Store, kind: CredentialKind, credential_id: str, used: bool
) -> RedemptionResult | None:
    """Operator override: set ``used`` without re-checking validity.

    Returns None when the credential does not exist.
    """
    updated = await store.credentials_for(kind).set_used(credential_id, used)
    if updated is None:
        return None

    label = kind_traits(kind).label
    message = f"{label} marked as used" if used else f"{label} status updated"
    logger.info(
        "Redemption override  kind=%s id=%s used=%s",
        kind,
        credential_id,
        used,
        extra={"kind": kind, "credential_id": credential_id},
    )
    return RedemptionResult(credential=updated, message=message)
