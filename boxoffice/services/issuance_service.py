"""Batch issuance: validate -> generate -> allocate -> persist -> render.

Ordering matters.  The batch row is allocated before any credential is
written, and every credential is relabelled with the code the allocator
returned: after a collision the requested "SPRING24" may have become
"SPRING24-1709971200000-1", and the QR payloads and the PDF filename must
say so.

If the credential insert fails, the batch just created is deleted again
before the error is raised.  With PostgreSQL the request transaction rolls
back as well, so either way no empty batch is left behind.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass

from boxoffice.core.config import SETTINGS
from boxoffice.core.metrics import CREDENTIALS_ISSUED
from boxoffice.models.batch import Batch
from boxoffice.models.credential import Credential, CredentialKind, kind_traits
from boxoffice.models.event import Event
from boxoffice.repos.store import Store
from boxoffice.services.document_compositor import DocumentCompositor
from boxoffice.services.identifiers import allocate_batch, new_credential_id

logger = logging.getLogger(__name__)


class IssuanceError(Exception):
    """Issuance aborted.  ``step`` names the stage that failed."""

    status_code = 500

    def __init__(self, message: str, *, step: str) -> None:
        super().__init__(message)
        self.message = message
        self.step = step


class IssuanceValidationError(IssuanceError):
    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message, step="validate")


class EventNotFoundError(IssuanceError):
    status_code = 404

    def __init__(self, event_id: str) -> None:
        super().__init__("Event not found", step="validate")
        self.event_id = event_id


@dataclass(frozen=True, slots=True)
class IssuanceRequest:
    kind: CredentialKind
    event_id: str | None
    count: int | None
    batch_code: str | None
    card_type: str | None = None
    price: int = 0


@dataclass(frozen=True, slots=True)
class IssuedBatch:
    batch: Batch
    credentials: tuple[Credential, ...]
    document: bytes

    @property
    def filename(self) -> str:
        return f"{kind_traits(self.batch.kind).file_prefix}-{self.batch.batch_code}.pdf"


def validate_request(
    request: IssuanceRequest, *, max_batch_size: int | None = None
) -> None:
    """Reject malformed requests before touching the store."""
    traits = kind_traits(request.kind)
    limit = max_batch_size if max_batch_size is not None else SETTINGS.max_batch_size

    event_id = (request.event_id or "").strip()
    batch_code = (request.batch_code or "").strip()
    if not event_id or request.count is None or not batch_code:
        raise IssuanceValidationError(
            f"Missing required fields: event_id, {traits.count_field}, batch_code"
        )
    if not 1 <= request.count <= limit:
        raise IssuanceValidationError(
            f"{traits.count_field} must be between 1 and {limit}"
        )
    if "/" in batch_code:
        # Batch codes travel as a single URL path segment in the admin routes.
        raise IssuanceValidationError("batch_code must not contain '/'")
    if request.price < 0:
        raise IssuanceValidationError("price must not be negative")


def generate_credentials(
    request: IssuanceRequest, provisional_code: str
) -> list[Credential]:
    return [
        Credential.new_batch_member(
            id=new_credential_id(),
            kind=request.kind,
            event_id=request.event_id.strip(),  # type: ignore[union-attr]
            batch_code=provisional_code,
            card_type=request.card_type,
            price=request.price,
        )
        for _ in range(request.count)  # type: ignore[arg-type]
    ]


async def issue_batch(
    store: Store,
    request: IssuanceRequest,
    *,
    compositor: DocumentCompositor,
    max_batch_size: int | None = None,
    max_attempts: int | None = None,
) -> IssuedBatch:
    validate_request(request, max_batch_size=max_batch_size)
    event_id = request.event_id.strip()  # type: ignore[union-attr]
    requested_code = request.batch_code.strip()  # type: ignore[union-attr]
    kind = request.kind

    event: Event | None = await store.events.get(event_id)
    if event is None:
        raise EventNotFoundError(event_id)

    pending = generate_credentials(request, requested_code)

    batches = store.batches_for(kind)
    try:
        batch = await allocate_batch(
            batches,
            requested_code,
            kind=kind,
            event_id=event_id,
            count=len(pending),
            card_type=request.card_type,
            price=request.price,
            max_attempts=max_attempts,
        )
    except Exception as e:
        logger.error("Batch allocation failed  code=%s: %s", requested_code, e)
        raise IssuanceError(str(e), step="allocate") from e

    credentials = [dataclasses.replace(c, batch_code=batch.batch_code) for c in pending]

    try:
        await store.credentials_for(kind).add_many(credentials)
    except Exception as e:
        logger.exception(
            "Credential insert failed, removing batch  code=%s", batch.batch_code
        )
        await _discard_batch(batches, batch.batch_code)
        label = "tickets" if kind == "ticket" else "invitation cards"
        raise IssuanceError(f"Failed to create {label}: {e}", step="persist") from e

    try:
        document = await compositor.compose(credentials, event)
    except Exception as e:
        raise IssuanceError(f"Failed to render document: {e}", step="render") from e

    CREDENTIALS_ISSUED.labels(kind=kind).inc(len(credentials))
    logger.info(
        "Issued %d %s  event=%s batch=%s",
        len(credentials),
        kind,
        event_id,
        batch.batch_code,
        extra={"kind": kind, "batch_code": batch.batch_code},
    )
    return IssuedBatch(batch=batch, credentials=tuple(credentials), document=document)


async def _discard_batch(batches, batch_code: str) -> None:
    try:
        await batches.delete(batch_code)
    except Exception:
        # The caller is already failing; the transaction rollback covers Pg.
        logger.exception("Could not remove orphaned batch  code=%s", batch_code)


async def batch_document(
    store: Store,
    kind: CredentialKind,
    batch_code: str,
    *,
    compositor: DocumentCompositor,
) -> tuple[Batch, bytes] | None:
    """Re-render every credential of an existing batch.  None if unknown."""
    batch = await store.batches_for(kind).get_by_code(batch_code)
    if batch is None:
        return None
    credentials = await store.credentials_for(kind).list_by_batch(batch_code)
    event = await store.events.get(batch.event_id)
    if not credentials or event is None:
        return None
    return batch, await compositor.compose(credentials, event)


async def credential_document(
    store: Store,
    kind: CredentialKind,
    credential_id: str,
    *,
    compositor: DocumentCompositor,
) -> tuple[Credential, bytes] | None:
    """Single-page document for one credential.  None if unknown."""
    credential = await store.credentials_for(kind).get_by_id(credential_id)
    if credential is None:
        return None
    event = await store.events.get(credential.event_id)
    if event is None:
        return None
    return credential, await compositor.compose([credential], event)
