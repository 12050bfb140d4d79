"""Credential identifiers and collision-safe batch codes.

Credential ids are random UUID4 strings and are never checked for
collisions.  Batch codes are chosen by an admin, so two issuance runs can
ask for the same one; the store's unique constraint decides, and the loser
retries with ``<code>-<epoch ms>-<attempt>``.  Callers must label their
credentials with the code this module returns, not the one they asked for.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable

from boxoffice.core.config import SETTINGS
from boxoffice.core.metrics import BATCH_CODE_CONFLICTS
from boxoffice.models.batch import Batch
from boxoffice.models.credential import CredentialKind
from boxoffice.repos.batch_repo import BatchCodeConflictError, BatchRepo

logger = logging.getLogger(__name__)


class BatchAllocationError(Exception):
    """Every attempt hit the unique constraint."""


def new_credential_id() -> str:
    return str(uuid.uuid4())


def suffixed_batch_code(requested: str, attempt: int, now_ms: int) -> str:
    return f"{requested}-{now_ms}-{attempt}"


async def allocate_batch(
    batches: BatchRepo,
    requested_code: str,
    *,
    kind: CredentialKind,
    event_id: str,
    count: int,
    card_type: str | None = None,
    price: int = 0,
    max_attempts: int | None = None,
    clock: Callable[[], float] = time.time,
) -> Batch:
    """Persist one Batch row and return it with its actual batch_code.

    Attempt 0 uses ``requested_code`` verbatim.  Only a unique-constraint
    conflict is retried; any other store error propagates immediately.
    """
    attempts = max_attempts if max_attempts is not None else SETTINGS.batch_code_max_attempts
    last_error: BatchCodeConflictError | None = None

    for attempt in range(attempts):
        code = (
            requested_code
            if attempt == 0
            else suffixed_batch_code(requested_code, attempt, int(clock() * 1000))
        )
        batch = Batch.new(
            batch_code=code,
            kind=kind,
            event_id=event_id,
            num_credentials=count,
            card_type=card_type,
            price=price,
        )
        try:
            persisted = await batches.add(batch)
        except BatchCodeConflictError as e:
            last_error = e
            BATCH_CODE_CONFLICTS.labels(kind=kind).inc()
            logger.warning(
                "Batch code taken  kind=%s code=%s attempt=%d/%d",
                kind,
                code,
                attempt + 1,
                attempts,
                extra={"kind": kind, "batch_code": code},
            )
            continue

        if persisted.batch_code != requested_code:
            logger.info(
                "Batch code reassigned  requested=%s actual=%s",
                requested_code,
                persisted.batch_code,
                extra={"kind": kind, "batch_code": persisted.batch_code},
            )
        return persisted

    raise BatchAllocationError(
        f"Failed to create batch record after {attempts} attempts: {last_error}"
    )
