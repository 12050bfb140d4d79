"""Point-of-sale activation and batch switches.

Physical tickets leave the printer dormant.  They become admissible when
sold (``activate_credential`` binds the buyer) or when an admin releases
the whole batch (``activate_all_in_batch``).  ``set_batch_active`` is the
batch-level kill switch; it never touches the credentials themselves.
"""

from __future__ import annotations

import logging

from boxoffice.models.batch import Batch
from boxoffice.models.credential import Credential, CredentialKind
from boxoffice.repos.store import Store

logger = logging.getLogger(__name__)


class ActivationError(ValueError):
    pass


async def activate_credential(
    store: Store,
    kind: CredentialKind,
    credential_id: str,
    *,
    buyer_name: str,
    buyer_phone: str | None = None,
) -> Credential | None:
    """Bind a buyer to a physical credential and mark it active.

    Returns None when the credential does not exist or is not a
    physical-batch credential.
    """
    name = (buyer_name or "").strip()
    if not name:
        raise ActivationError("buyer_name is required")
    phone = (buyer_phone or "").strip() or None

    updated = await store.credentials_for(kind).activate(
        credential_id, buyer_name=name, buyer_phone=phone
    )
    if updated is None:
        logger.warning("Activation refused  kind=%s id=%s", kind, credential_id)
        return None

    logger.info(
        "Credential activated  kind=%s id=%s batch=%s",
        kind,
        credential_id,
        updated.batch_code,
        extra={"kind": kind, "credential_id": credential_id},
    )
    return updated


async def set_batch_active(
    store: Store, kind: CredentialKind, batch_code: str, is_active: bool
) -> Batch | None:
    batch = await store.batches_for(kind).set_active(batch_code, is_active)
    if batch is not None:
        logger.info(
            "Batch %s  kind=%s code=%s",
            "activated" if is_active else "deactivated",
            kind,
            batch_code,
            extra={"kind": kind, "batch_code": batch_code},
        )
    return batch


async def activate_all_in_batch(
    store: Store, kind: CredentialKind, batch_code: str
) -> int | None:
    """Activate every credential in the batch.  None if the batch is unknown."""
    if await store.batches_for(kind).get_by_code(batch_code) is None:
        return None
    count = await store.credentials_for(kind).set_active_for_batch(batch_code, True)
    logger.info(
        "Activated %d credentials  kind=%s batch=%s",
        count,
        kind,
        batch_code,
        extra={"kind": kind, "batch_code": batch_code},
    )
    return count


async def list_batches(store: Store, kind: CredentialKind) -> list[Batch]:
    return await store.batches_for(kind).list_all()
