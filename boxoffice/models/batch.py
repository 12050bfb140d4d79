from __future__ import annotations

import time
from dataclasses import dataclass

from boxoffice.models.credential import CredentialKind


@dataclass(frozen=True, slots=True)
class Batch:
    """A named group of credentials issued by one request.

    ``batch_code`` is unique per kind.  ``is_active`` is the admin gate
    that invalidates every member not individually bound to a buyer.
    """

    batch_code: str
    kind: CredentialKind
    event_id: str
    num_credentials: int
    card_type: str | None = None
    price: int = 0
    is_active: bool = True
    created_at: int = 0

    @staticmethod
    def new(
        *,
        batch_code: str,
        kind: CredentialKind,
        event_id: str,
        num_credentials: int,
        card_type: str | None = None,
        price: int = 0,
    ) -> Batch:
        return Batch(
            batch_code=batch_code,
            kind=kind,
            event_id=event_id,
            num_credentials=num_credentials,
            card_type=card_type,
            price=price,
            is_active=True,
            created_at=int(time.time()),
        )
