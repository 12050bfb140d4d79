from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

CredentialKind = Literal["ticket", "invitation_card"]
PurchaseChannel = Literal["physical_batch", "online"]

PHYSICAL_BATCH: PurchaseChannel = "physical_batch"
ONLINE: PurchaseChannel = "online"


@dataclass(frozen=True, slots=True)
class KindTraits:
    """Naming that differs between tickets and invitation cards."""

    kind: CredentialKind
    label: str  # "Ticket" in "Ticket already used"
    id_key: str  # key carrying the credential id in the QR payload
    count_field: str  # request field holding the batch size
    file_prefix: str  # "<file_prefix>-<batch_code>.pdf"
    active_on_issue: bool


KINDS: dict[str, KindTraits] = {
    "ticket": KindTraits(
        kind="ticket",
        label="Ticket",
        id_key="ticket_id",
        count_field="num_tickets",
        file_prefix="tickets",
        active_on_issue=False,
    ),
    # Cards are handed out, not sold, so there is no point-of-sale step:
    # only the batch toggle gates them.
    "invitation_card": KindTraits(
        kind="invitation_card",
        label="Invitation card",
        id_key="card_id",
        count_field="num_cards",
        file_prefix="invitation-cards",
        active_on_issue=True,
    ),
}


def kind_traits(kind: str) -> KindTraits:
    try:
        return KINDS[kind]
    except KeyError:
        raise ValueError(f"unknown credential kind {kind!r}") from None


@dataclass(frozen=True, slots=True)
class Credential:
    """A ticket or invitation card: one redeemable admission.

    ``used`` only ever moves false -> true in the scan flow; the operator
    override in verification_service.redeem is the one path that may set
    it back.
    """

    id: str
    kind: CredentialKind
    event_id: str
    batch_code: str | None
    purchase_channel: PurchaseChannel
    is_active: bool = False
    used: bool = False
    card_type: str | None = None
    price: int = 0
    buyer_name: str | None = None
    buyer_phone: str | None = None
    confirmation_code: str | None = None

    @property
    def is_physical(self) -> bool:
        return self.purchase_channel == PHYSICAL_BATCH

    @property
    def has_buyer_binding(self) -> bool:
        return bool(self.buyer_name and self.buyer_name.strip())

    @property
    def short_id(self) -> str:
        return self.id[:12].upper()

    @staticmethod
    def new_batch_member(
        *,
        id: str,
        kind: CredentialKind,
        event_id: str,
        batch_code: str,
        card_type: str | None = None,
        price: int = 0,
    ) -> Credential:
        return Credential(
            id=id,
            kind=kind,
            event_id=event_id,
            batch_code=batch_code,
            purchase_channel=PHYSICAL_BATCH,
            is_active=kind_traits(kind).active_on_issue,
            used=False,
            card_type=card_type,
            price=price,
        )
