from __future__ import annotations

import asyncio

import pytest

from boxoffice.models.batch import Batch
from boxoffice.models.credential import Credential
from boxoffice.repos.store import Store
from boxoffice.services.activation_service import (
    ActivationError,
    activate_all_in_batch,
    activate_credential,
    list_batches,
    set_batch_active,
)
from tests.conftest import seed_credential


def _ticket(ticket_id: str, **overrides) -> Credential:
    fields = {
        "id": ticket_id,
        "kind": "ticket",
        "event_id": "evt-1",
        "batch_code": "SPRING24",
        "purchase_channel": "physical_batch",
    }
    fields.update(overrides)
    return Credential(**fields)


def _add_batch(store: Store, code: str = "SPRING24", created_at: int = 100) -> Batch:
    batch = Batch(
        batch_code=code,
        kind="ticket",
        event_id="evt-1",
        num_credentials=2,
        created_at=created_at,
    )
    asyncio.run(store.ticket_batches.add(batch))
    return batch


def test_activation_binds_the_buyer(store: Store) -> None:
    seed_credential(store, _ticket("t-1"))

    updated = asyncio.run(
        activate_credential(
            store, "ticket", "t-1", buyer_name="  Jane Doe ", buyer_phone=" 0772000000 "
        )
    )

    assert updated.is_active is True
    assert updated.buyer_name == "Jane Doe"
    assert updated.buyer_phone == "0772000000"
    assert asyncio.run(store.tickets.get_by_id("t-1")) == updated


def test_blank_phone_is_stored_as_none(store: Store) -> None:
    seed_credential(store, _ticket("t-1"))
    updated = asyncio.run(
        activate_credential(store, "ticket", "t-1", buyer_name="Jane", buyer_phone="  ")
    )
    assert updated.buyer_phone is None


@pytest.mark.parametrize("name", ["", "   "])
def test_buyer_name_is_required(store: Store, name: str) -> None:
    seed_credential(store, _ticket("t-1"))
    with pytest.raises(ActivationError, match="buyer_name"):
        asyncio.run(activate_credential(store, "ticket", "t-1", buyer_name=name))


def test_online_tickets_cannot_be_activated(store: Store) -> None:
    seed_credential(store, _ticket("t-1", purchase_channel="online", batch_code=None))
    assert (
        asyncio.run(activate_credential(store, "ticket", "t-1", buyer_name="Jane"))
        is None
    )


def test_unknown_ticket_cannot_be_activated(store: Store) -> None:
    assert (
        asyncio.run(activate_credential(store, "ticket", "ghost", buyer_name="Jane"))
        is None
    )


def test_batch_toggle_leaves_credentials_alone(store: Store) -> None:
    _add_batch(store)
    seed_credential(store, _ticket("t-1", is_active=True))

    batch = asyncio.run(set_batch_active(store, "ticket", "SPRING24", False))

    assert batch.is_active is False
    assert asyncio.run(store.tickets.get_by_id("t-1")).is_active is True
    again = asyncio.run(set_batch_active(store, "ticket", "SPRING24", True))
    assert again.is_active is True


def test_batch_toggle_unknown_batch(store: Store) -> None:
    assert asyncio.run(set_batch_active(store, "ticket", "NOPE", False)) is None


def test_activate_all_only_touches_the_batch(store: Store) -> None:
    _add_batch(store)
    _add_batch(store, "OTHER")
    seed_credential(store, _ticket("t-1"))
    seed_credential(store, _ticket("t-2"))
    seed_credential(store, _ticket("t-3", batch_code="OTHER"))

    count = asyncio.run(activate_all_in_batch(store, "ticket", "SPRING24"))

    assert count == 2
    assert asyncio.run(store.tickets.get_by_id("t-1")).is_active is True
    assert asyncio.run(store.tickets.get_by_id("t-2")).is_active is True
    assert asyncio.run(store.tickets.get_by_id("t-3")).is_active is False


def test_activate_all_unknown_batch(store: Store) -> None:
    assert asyncio.run(activate_all_in_batch(store, "ticket", "NOPE")) is None


def test_list_batches_newest_first(store: Store) -> None:
    _add_batch(store, "OLD", created_at=100)
    _add_batch(store, "NEW", created_at=200)

    batches = asyncio.run(list_batches(store, "ticket"))

    assert [b.batch_code for b in batches] == ["NEW", "OLD"]
    assert asyncio.run(list_batches(store, "invitation_card")) == []
