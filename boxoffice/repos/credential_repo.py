"""Credential (ticket / invitation card) persistence.

Two writes touch ``used``:

  mark_used  compare-and-swap (false -> true).  Returns None when the row
             was already used, so two concurrent scans of one ticket can
             never both succeed.
  set_used   unconditional operator override.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from typing import Protocol

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from boxoffice.db.tables import InvitationCardRow, TicketRow
from boxoffice.models.credential import Credential, CredentialKind


class CredentialRepo(Protocol):
    async def add_many(self, credentials: Sequence[Credential]) -> None: ...
    async def get_by_id(self, credential_id: str) -> Credential | None: ...
    async def list_by_batch(self, batch_code: str) -> list[Credential]: ...
    async def mark_used(self, credential_id: str) -> Credential | None: ...
    async def set_used(self, credential_id: str, used: bool) -> Credential | None: ...
    async def activate(
        self,
        credential_id: str,
        *,
        buyer_name: str,
        buyer_phone: str | None,
    ) -> Credential | None: ...
    async def set_active_for_batch(self, batch_code: str, is_active: bool) -> int: ...


class InMemoryCredentialRepo:
    def __init__(self, kind: CredentialKind) -> None:
        self.kind = kind
        self._by_id: dict[str, Credential] = {}

    def add(self, credential: Credential) -> None:
        self._by_id[credential.id] = credential

    async def add_many(self, credentials: Sequence[Credential]) -> None:
        duplicates = [c.id for c in credentials if c.id in self._by_id]
        if duplicates:
            raise ValueError(f"credential ids already exist: {duplicates[:3]}")
        for credential in credentials:
            self._by_id[credential.id] = credential

    async def get_by_id(self, credential_id: str) -> Credential | None:
        return self._by_id.get(credential_id)

    async def list_by_batch(self, batch_code: str) -> list[Credential]:
        return sorted(
            (c for c in self._by_id.values() if c.batch_code == batch_code),
            key=lambda c: c.id,
        )

    async def mark_used(self, credential_id: str) -> Credential | None:
        # No await between the check and the write: atomic under asyncio.
        credential = self._by_id.get(credential_id)
        if credential is None or credential.used:
            return None
        updated = dataclasses.replace(credential, used=True)
        self._by_id[credential_id] = updated
        return updated

    async def set_used(self, credential_id: str, used: bool) -> Credential | None:
        credential = self._by_id.get(credential_id)
        if credential is None:
            return None
        updated = dataclasses.replace(credential, used=used)
        self._by_id[credential_id] = updated
        return updated

    async def activate(
        self,
        credential_id: str,
        *,
        buyer_name: str,
        buyer_phone: str | None,
    ) -> Credential | None:
        credential = self._by_id.get(credential_id)
        if credential is None or not credential.is_physical:
            return None
        updated = dataclasses.replace(
            credential,
            is_active=True,
            buyer_name=buyer_name,
            buyer_phone=buyer_phone,
        )
        self._by_id[credential_id] = updated
        return updated

    async def set_active_for_batch(self, batch_code: str, is_active: bool) -> int:
        count = 0
        for credential in list(self._by_id.values()):
            if credential.batch_code != batch_code:
                continue
            self._by_id[credential.id] = dataclasses.replace(
                credential, is_active=is_active
            )
            count += 1
        return count


_CREDENTIAL_TABLES = {
    "ticket": TicketRow,
    "invitation_card": InvitationCardRow,
}


class PgCredentialRepo:
    """Satisfies the CredentialRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession, kind: CredentialKind) -> None:
        self._session = session
        self.kind = kind
        self._table = _CREDENTIAL_TABLES[kind]

    async def add_many(self, credentials: Sequence[Credential]) -> None:
        if not credentials:
            return
        values = [_credential_to_values(c) for c in credentials]
        # Savepoint keeps the session usable for compensation on failure
        async with self._session.begin_nested():
            await self._session.execute(insert(self._table), values)

    async def get_by_id(self, credential_id: str) -> Credential | None:
        stmt = select(self._table).where(self._table.id == credential_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_credential(row, self.kind)

    async def list_by_batch(self, batch_code: str) -> list[Credential]:
        stmt = (
            select(self._table)
            .where(self._table.batch_code == batch_code)
            .order_by(self._table.id)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_credential(row, self.kind) for row in rows]

    async def mark_used(self, credential_id: str) -> Credential | None:
        stmt = (
            update(self._table)
            .where(self._table.id == credential_id)
            .where(self._table.used.is_(False))
            .values(used=True)
            .returning(self._table)
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None  # missing, or a concurrent scan won the race
        return _row_to_credential(row, self.kind)

    async def set_used(self, credential_id: str, used: bool) -> Credential | None:
        stmt = (
            update(self._table)
            .where(self._table.id == credential_id)
            .values(used=used)
            .returning(self._table)
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_credential(row, self.kind)

    async def activate(
        self,
        credential_id: str,
        *,
        buyer_name: str,
        buyer_phone: str | None,
    ) -> Credential | None:
        stmt = (
            update(self._table)
            .where(self._table.id == credential_id)
            .where(self._table.purchase_channel == "physical_batch")
            .values(is_active=True, buyer_name=buyer_name, buyer_phone=buyer_phone)
            .returning(self._table)
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_credential(row, self.kind)

    async def set_active_for_batch(self, batch_code: str, is_active: bool) -> int:
        stmt = (
            update(self._table)
            .where(self._table.batch_code == batch_code)
            .values(is_active=is_active)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount


def _credential_to_values(credential: Credential) -> dict:
    values = {
        "id": credential.id,
        "event_id": credential.event_id,
        "batch_code": credential.batch_code,
        "purchase_channel": credential.purchase_channel,
        "is_active": credential.is_active,
        "used": credential.used,
        "buyer_name": credential.buyer_name,
        "buyer_phone": credential.buyer_phone,
        "confirmation_code": credential.confirmation_code,
    }
    if credential.kind == "ticket":
        values["price"] = credential.price
    else:
        values["card_type"] = credential.card_type
    return values


def _row_to_credential(row, kind: CredentialKind) -> Credential:
    return Credential(
        id=row.id,
        kind=kind,
        event_id=row.event_id,
        batch_code=row.batch_code,
        purchase_channel=row.purchase_channel,
        is_active=row.is_active,
        used=row.used,
        card_type=getattr(row, "card_type", None),
        price=getattr(row, "price", 0) or 0,
        buyer_name=row.buyer_name,
        buyer_phone=row.buyer_phone,
        confirmation_code=row.confirmation_code,
    )
