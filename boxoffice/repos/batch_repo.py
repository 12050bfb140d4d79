"""Batch persistence.

``add`` is the only write that can collide: batch codes are unique per
kind, and both implementations report a duplicate as
BatchCodeConflictError so the allocator can retry with a suffixed code.
"""

from __future__ import annotations

import dataclasses
from typing import Protocol

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from boxoffice.db.tables import BatchRow, InvitationCardBatchRow
from boxoffice.models.batch import Batch
from boxoffice.models.credential import CredentialKind

UNIQUE_VIOLATION = "23505"


class BatchCodeConflictError(Exception):
    """The batch code is already taken (SQLSTATE 23505)."""

    def __init__(self, batch_code: str) -> None:
        super().__init__(
            f'duplicate key value violates unique constraint: batch_code "{batch_code}"'
        )
        self.batch_code = batch_code
        self.code = UNIQUE_VIOLATION


class BatchRepo(Protocol):
    async def add(self, batch: Batch) -> Batch: ...
    async def get_by_code(self, batch_code: str) -> Batch | None: ...
    async def list_all(self) -> list[Batch]: ...
    async def set_active(self, batch_code: str, is_active: bool) -> Batch | None: ...
    async def delete(self, batch_code: str) -> bool: ...


class InMemoryBatchRepo:
    def __init__(self, kind: CredentialKind) -> None:
        self.kind = kind
        self._by_code: dict[str, Batch] = {}

    async def add(self, batch: Batch) -> Batch:
        if batch.batch_code in self._by_code:
            raise BatchCodeConflictError(batch.batch_code)
        self._by_code[batch.batch_code] = batch
        return batch

    async def get_by_code(self, batch_code: str) -> Batch | None:
        return self._by_code.get(batch_code)

    async def list_all(self) -> list[Batch]:
        return sorted(
            self._by_code.values(),
            key=lambda b: (b.created_at, b.batch_code),
            reverse=True,
        )

    async def set_active(self, batch_code: str, is_active: bool) -> Batch | None:
        batch = self._by_code.get(batch_code)
        if batch is None:
            return None
        updated = dataclasses.replace(batch, is_active=is_active)
        self._by_code[batch_code] = updated
        return updated

    async def delete(self, batch_code: str) -> bool:
        return self._by_code.pop(batch_code, None) is not None


_BATCH_TABLES = {
    "ticket": BatchRow,
    "invitation_card": InvitationCardBatchRow,
}


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return code == UNIQUE_VIOLATION


class PgBatchRepo:
    """Satisfies the BatchRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession, kind: CredentialKind) -> None:
        self._session = session
        self.kind = kind
        self._table = _BATCH_TABLES[kind]

    async def add(self, batch: Batch) -> Batch:
        row = _batch_to_row(batch)
        # SAVEPOINT: a duplicate must not poison the request's transaction,
        # the allocator retries inside it.
        try:
            async with self._session.begin_nested():
                self._session.add(row)
        except IntegrityError as e:
            if _is_unique_violation(e):
                raise BatchCodeConflictError(batch.batch_code) from e
            raise
        return batch

    async def get_by_code(self, batch_code: str) -> Batch | None:
        stmt = select(self._table).where(self._table.batch_code == batch_code)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_batch(row, self.kind)

    async def list_all(self) -> list[Batch]:
        stmt = select(self._table).order_by(
            self._table.created_at.desc(), self._table.batch_code.desc()
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_batch(row, self.kind) for row in rows]

    async def set_active(self, batch_code: str, is_active: bool) -> Batch | None:
        stmt = (
            update(self._table)
            .where(self._table.batch_code == batch_code)
            .values(is_active=is_active)
            .returning(self._table)
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_batch(row, self.kind)

    async def delete(self, batch_code: str) -> bool:
        stmt = delete(self._table).where(self._table.batch_code == batch_code)
        result = await self._session.execute(stmt)
        return result.rowcount > 0


def _batch_to_row(batch: Batch) -> BatchRow | InvitationCardBatchRow:
    if batch.kind == "ticket":
        return BatchRow(
            batch_code=batch.batch_code,
            event_id=batch.event_id,
            num_tickets=batch.num_credentials,
            price=batch.price,
            is_active=batch.is_active,
            created_at=batch.created_at,
        )
    return InvitationCardBatchRow(
        batch_code=batch.batch_code,
        event_id=batch.event_id,
        num_cards=batch.num_credentials,
        card_type=batch.card_type,
        is_active=batch.is_active,
        created_at=batch.created_at,
    )


def _row_to_batch(row, kind: CredentialKind) -> Batch:
    if kind == "ticket":
        return Batch(
            batch_code=row.batch_code,
            kind=kind,
            event_id=row.event_id,
            num_credentials=row.num_tickets,
            price=row.price,
            is_active=row.is_active,
            created_at=row.created_at,
        )
    return Batch(
        batch_code=row.batch_code,
        kind=kind,
        event_id=row.event_id,
        num_credentials=row.num_cards,
        card_type=row.card_type,
        is_active=row.is_active,
        created_at=row.created_at,
    )
