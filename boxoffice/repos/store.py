from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from boxoffice.repos.batch_repo import BatchRepo, InMemoryBatchRepo, PgBatchRepo
from boxoffice.repos.credential_repo import (
    CredentialRepo,
    InMemoryCredentialRepo,
    PgCredentialRepo,
)
from boxoffice.repos.event_repo import EventRepo, InMemoryEventRepo, PgEventRepo


@dataclass(frozen=True, slots=True)
class Store:
    """The repos one request works against, selected per credential kind."""

    events: EventRepo
    ticket_batches: BatchRepo
    card_batches: BatchRepo
    tickets: CredentialRepo
    cards: CredentialRepo

    def batches_for(self, kind: str) -> BatchRepo:
        return self.ticket_batches if kind == "ticket" else self.card_batches

    def credentials_for(self, kind: str) -> CredentialRepo:
        return self.tickets if kind == "ticket" else self.cards

    @staticmethod
    def in_memory() -> Store:
        return Store(
            events=InMemoryEventRepo(),
            ticket_batches=InMemoryBatchRepo("ticket"),
            card_batches=InMemoryBatchRepo("invitation_card"),
            tickets=InMemoryCredentialRepo("ticket"),
            cards=InMemoryCredentialRepo("invitation_card"),
        )

    @staticmethod
    def postgres(session: AsyncSession) -> Store:
        return Store(
            events=PgEventRepo(session),
            ticket_batches=PgBatchRepo(session, "ticket"),
            card_batches=PgBatchRepo(session, "invitation_card"),
            tickets=PgCredentialRepo(session, "ticket"),
            cards=PgCredentialRepo(session, "invitation_card"),
        )
