from __future__ import annotations

from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boxoffice.db.tables import EventRow
from boxoffice.models.event import Event, SponsorLogo


class EventRepo(Protocol):
    async def get(self, event_id: str) -> Event | None: ...


class InMemoryEventRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, Event] = {}

    def add(self, event: Event) -> None:
        self._by_id[event.id] = event

    async def get(self, event_id: str) -> Event | None:
        return self._by_id.get(event_id)


class PgEventRepo:
    """Satisfies the EventRepo Protocol using PostgreSQL."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, event_id: str) -> Event | None:
        stmt = select(EventRow).where(EventRow.id == event_id)
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None
        return _row_to_event(row)


def _row_to_event(row: EventRow) -> Event:
    sponsors = tuple(
        SponsorLogo(name=str(s.get("name") or ""), url=str(s.get("url") or ""))
        for s in (row.sponsor_logos or [])
        if isinstance(s, dict)
    )
    return Event(
        id=row.id,
        title=row.title,
        date=row.date,
        location=row.location or "",
        organizer_name=row.organizer_name,
        organizer_logo_url=row.organizer_logo_url,
        sponsor_logos=sponsors,
    )
