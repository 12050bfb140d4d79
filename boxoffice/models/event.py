from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class SponsorLogo:
    name: str
    url: str


@dataclass(frozen=True, slots=True)
class Event:
    """Read-only event record; managed by the events back office."""

    id: str
    title: str
    date: datetime | None = None
    location: str = ""
    organizer_name: str | None = None
    organizer_logo_url: str | None = None
    sponsor_logos: tuple[SponsorLogo, ...] = field(default_factory=tuple)
