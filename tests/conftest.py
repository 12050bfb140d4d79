from __future__ import annotations

import os
import sys
from collections.abc import Iterator, Sequence
from datetime import UTC, datetime
from pathlib import Path

# Settings are read at import time: pin the test environment first.
os.environ["APP_ENV"] = "test"
os.environ.pop("DATABASE_URL", None)
os.environ.pop("REDIS_URL", None)

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from boxoffice.api.dependencies import get_compositor, memory_store  # noqa: E402
from boxoffice.api.ratelimit import _rate_limiter  # noqa: E402
from boxoffice.main import app  # noqa: E402
from boxoffice.models.credential import Credential  # noqa: E402
from boxoffice.models.event import Event, SponsorLogo  # noqa: E402
from boxoffice.repos.store import Store  # noqa: E402
from boxoffice.services import token_service  # noqa: E402


def _weasyprint_loads() -> bool:
    try:
        import weasyprint  # noqa: F401
    except (ImportError, OSError):
        return False
    return True


# WeasyPrint needs Pango/Cairo from the OS; skip real PDF tests without them.
requires_pdf = pytest.mark.skipif(
    not _weasyprint_loads(), reason="WeasyPrint system libraries not available"
)


class FakeCompositor:
    """Records what would have been rendered and returns a stub PDF."""

    def __init__(self) -> None:
        self.calls: list[tuple[list[Credential], Event]] = []

    async def compose(self, credentials: Sequence[Credential], event: Event) -> bytes:
        self.calls.append((list(credentials), event))
        return b"%PDF-1.7\n% fake " + str(len(credentials)).encode()


def make_event(event_id: str = "evt-1", **overrides) -> Event:
    fields = {
        "id": event_id,
        "title": "Spring Showcase",
        "date": datetime(2024, 3, 9, 18, 0, tzinfo=UTC),
        "location": "National Theatre, Kampala",
        "organizer_name": "TIPAC",
        "sponsor_logos": (
            SponsorLogo(name="MTN", url="https://cdn.example.com/mtn.png"),
        ),
    }
    fields.update(overrides)
    return Event(**fields)


def seed_event(store: Store, event: Event | None = None) -> Event:
    event = event or make_event()
    store.events.add(event)  # type: ignore[attr-defined]
    return event


def seed_credential(store: Store, credential: Credential) -> Credential:
    store.credentials_for(credential.kind).add(credential)  # type: ignore[attr-defined]
    return credential


@pytest.fixture(autouse=True)
def reset_memory_store() -> None:
    """Clear the app's in-memory repos between tests."""
    memory_store.events._by_id.clear()  # type: ignore[attr-defined]
    memory_store.ticket_batches._by_code.clear()  # type: ignore[attr-defined]
    memory_store.card_batches._by_code.clear()  # type: ignore[attr-defined]
    memory_store.tickets._by_id.clear()  # type: ignore[attr-defined]
    memory_store.cards._by_id.clear()  # type: ignore[attr-defined]


@pytest.fixture(autouse=True)
def reset_rate_limiter() -> None:
    """Clear rate limit buckets between tests so limits don't bleed."""
    if hasattr(_rate_limiter, "_buckets"):
        _rate_limiter._buckets.clear()  # type: ignore[union-attr]


@pytest.fixture
def fake_compositor() -> Iterator[FakeCompositor]:
    fake = FakeCompositor()
    app.dependency_overrides[get_compositor] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_compositor, None)


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def store() -> Store:
    """A fresh in-memory store for service-level tests."""
    return Store.in_memory()


@pytest.fixture
def app_store() -> Store:
    """The store the running app reads from."""
    return memory_store


def mint_token(username: str = "door-staff", roles: list[str] | None = None) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


@pytest.fixture
def token() -> str:
    """Token without the admin role."""
    return mint_token()


@pytest.fixture
def admin_token() -> str:
    return mint_token(username="admin@tipac.com", roles=["admin"])


@pytest.fixture
def admin_headers(admin_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {admin_token}"}
