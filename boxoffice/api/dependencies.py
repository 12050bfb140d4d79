from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from boxoffice.core.config import SETTINGS
from boxoffice.db import engine as db_engine
from boxoffice.models.event import Event
from boxoffice.models.principal import Principal
from boxoffice.repos.store import Store
from boxoffice.services import token_service
from boxoffice.services.document_compositor import DocumentCompositor

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/admin/login")

# ---------------------------------------------------------------------------
# Module-level singletons (in-memory store when DATABASE_URL is unset)
# ---------------------------------------------------------------------------
memory_store = Store.in_memory()
compositor = DocumentCompositor()


def _seed_demo_event() -> None:
    """Give a fresh dev instance one event to issue against."""
    if not SETTINGS.is_dev or SETTINGS.database_url:
        return
    memory_store.events.add(  # type: ignore[attr-defined]
        Event(
            id="demo-event",
            title="Spring Showcase",
            date=datetime(2024, 3, 9, 18, 0, tzinfo=UTC),
            location="National Theatre, Kampala",
        )
    )


_seed_demo_event()


async def get_store() -> AsyncGenerator[Store, None]:
    """Yield the repos for this request.

    With PostgreSQL the whole request shares one session: committed when
    the handler returns, rolled back if it raises.
    """
    if db_engine.async_session_factory is None:
        yield memory_store
        return

    async with db_engine.session_scope() as session:
        yield Store.postgres(session)


def get_compositor() -> DocumentCompositor:
    return compositor


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal."""
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(
        user_id=claims["sub"],
        roles=frozenset(claims.get("roles", [])),
    )
    logger.debug(
        "Token validated for user=%s roles=%s", principal.user_id, principal.roles
    )
    return principal


def require_role(role: str):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role("admin"))
    Returns the Principal if the role is present, else 403.
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s missing role=%s", principal.user_id, role
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


StoreDep = Annotated[Store, Depends(get_store)]
CompositorDep = Annotated[DocumentCompositor, Depends(get_compositor)]
AdminDep = Annotated[Principal, Depends(require_role("admin"))]
