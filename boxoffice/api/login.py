"""Back-office login.

There is a single demo administrator whose credentials come from
ADMIN_EMAIL / ADMIN_PASSWORD.  A successful login returns a bearer token
carrying the "admin" role; every /admin route requires it.
"""

from __future__ import annotations

import hmac
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from boxoffice.api.ratelimit import require_rate_limit
from boxoffice.core.config import SETTINGS
from boxoffice.services import token_service
from boxoffice.services.rate_limiter import RateLimitConfig

logger = logging.getLogger(__name__)

router = APIRouter(tags=["login"])


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


def _check_credentials(email: str, password: str) -> bool:
    # Compare both fields even when the first fails, in constant time
    email_ok = hmac.compare_digest(
        email.strip().lower().encode(), SETTINGS.admin_email.encode()
    )
    password_ok = hmac.compare_digest(
        password.encode(), SETTINGS.admin_password.encode()
    )
    return email_ok and password_ok


# 10 attempts burst, then one every ~6 seconds per client
_login_limit = require_rate_limit(
    RateLimitConfig(capacity=10, refill_rate=0.17), bucket="login"
)


@router.post(
    "/admin/login",
    response_model=LoginResponse,
    dependencies=[Depends(_login_limit)],
)
def login(body: LoginRequest) -> LoginResponse:
    if not _check_credentials(body.email, body.password):
        logger.warning("Login failed  email=%s", body.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    token = token_service.create_access_token(sub=SETTINGS.admin_email, roles=["admin"])
    logger.info("Login succeeded  email=%s", SETTINGS.admin_email)
    return LoginResponse(
        access_token=token,
        expires_in=token_service.ACCESS_TOKEN_TTL_MIN * 60,
    )
