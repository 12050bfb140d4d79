"""Back-office access tokens (ES256 JWT).

Login (issuance) and api/dependencies.py (validation) share the key and
claims schema defined here.  The key pair is generated per process, so
tokens do not survive a restart; admins simply log in again.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

_private_key = ec.generate_private_key(ec.SECP256R1())
_public_key = _private_key.public_key()

ALGORITHM = "ES256"
ISSUER = "boxoffice"
AUDIENCE = "boxoffice-admin"
# Long enough to cover a door shift with the scanner open
ACCESS_TOKEN_TTL_MIN = 8 * 60


def create_access_token(
    *,
    sub: str,
    roles: list[str] | None = None,
) -> str:
    """Build and sign a JWT access token: sub, iss, aud, exp, iat, jti, roles."""
    now = datetime.now(UTC)
    payload = {
        "sub": sub,
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": now + timedelta(minutes=ACCESS_TOKEN_TTL_MIN),
        "iat": now,
        "jti": str(uuid.uuid4()),
        "roles": roles or [],
    }
    return jwt.encode(payload, _private_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    """Verify signature and claims, return the payload.

    Pins the algorithm to ES256.  Raises jwt.ExpiredSignatureError or
    jwt.InvalidTokenError on failure.
    """
    return jwt.decode(
        token,
        _public_key,
        algorithms=[ALGORITHM],
        issuer=ISSUER,
        audience=AUDIENCE,
        options={"require": ["sub", "exp", "iat", "jti"]},
    )
