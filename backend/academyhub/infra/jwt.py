"""Centralised JWT helpers for access tokens.

Tokens are minted by the identity provider; this service only verifies them
(HS256 with the shared secret, issuer/audience pinned).
"""

from __future__ import annotations

import time
from typing import Any, Dict

import jwt
from jwt import InvalidTokenError

from academyhub.settings import settings


ISSUER = "academyhub-identity"
AUDIENCE = "academyhub-api"


def encode_access(payload: dict[str, object], *, ttl_seconds: int = 900) -> str:
    """Encode an access token with issuer/audience defaults (tests and local tooling)."""
    now = int(time.time())
    body: Dict[str, Any] = {"iss": ISSUER, "aud": AUDIENCE, "iat": now, "exp": now + ttl_seconds}
    body.update(payload)
    return jwt.encode(body, settings.secret_key, algorithm="HS256")


def decode_access(token: str) -> dict[str, object]:
    """Decode and validate an access token.

    Raises jwt.InvalidTokenError subclasses on failure.
    """
    options = {"require": ["exp", "iat", "iss", "aud"]}
    payload = jwt.decode(
        token,
        settings.secret_key,
        algorithms=["HS256"],
        audience=AUDIENCE,
        issuer=ISSUER,
        leeway=5,
        options=options,
    )
    if not payload.get("sub"):
        raise InvalidTokenError("missing_claim:sub")
    return payload  # type: ignore[return-value]
