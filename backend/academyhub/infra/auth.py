"""Authentication helpers for FastAPI endpoints.

Identity is issued by the external provider. Requests carry a Bearer JWT which
is verified here; in development the `X-User-Id` header is also accepted so
local tools can exercise history-aware endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from academyhub.infra import jwt as jwt_helper
from academyhub.settings import settings


@dataclass(slots=True)
class AuthenticatedUser:
	id: str
	university_id: Optional[str] = None
	username: Optional[str] = None
	roles: Tuple[str, ...] = ()


_bearer_scheme = HTTPBearer(auto_error=False)


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return an AuthenticatedUser."""
	try:
		payload = jwt_helper.decode_access(token)
	except Exception:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")

	sub = str(payload.get("sub") or "").strip()
	if not sub:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")

	university_id = payload.get("university_id")
	username = payload.get("username")
	roles_claim = payload.get("roles")
	roles: Tuple[str, ...]
	if isinstance(roles_claim, (list, tuple)):
		roles = tuple(str(r).strip() for r in roles_claim if str(r).strip())
	elif isinstance(roles_claim, str):
		roles = tuple(part.strip() for part in roles_claim.split(",") if part.strip())
	else:
		roles = ()

	return AuthenticatedUser(
		id=sub,
		university_id=str(university_id) if university_id else None,
		username=str(username) if username is not None else None,
		roles=roles,
	)


async def get_optional_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[AuthenticatedUser]:
	"""Resolve the caller when identity is presented, else None.

	A presented but invalid token is still rejected with 401.
	"""
	if credentials and credentials.scheme.lower() == "bearer":
		return verify_access_jwt(credentials.credentials)
	if settings.is_dev() and x_user_id:
		return AuthenticatedUser(id=x_user_id)
	return None


async def get_current_user(
	user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> AuthenticatedUser:
	"""Resolve the authenticated user or fail with 401."""
	if user is None:
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_token")
	return user
