"""Authentication dependency for FastAPI endpoints.

A valid Bearer JWT is required everywhere except in development, where the
``X-User-Id`` header is accepted so local tools and tests can skip token minting.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from interestconnect.domain.chat.models import MinimalIdentity
from interestconnect.domain.common.exceptions import NotFound, Unauthorized
from interestconnect.domain.common.timeouts import bounded
from interestconnect.domain.users.repo import PostgresUserDirectory, UserDirectory
from interestconnect.infra import jwt as jwt_helper
from interestconnect.obs.logging import bind_context
from interestconnect.settings import settings

_bearer_scheme = HTTPBearer(auto_error=False)

_directory: UserDirectory = PostgresUserDirectory()


def set_directory(directory: UserDirectory) -> None:
	global _directory
	_directory = directory


async def resolve_token(token: str) -> MinimalIdentity:
	user_id = jwt_helper.verify(token)
	try:
		return await bounded("users.fetch_minimal_identity", _directory.fetch_minimal_identity(user_id))
	except NotFound:
		raise Unauthorized("User not found") from None


async def get_current_user(
	x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
	x_user_name: Optional[str] = Header(default=None, alias="X-User-Name"),
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> MinimalIdentity:
	"""Resolve the caller, preferring a bearer token over dev headers."""
	if credentials and credentials.scheme.lower() == "bearer":
		user = await resolve_token(credentials.credentials)
	elif settings.is_dev() and x_user_id:
		user = MinimalIdentity(id=x_user_id, name=x_user_name or x_user_id)
	else:
		raise Unauthorized("Access token required")
	bind_context(user_id=user.id)
	return user
