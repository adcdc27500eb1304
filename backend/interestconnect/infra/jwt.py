"""Access token verification.

Tokens are HS256 JWTs signed with the shared secret. The user id is carried in
the ``userId`` claim; ``sub`` is accepted as well.
"""

from __future__ import annotations

import time
from typing import Any, Dict

import jwt
from jwt import ExpiredSignatureError, InvalidTokenError

from interestconnect.domain.common.exceptions import Unauthorized
from interestconnect.settings import settings

ALGORITHM = "HS256"
DEFAULT_TTL_SECONDS = 7 * 24 * 3600


def encode_access(user_id: str, *, ttl_seconds: int = DEFAULT_TTL_SECONDS, **claims: Any) -> str:
    """Encode an access token for ``user_id``. Used by tooling and tests."""
    now = int(time.time())
    body: Dict[str, Any] = {"userId": str(user_id), "iat": now, "exp": now + ttl_seconds}
    body.update(claims)
    return jwt.encode(body, settings.jwt_secret, algorithm=ALGORITHM)


def verify(token: str | None) -> str:
    """Return the user id carried by ``token``.

    Raises Unauthorized for missing, malformed, expired or claimless tokens.
    """
    token = (token or "").strip()
    if not token:
        raise Unauthorized("Authentication required")
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM], leeway=5)
    except ExpiredSignatureError:
        raise Unauthorized("Token expired") from None
    except InvalidTokenError:
        raise Unauthorized("Invalid token") from None
    user_id = str(payload.get("userId") or payload.get("sub") or "").strip()
    if not user_id:
        raise Unauthorized("Invalid token")
    return user_id
