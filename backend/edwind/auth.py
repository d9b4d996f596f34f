"""Session authentication and the FastAPI dependency that enforces it.

The browser carries three cookies set at sign-in: `workos_user_id`,
`workos_access_token` and `workos_session_id`. `get_current_user` is the
single place that turns them into an `AuthenticatedUser`: it decodes the
access token, checks that it belongs to the cookie's user and session,
and resolves the user through the identity provider. Any failure raises
`UnauthorizedError` (401).
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from fastapi import Cookie
import jwt

from . import identity
from .config import settings
from .errors import IdentityProviderError, UnauthorizedError

SESSION_COOKIES = ("workos_user_id", "workos_access_token", "workos_session_id")


@dataclass
class AuthenticatedUser:
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    organization_id: Optional[str] = None
    session_id: Optional[str] = None

    @property
    def display_name(self) -> str:
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or self.email or self.id


@lru_cache(maxsize=1)
def _jwks_client(url: str) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(url)


def decode_access_token(token: str) -> dict:
    """Decode the provider-issued access token.

    The signature is verified against the provider JWKS unless
    `ALLOW_INSECURE_JWT` is enabled (local development and tests).
    """
    try:
        if settings.ALLOW_INSECURE_JWT:
            return jwt.decode(token, options={"verify_signature": False})
        signing_key = _jwks_client(identity.client.jwks_url).get_signing_key_from_jwt(token)
        return jwt.decode(token, signing_key.key, algorithms=["RS256"], options={"verify_aud": False})
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("session expired")
    except jwt.PyJWTError:
        raise UnauthorizedError("invalid access token")


def get_current_user(
    workos_user_id: Optional[str] = Cookie(default=None),
    workos_access_token: Optional[str] = Cookie(default=None),
    workos_session_id: Optional[str] = Cookie(default=None),
) -> AuthenticatedUser:
    """FastAPI dependency returning the authenticated user for the request."""
    if not workos_user_id or not workos_access_token:
        raise UnauthorizedError()
    claims = decode_access_token(workos_access_token)
    if claims.get("sub") != workos_user_id:
        raise UnauthorizedError("session does not match user")
    sid = claims.get("sid")
    if sid and workos_session_id and sid != workos_session_id:
        raise UnauthorizedError("session does not match user")
    try:
        profile = identity.client.get_user(workos_user_id)
    except IdentityProviderError:
        raise UnauthorizedError("user could not be resolved")
    return AuthenticatedUser(
        id=workos_user_id,
        email=profile.get("email"),
        first_name=profile.get("first_name"),
        last_name=profile.get("last_name"),
        organization_id=claims.get("org_id"),
        session_id=workos_session_id or sid,
    )
