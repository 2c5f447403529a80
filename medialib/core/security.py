# File: medialib/core/security.py
"""
Security utilities for the media library.

A single signed JWT is stored in a cookie. A missing or unverifiable token
never rejects a request by itself; it only makes the caller anonymous.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

from jose import JWTError, jwt

from medialib.core.config import settings

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class AuthContext:
    """Who is calling, as far as the request cookie tells us."""

    is_authenticated: bool = False
    role: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.is_authenticated and self.role == ADMIN_ROLE

    def protected_filter(self, requested: Optional[bool]) -> Optional[bool]:
        """
        The ``is_protected`` value a listing may filter on.

        Non-admin callers always get unprotected rows; admins get what they
        asked for, None meaning both.
        """
        if not self.is_admin:
            return False
        return requested

    def sees_protected(self, requested: Optional[bool]) -> bool:
        """True only for an admin explicitly asking for protected rows."""
        return self.is_admin and requested is True


ANONYMOUS = AuthContext()


def create_access_token(
    subject: Union[str, Any],
    role: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a JWT access token.

    Args:
        subject: Token subject (the user identifier)
        role: Optional role claim; readers fall back to AUTH_DEFAULT_ROLE
        expires_delta: Optional token expiration time

    Returns:
        str: JWT access token
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode: Dict[str, Any] = {"exp": expire, "sub": str(subject), "type": "access"}
    if role:
        to_encode["role"] = role
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """Verify a token and return its claims. Raises JWTError on failure."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


def resolve_auth_context(token: Optional[str]) -> AuthContext:
    """
    Turn a cookie value into an AuthContext.

    Args:
        token: Raw cookie value, possibly None

    Returns:
        AuthContext, anonymous when the token is absent or invalid
    """
    if not token:
        return ANONYMOUS
    try:
        claims = decode_access_token(token)
    except JWTError as e:
        logger.debug(f"Ignoring invalid auth token: {e}")
        return ANONYMOUS

    return AuthContext(
        is_authenticated=True,
        role=claims.get("role") or settings.AUTH_DEFAULT_ROLE,
        user_id=claims.get("sub"),
    )
