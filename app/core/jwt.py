# app/core/jwt.py
from __future__ import annotations

"""
MoviesNow CMS — JWT helpers
===========================
- `decode_token` with optional issuer/audience enforcement
- Case-insensitive Bearer token extraction

Notes
-----
- Token *issuance* is out of scope for the CMS; an upstream identity service
  mints tokens signed with the shared `JWT_SECRET_KEY`.
- No `leeway` is passed to python-jose (unsupported); standard `exp`/`nbf`/`iat` checks apply.
"""

from typing import Any, Dict, Optional
import logging

from fastapi import Request
from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings
from app.core.exceptions import InvalidTokenException

logger = logging.getLogger("app.auth")


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT (signature, exp/nbf/iat, iss/aud when configured).

    Raises
    ------
    InvalidTokenException
      401 for invalid or expired tokens, or a token without `sub`.
    """
    audience = settings.JWT_AUDIENCE or None
    issuer = settings.JWT_ISSUER or None
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            audience=audience,
            issuer=issuer,
            options={"verify_aud": bool(audience)},
        )
    except ExpiredSignatureError:
        raise InvalidTokenException("Token has expired")
    except JWTError as e:
        logger.info("JWT rejected: %s", e)
        raise InvalidTokenException()

    if not payload.get("sub"):
        raise InvalidTokenException("Token is missing subject")
    return payload


def get_bearer_token(request: Request) -> Optional[str]:
    """Extract a bearer token from the `Authorization` header (case-insensitive scheme)."""
    auth = request.headers.get("Authorization") or request.headers.get("authorization")
    if not auth:
        return None
    parts = auth.strip().split(None, 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    token = parts[1].strip()
    return token or None


def encode_token(claims: Dict[str, Any]) -> str:
    """Sign `claims` with the shared secret (local tooling and tests)."""
    return jwt.encode(claims, settings.JWT_SECRET_KEY.get_secret_value(), algorithm=settings.JWT_ALGORITHM)


__all__ = ["decode_token", "get_bearer_token", "encode_token"]
