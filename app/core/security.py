# app/core/security.py
from __future__ import annotations

"""
MoviesNow CMS — Caller identity
===============================
- Decoding is delegated to `app.core.jwt` (single source of truth)
- `AuthContext` is the only thing the CMS core knows about the caller:
  `{uid, role, producer_id}`; the token is trusted as already verified
- Clean FastAPI dependencies: `get_current_caller`, `get_optional_caller`
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

from fastapi import Request

from app.core.config import settings
from app.core.exceptions import InvalidTokenException
from app.core.jwt import decode_token, get_bearer_token
from app.schemas.enums import UserRole

logger = logging.getLogger("app.security")


# ───────────────────────────────────────────────
# 👤 Caller context
# ───────────────────────────────────────────────
@dataclass(frozen=True)
class AuthContext:
    uid: str
    role: str
    producer_id: Optional[str] = None

    @property
    def is_privileged(self) -> bool:
        return is_privileged_role(self.role)

    @property
    def effective_producer_id(self) -> str:
        """Producer id used for ownership checks (falls back to the uid)."""
        return self.producer_id or self.uid


def is_privileged_role(role: Optional[str]) -> bool:
    """True when `role` may approve/reject series (see `PRIVILEGED_ROLES`)."""
    return bool(role) and str(role).lower() in settings.privileged_roles_list


def auth_context_from_claims(payload: Dict[str, Any]) -> AuthContext:
    role = str(payload.get("role") or UserRole.PRODUCER.value).lower()
    producer_id = payload.get("producer_id") or payload.get("producerId")
    return AuthContext(
        uid=str(payload["sub"]),
        role=role,
        producer_id=str(producer_id) if producer_id else None,
    )


# ───────────────────────────────────────────────
# 🔌 Dependencies
# ───────────────────────────────────────────────
async def get_optional_caller(request: Request) -> Optional[AuthContext]:
    token = get_bearer_token(request)
    if not token:
        return None
    ctx = auth_context_from_claims(decode_token(token))
    request.state.caller = ctx
    return ctx


async def get_current_caller(request: Request) -> AuthContext:
    """Authenticate the caller from the presented bearer token (401 if absent/invalid)."""
    ctx = await get_optional_caller(request)
    if ctx is None:
        raise InvalidTokenException("Missing access token")
    logger.debug("[Auth] caller uid=%s role=%s", ctx.uid, ctx.role)
    return ctx


__all__ = [
    "AuthContext",
    "auth_context_from_claims",
    "get_current_caller",
    "get_optional_caller",
    "is_privileged_role",
]
