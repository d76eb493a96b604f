"""Clerk session token handling.

Clerk signs session JWTs with RS256; the PEM key comes from the Clerk
dashboard. Without one, HS256 tokens signed with CLERK_JWT_SECRET are
accepted so that local development and tests can mint their own.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple

from jose import JWTError, jwt
from pydantic import BaseModel

from cedar.core.config import settings

logger = logging.getLogger(__name__)

DEV_ALGORITHM = "HS256"
CLERK_ALGORITHM = "RS256"


class ClerkClaims(BaseModel):
    sub: str
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None


def _verification_key() -> Tuple[str, str]:
    if settings.CLERK_JWT_PUBLIC_KEY:
        return settings.CLERK_JWT_PUBLIC_KEY, CLERK_ALGORITHM
    return settings.CLERK_JWT_SECRET, DEV_ALGORITHM


def _role_from(payload: Dict[str, Any]) -> Optional[str]:
    # Role is set through Clerk public metadata and may be surfaced under several claim names
    if payload.get("role"):
        return payload["role"]
    for key in ("metadata", "public_metadata"):
        metadata = payload.get(key)
        if isinstance(metadata, dict) and metadata.get("role"):
            return metadata["role"]
    return None


def decode_session_token(token: str) -> Optional[ClerkClaims]:
    """Returns the claims of a valid token, None when it is invalid or expired."""
    key, algorithm = _verification_key()
    options = {"verify_aud": False, "verify_iss": settings.CLERK_ISSUER is not None}
    try:
        payload = jwt.decode(token, key, algorithms=[algorithm], issuer=settings.CLERK_ISSUER, options=options)
    except JWTError as e:
        logger.warning(f"Clerk token rejected: {e}")
        return None
    if not payload.get("sub"):
        logger.warning("Clerk token decoded without a 'sub' claim.")
        return None
    return ClerkClaims(
        sub=payload["sub"],
        email=payload.get("email"),
        name=payload.get("name"),
        role=_role_from(payload),
    )


def create_session_token(
    clerk_user_id: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
    role: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Mints an HS256 token with the development secret. Not usable against real Clerk keys."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=30))
    to_encode: Dict[str, Any] = {"sub": clerk_user_id, "exp": expire}
    if email:
        to_encode["email"] = email
    if name:
        to_encode["name"] = name
    if role:
        to_encode["metadata"] = {"role": role}
    if settings.CLERK_ISSUER:
        to_encode["iss"] = settings.CLERK_ISSUER
    return jwt.encode(to_encode, settings.CLERK_JWT_SECRET, algorithm=DEV_ALGORITHM)
