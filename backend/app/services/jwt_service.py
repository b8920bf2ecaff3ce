"""
Access/refresh token issuance and verification.

Access tokens embed the full session payload (roles, church memberships and
band memberships) so permission checks never hit the database for the common
case. Refresh tokens only carry the subject and are rotated on every refresh.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Tuple

import jwt
from jwt import InvalidTokenError

from app.config import get_settings

ALGORITHM = "HS256"

__all__ = [
    "InvalidTokenError",
    "generate_tokens",
    "to_session_format",
    "verify_access_token",
    "verify_refresh_token",
]


def _encode(claims: Dict[str, Any], secret: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = dict(claims)
    to_encode["iat"] = now
    to_encode["exp"] = now + lifetime
    return jwt.encode(to_encode, secret, algorithm=ALGORITHM)


def generate_tokens(payload: Dict[str, Any]) -> Tuple[str, str]:
    """
    Build an (access_token, refresh_token) pair for a user payload.

    Args:
        payload: dict with keys sub, email, name, roles, memberships, members_of_bands

    Returns:
        (access_token, refresh_token)
    """
    settings = get_settings()
    access_claims = {
        "sub": str(payload["sub"]),
        "email": payload.get("email"),
        "name": payload.get("name"),
        "roles": payload.get("roles", []),
        "memberships": payload.get("memberships", []),
        "members_of_bands": payload.get("members_of_bands", []),
    }
    refresh_claims = {"sub": str(payload["sub"]), "email": payload.get("email")}

    access_token = _encode(
        access_claims,
        settings.jwt_access_secret,
        timedelta(minutes=settings.jwt_access_expires_minutes),
    )
    refresh_token = _encode(
        refresh_claims,
        settings.jwt_refresh_secret,
        timedelta(days=settings.jwt_refresh_expires_days),
    )
    return access_token, refresh_token


def verify_access_token(token: str) -> Dict[str, Any]:
    """Decode an access token. Raises InvalidTokenError when invalid or expired."""
    return jwt.decode(token, get_settings().jwt_access_secret, algorithms=[ALGORITHM])


def verify_refresh_token(token: str) -> Dict[str, Any]:
    """Decode a refresh token. Raises InvalidTokenError when invalid or expired."""
    return jwt.decode(token, get_settings().jwt_refresh_secret, algorithms=[ALGORITHM])


def to_session_format(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "user_id": int(payload["sub"]),
        "name": payload.get("name"),
        "email": payload.get("email"),
        "is_logged_in": True,
        "roles": payload.get("roles", []),
        "memberships": payload.get("memberships", []),
        "members_of_bands": payload.get("members_of_bands", []),
    }
