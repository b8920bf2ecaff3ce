"""
Temporal token pool.

Tokens are persisted in the ``temporal_token_pool`` table. Password-reset and
email-verification requests are additionally tracked in a process-wide pool
keyed by identity so repeated requests can be throttled without a DB query.
"""

import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, Optional

from sqlalchemy import delete
from sqlmodel import Session, select

from app.models.temporal_token import (
    TOKEN_FORGOT_PASSWORD,
    TOKEN_VERIFY_EMAIL,
    TOKEN_VERIFY_PHONE,
    TemporalToken,
)

logger = logging.getLogger(__name__)

POOL_ENTRY_TTL = timedelta(minutes=15)
RESEND_COOLDOWN = timedelta(minutes=5)
DB_TOKEN_TTL = timedelta(hours=24)
CLEANUP_INTERVAL_SECONDS = 15 * 60

# Types that go through the in-memory pool
POOLED_TYPES = (TOKEN_FORGOT_PASSWORD, TOKEN_VERIFY_EMAIL)


class TokenRateLimitError(ValueError):
    """A token of the same type was issued to the same identity too recently."""


@dataclass
class PoolEntry:
    token: str
    identity: str
    type: str
    created_at: datetime


_pool: Dict[str, PoolEntry] = {}
_pool_lock = threading.Lock()


def _pool_key(identity: str, token_type: str) -> str:
    return f"{identity}_{token_type}"


def _generate_token() -> str:
    return secrets.token_hex(32)


def clean_expired_pool_tokens(now: Optional[datetime] = None) -> int:
    """Drop pool entries older than POOL_ENTRY_TTL. Returns the number removed."""
    now = now or datetime.utcnow()
    with _pool_lock:
        expired = [key for key, entry in _pool.items() if now - entry.created_at > POOL_ENTRY_TTL]
        for key in expired:
            del _pool[key]
    if expired:
        logger.info(f"Removed {len(expired)} expired tokens from the pool")
    return len(expired)


def create_token(session: Session, identity: str, token_type: str) -> TemporalToken:
    """
    Issue a new token for a phone number (verify_phone, forgot_password)
    or an email address (verify_email).

    Raises:
        TokenRateLimitError: a pooled token for the same identity was issued
            less than RESEND_COOLDOWN ago
    """
    now = datetime.utcnow()
    token = _generate_token()

    if token_type in POOLED_TYPES:
        clean_expired_pool_tokens(now)
        key = _pool_key(identity, token_type)
        with _pool_lock:
            existing = _pool.get(key)
            if existing and now - existing.created_at < RESEND_COOLDOWN:
                raise TokenRateLimitError(
                    "A recovery message was already sent recently. Please wait a few minutes before trying again."
                )
            _pool[key] = PoolEntry(token=token, identity=identity, type=token_type, created_at=now)

    if "@" in identity:
        record = TemporalToken(token=token, user_email=identity, type=token_type, created_at=now)
    else:
        record = TemporalToken(token=token, user_phone=identity, type=token_type, created_at=now)

    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def find_token(session: Session, token: str, token_type: Optional[str] = None) -> Optional[TemporalToken]:
    query = select(TemporalToken).where(TemporalToken.token == token)
    if token_type:
        query = query.where(TemporalToken.type == token_type)
    return session.exec(query).first()


def remove_from_pool(identity: str, token_type: str) -> None:
    with _pool_lock:
        _pool.pop(_pool_key(identity, token_type), None)


def delete_token(session: Session, token: str) -> bool:
    """Delete a token row and its pool entry. Returns False when no row matched."""
    record = find_token(session, token)
    if not record:
        return False
    identity = record.user_email or record.user_phone
    if identity:
        remove_from_pool(identity, record.type)
    session.delete(record)
    session.commit()
    return True


def clear_tokens_by_type(session: Session, token_type: str) -> int:
    """Remove every token of one type, from the database and the pool."""
    result = session.execute(delete(TemporalToken).where(TemporalToken.type == token_type))
    session.commit()
    with _pool_lock:
        for key in [k for k, e in _pool.items() if e.type == token_type]:
            del _pool[key]
    return result.rowcount or 0


def pool_stats(now: Optional[datetime] = None) -> dict:
    now = now or datetime.utcnow()
    with _pool_lock:
        entries = list(_pool.values())
    return {
        "total_tokens": len(entries),
        "forgot_password_tokens": sum(1 for e in entries if e.type == TOKEN_FORGOT_PASSWORD),
        "verify_email_tokens": sum(1 for e in entries if e.type == TOKEN_VERIFY_EMAIL),
        "expired_tokens": sum(1 for e in entries if now - e.created_at > POOL_ENTRY_TTL),
    }


def clean_up_tokens(session: Session, now: Optional[datetime] = None) -> int:
    """Delete DB tokens older than DB_TOKEN_TTL and purge the pool."""
    now = now or datetime.utcnow()
    clean_expired_pool_tokens(now)
    result = session.execute(delete(TemporalToken).where(TemporalToken.created_at < now - DB_TOKEN_TTL))
    session.commit()
    removed = result.rowcount or 0
    if removed:
        logger.info(f"Deleted {removed} expired temporal tokens")
    return removed


def reset_pool() -> None:
    with _pool_lock:
        _pool.clear()


__all__ = [
    "TOKEN_FORGOT_PASSWORD",
    "TOKEN_VERIFY_EMAIL",
    "TOKEN_VERIFY_PHONE",
    "TokenRateLimitError",
    "clean_expired_pool_tokens",
    "clean_up_tokens",
    "clear_tokens_by_type",
    "create_token",
    "delete_token",
    "find_token",
    "pool_stats",
    "remove_from_pool",
    "reset_pool",
]
