"""Tests for the temporal token pool and WhatsApp phone verification"""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, select

from app.models.temporal_token import TOKEN_FORGOT_PASSWORD, TOKEN_VERIFY_EMAIL, TOKEN_VERIFY_PHONE, TemporalToken
from app.models.user import USER_ROLE_ID
from app.services import temporal_token_pool, users_service
from app.services.temporal_token_pool import TokenRateLimitError


def test_create_token_is_64_hex_chars(session: Session):
    record = temporal_token_pool.create_token(session, "+50688880000", TOKEN_VERIFY_PHONE)
    assert len(record.token) == 64
    int(record.token, 16)
    assert record.user_phone == "+50688880000"
    assert record.user_email is None


def test_phone_verification_tokens_are_not_rate_limited(session: Session):
    first = temporal_token_pool.create_token(session, "+50688880000", TOKEN_VERIFY_PHONE)
    second = temporal_token_pool.create_token(session, "+50688880000", TOKEN_VERIFY_PHONE)
    assert first.token != second.token
    assert temporal_token_pool.pool_stats()["total_tokens"] == 0


def test_resend_cooldown(session: Session):
    temporal_token_pool.create_token(session, "+50688880000", TOKEN_FORGOT_PASSWORD)
    with pytest.raises(TokenRateLimitError):
        temporal_token_pool.create_token(session, "+50688880000", TOKEN_FORGOT_PASSWORD)

    # Different identity or type is independent
    temporal_token_pool.create_token(session, "+50688889999", TOKEN_FORGOT_PASSWORD)
    temporal_token_pool.create_token(session, "a@example.com", TOKEN_VERIFY_EMAIL)

    stats = temporal_token_pool.pool_stats()
    assert stats["total_tokens"] == 3
    assert stats["forgot_password_tokens"] == 2
    assert stats["verify_email_tokens"] == 1
    assert stats["expired_tokens"] == 0


def test_cooldown_ends_after_removal(session: Session):
    record = temporal_token_pool.create_token(session, "+50688880000", TOKEN_FORGOT_PASSWORD)
    assert temporal_token_pool.delete_token(session, record.token) is True
    temporal_token_pool.create_token(session, "+50688880000", TOKEN_FORGOT_PASSWORD)


def test_expired_pool_entries_are_purged(session: Session):
    temporal_token_pool.create_token(session, "+50688880000", TOKEN_FORGOT_PASSWORD)
    later = datetime.utcnow() + timedelta(minutes=16)

    assert temporal_token_pool.pool_stats(now=later)["expired_tokens"] == 1
    assert temporal_token_pool.clean_expired_pool_tokens(now=later) == 1
    assert temporal_token_pool.pool_stats()["total_tokens"] == 0


def test_find_token_filters_by_type(session: Session):
    record = temporal_token_pool.create_token(session, "+50688880000", TOKEN_VERIFY_PHONE)
    assert temporal_token_pool.find_token(session, record.token).id == record.id
    assert temporal_token_pool.find_token(session, record.token, TOKEN_VERIFY_PHONE) is not None
    assert temporal_token_pool.find_token(session, record.token, TOKEN_FORGOT_PASSWORD) is None


def test_delete_unknown_token(session: Session):
    assert temporal_token_pool.delete_token(session, "missing") is False


def test_clean_up_tokens_removes_old_rows(session: Session):
    old = temporal_token_pool.create_token(session, "+50688880000", TOKEN_VERIFY_PHONE)
    old.created_at = datetime.utcnow() - timedelta(hours=25)
    session.add(old)
    session.commit()
    fresh = temporal_token_pool.create_token(session, "+50688881111", TOKEN_VERIFY_PHONE)

    assert temporal_token_pool.clean_up_tokens(session) == 1
    remaining = session.exec(select(TemporalToken.token)).all()
    assert remaining == [fresh.token]


def test_verify_whatsapp_activates_user(client: TestClient, session: Session, make_user):
    pending = make_user(phone="+50688887777", status="inactive", roles=())
    record = temporal_token_pool.create_token(session, pending.phone, TOKEN_VERIFY_PHONE)

    response = client.post(
        "/api/temporal-token-pool/verify-whatsapp",
        json={"token": record.token, "phone_number": "50688887777"},
    )
    assert response.status_code == 200
    assert response.json() == {"status": "active", "user_id": pending.id}

    session.refresh(pending)
    assert pending.status == "active"
    assert users_service.get_role_ids(session, pending.id) == [USER_ROLE_ID]
    assert temporal_token_pool.find_token(session, record.token) is None


def test_verify_whatsapp_unknown_token(client: TestClient):
    response = client.post(
        "/api/temporal-token-pool/verify-whatsapp",
        json={"token": "missing", "phone_number": "+50688887777"},
    )
    assert response.status_code == 404


def test_verify_whatsapp_wrong_phone(client: TestClient, session: Session, make_user):
    pending = make_user(phone="+50688887777", status="inactive", roles=())
    record = temporal_token_pool.create_token(session, pending.phone, TOKEN_VERIFY_PHONE)

    response = client.post(
        "/api/temporal-token-pool/verify-whatsapp",
        json={"token": record.token, "phone_number": "+50600000000"},
    )
    assert response.status_code == 400


def test_verify_whatsapp_wrong_token_type(client: TestClient, session: Session, make_user):
    pending = make_user(phone="+50688887777", status="inactive", roles=())
    record = temporal_token_pool.create_token(session, pending.phone, TOKEN_FORGOT_PASSWORD)

    response = client.post(
        "/api/temporal-token-pool/verify-whatsapp",
        json={"token": record.token, "phone_number": pending.phone},
    )
    assert response.status_code == 400
