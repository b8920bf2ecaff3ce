"""Tests for the SMTP email adapter."""

import dataclasses
import email
import smtplib
import socket

import pytest
from sqlmodel import Session, select

from app.config import get_settings
from app.models.temporal_token import TOKEN_VERIFY_EMAIL, TemporalToken
from app.services import email_service, temporal_token_pool
from app.services.email_service import EmailDeliveryError


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def ehlo(self):
        pass

    def starttls(self, context=None):
        pass

    def login(self, user, password):
        pass

    def sendmail(self, from_addr, to_addrs, message):
        self.sent.append((from_addr, to_addrs, message))


@pytest.fixture
def smtp_configured(monkeypatch):
    settings = dataclasses.replace(
        get_settings(),
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_user="bot@example.com",
        smtp_password="secret",
        smtp_from="bot@example.com",
        frontend_url="https://app.example.com",
    )
    monkeypatch.setattr(email_service, "get_settings", lambda: settings)
    FakeSMTP.instances = []
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    return settings


@pytest.fixture
def smtp_unconfigured(monkeypatch):
    settings = dataclasses.replace(get_settings(), smtp_host="", smtp_user="", smtp_password="")
    monkeypatch.setattr(email_service, "get_settings", lambda: settings)
    return settings


def test_dry_run_when_not_configured(smtp_unconfigured):
    assert email_service.is_configured() is False
    assert email_service.send_email("a@example.com", "Hola", "<p>Hola</p>") is False


def test_send_email_over_smtp(smtp_configured):
    assert email_service.send_email("a@example.com", "Hola", "<p>Hola</p>") is True

    server = FakeSMTP.instances[0]
    assert (server.host, server.port, server.timeout) == ("smtp.example.com", 587, 30)
    from_addr, to_addrs, message = server.sent[0]
    assert from_addr == "bot@example.com"
    assert to_addrs == ["a@example.com"]
    assert "Subject: Hola" in message


def test_timeout_is_reported(smtp_configured, monkeypatch):
    def timeout(*args, **kwargs):
        raise socket.timeout("timed out")

    monkeypatch.setattr(smtplib, "SMTP", timeout)
    with pytest.raises(EmailDeliveryError, match="Email sending timeout after 30 seconds"):
        email_service.send_email("a@example.com", "Hola", "<p>Hola</p>")


def test_connection_refused_is_reported(smtp_configured, monkeypatch):
    def refused(*args, **kwargs):
        raise ConnectionRefusedError()

    monkeypatch.setattr(smtplib, "SMTP", refused)
    with pytest.raises(EmailDeliveryError, match="Email service unavailable"):
        email_service.send_email("a@example.com", "Hola", "<p>Hola</p>")


def test_verification_email_contains_link(session: Session, smtp_configured):
    assert email_service.send_email_verification(session, "a@example.com", "Ana") is True

    token = session.exec(select(TemporalToken).where(TemporalToken.type == TOKEN_VERIFY_EMAIL)).one()
    message = email.message_from_string(FakeSMTP.instances[0].sent[0][2])
    html = message.get_payload()[1].get_payload(decode=True).decode("utf-8")
    assert f"https://app.example.com/auth/verify-email?token={token.token}" in html


def test_failed_verification_email_frees_pool_entry(session: Session, smtp_configured, monkeypatch):
    def refused(*args, **kwargs):
        raise ConnectionRefusedError()

    monkeypatch.setattr(smtplib, "SMTP", refused)
    with pytest.raises(EmailDeliveryError):
        email_service.send_email_verification(session, "a@example.com", "Ana")

    # No cooldown left behind, so a retry is possible right away
    assert temporal_token_pool.pool_stats()["verify_email_tokens"] == 0
