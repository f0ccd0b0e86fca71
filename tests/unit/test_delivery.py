"""Unit tests for SMTP digest delivery (smtplib is mocked)"""

from __future__ import annotations

import smtplib
from unittest.mock import patch

import pytest

from lifedigest.digest.delivery import DigestDelivery
from lifedigest.digest.renderer import RenderedDigest
from lifedigest.observability.telemetry import get_counter

DIGEST = RenderedDigest(subject="Daily Digest for today", html="<h1>Hi</h1>", text="Hi")


@pytest.fixture(autouse=True)
def _clean_smtp_env(monkeypatch):
    for key in (
        "SMTP_HOST",
        "SMTP_PORT",
        "SMTP_USER",
        "SMTP_PASSWORD",
        "SMTP_FROM_EMAIL",
        "SMTP_FROM_NAME",
        "DIGEST_FROM_EMAIL",
    ):
        monkeypatch.delenv(key, raising=False)


def _delivery(**kwargs):
    params = {
        "smtp_host": "smtp.example.test",
        "smtp_port": 2525,
        "smtp_user": "bot@example.test",
        "smtp_password": "app-password",
    }
    params.update(kwargs)
    return DigestDelivery(**params)


def test_build_message_has_text_then_html():
    message = _delivery(from_email="digest@example.test").build_message("me@example.test", DIGEST)

    assert message["Subject"] == "Daily Digest for today"
    assert message["From"] == "Lifelog Digest <digest@example.test>"
    assert message["To"] == "me@example.test"
    parts = message.get_payload()
    assert [part.get_content_type() for part in parts] == ["text/plain", "text/html"]


def test_send_digest_uses_starttls_and_login():
    delivery = _delivery()

    with patch("lifedigest.digest.delivery.smtplib.SMTP") as smtp_cls:
        assert delivery.send_digest("me@example.test", DIGEST) is True

    smtp_cls.assert_called_once_with("smtp.example.test", 2525)
    server = smtp_cls.return_value.__enter__.return_value
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("bot@example.test", "app-password")
    server.send_message.assert_called_once()
    assert get_counter("digest.delivery.sent") == 1


def test_from_address_falls_back_to_env_then_user(monkeypatch):
    assert _delivery().from_email == "bot@example.test"

    monkeypatch.setenv("DIGEST_FROM_EMAIL", "digest@example.test")
    assert _delivery().from_email == "digest@example.test"


def test_send_digest_disabled_without_credentials():
    delivery = DigestDelivery(smtp_host="smtp.example.test")

    with patch("lifedigest.digest.delivery.smtplib.SMTP") as smtp_cls:
        assert delivery.send_digest("me@example.test", DIGEST) is False

    assert not delivery.enabled
    smtp_cls.assert_not_called()


def test_send_digest_requires_recipient():
    with patch("lifedigest.digest.delivery.smtplib.SMTP") as smtp_cls:
        assert _delivery().send_digest("", DIGEST) is False
    smtp_cls.assert_not_called()


def test_send_digest_reports_smtp_failure():
    delivery = _delivery()

    with patch("lifedigest.digest.delivery.smtplib.SMTP") as smtp_cls:
        server = smtp_cls.return_value.__enter__.return_value
        server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"bad credentials")
        assert delivery.send_digest("me@example.test", DIGEST) is False

    assert get_counter("digest.delivery.failed") == 1


def test_config_status_hides_password():
    status = _delivery().get_config_status()
    assert status["enabled"] is True
    assert status["smtp_password_set"] is True
    assert "app-password" not in status.values()
