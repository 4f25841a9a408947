from __future__ import annotations

import smtplib

import pytest

from booknet.core import config as core_config
from booknet.core import mailer
from booknet.core.mailer import EmailTemplateName, MailDeliveryError, render_email, send_email


@pytest.fixture()
def smtp_env(monkeypatch):
    monkeypatch.setenv("SMTP_HOST", "smtp.test")
    monkeypatch.setenv("SMTP_PORT", "587")
    monkeypatch.setenv("SMTP_USER", "mailer")
    monkeypatch.setenv("SMTP_PASSWORD", "secret")
    monkeypatch.setenv("SMTP_FROM", "no-reply@booknet.test")
    core_config.get_settings.cache_clear()
    yield
    core_config.get_settings.cache_clear()


def test_templates_render_code_and_link():
    html_doc = render_email(
        EmailTemplateName.FORGOT_PASSWORD,
        username="Ada <Lovelace>",
        confirmation_url="http://front.test/reset-password",
        activation_code="123456",
    )
    assert "123456" in html_doc
    assert "http://front.test/reset-password" in html_doc
    assert "Ada &lt;Lovelace&gt;" in html_doc


def test_send_email_skips_without_smtp(monkeypatch):
    for name in ("SMTP_HOST", "SMTP_USER", "SMTP_PASSWORD", "SMTP_FROM"):
        monkeypatch.delenv(name, raising=False)
    core_config.get_settings.cache_clear()
    try:
        sent = send_email(
            "ada@example.com", "Ada", EmailTemplateName.ACTIVATE_ACCOUNT, "http://x", "123456", "Account activation"
        )
    finally:
        core_config.get_settings.cache_clear()
    assert sent is False


class _RecordingSMTP:
    sent: list = []

    def __init__(self, host, port):
        self.host = host
        self.port = port

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

    def sendmail(self, sender, recipients, message):
        self.sent.append((sender, recipients, message))


def test_send_email_over_starttls(smtp_env, monkeypatch):
    _RecordingSMTP.sent = []
    monkeypatch.setattr(mailer.smtplib, "SMTP", _RecordingSMTP)

    sent = send_email(
        "ada@example.com", "Ada", EmailTemplateName.ACTIVATE_ACCOUNT, "http://x", "654321", "Account activation"
    )

    assert sent is True
    [(sender, recipients, message)] = _RecordingSMTP.sent
    assert sender == "no-reply@booknet.test"
    assert recipients == ["ada@example.com"]
    assert "Account activation" in message


def test_send_email_failure_raises_delivery_error(smtp_env, monkeypatch):
    class _FailingSMTP(_RecordingSMTP):
        def login(self, user, password):
            raise smtplib.SMTPAuthenticationError(535, b"denied")

    monkeypatch.setattr(mailer.smtplib, "SMTP", _FailingSMTP)

    with pytest.raises(MailDeliveryError):
        send_email("ada@example.com", "Ada", EmailTemplateName.ACTIVATE_ACCOUNT, "http://x", "1", "Account activation")
