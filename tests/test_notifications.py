"""
Unit tests for notification delivery and configuration loading.
"""

import asyncio
import smtplib

import pytest

from parking_live.config import AppConfig, load_config, load_config_or_default
from parking_live.notifications.dispatcher import NotificationDispatcher
from parking_live.notifications.sender import SmtpEmailSender
from parking_live.state.exceptions import NotificationFailure

from .fakes import RecordingSender


def test_send_success():
    """Immediate send reports success."""
    sender = RecordingSender()
    dispatcher = NotificationDispatcher(sender)

    assert asyncio.run(dispatcher.send("a@example.com", "Subject", "Body")) is True
    assert sender.sent == [("a@example.com", "Subject", "Body")]


def test_send_failure_is_reported_not_raised():
    """A sender failure becomes a False result."""
    dispatcher = NotificationDispatcher(RecordingSender(fail=True))

    assert asyncio.run(dispatcher.send("a@example.com", "Subject", "Body")) is False


def test_worker_delivers_submitted_messages():
    """Queued messages are delivered by the worker in order."""
    sender = RecordingSender()

    async def scenario():
        dispatcher = NotificationDispatcher(sender)
        dispatcher.start()
        dispatcher.submit("a@example.com", "One", "1")
        dispatcher.submit("b@example.com", "Two", "2")
        await asyncio.wait_for(dispatcher.drain(), timeout=5)
        await dispatcher.stop()

    asyncio.run(scenario())

    assert [s[1] for s in sender.sent] == ["One", "Two"]


def test_worker_survives_failures():
    """A failed delivery does not stop the worker."""

    class FailOnce(RecordingSender):
        def send(self, destination, subject, body):
            if not self.fail:
                self.fail = True
                raise NotificationFailure("first attempt fails")
            self.sent.append((destination, subject, body))

    sender = FailOnce()

    async def scenario():
        dispatcher = NotificationDispatcher(sender)
        dispatcher.start()
        dispatcher.submit("a@example.com", "One", "1")
        dispatcher.submit("a@example.com", "Two", "2")
        await asyncio.wait_for(dispatcher.drain(), timeout=5)
        await dispatcher.stop()

    asyncio.run(scenario())

    assert [s[1] for s in sender.sent] == ["Two"]


def test_full_queue_drops_message():
    """Submitting to a full queue drops the message without raising."""
    dispatcher = NotificationDispatcher(RecordingSender(), queue_size=1)
    dispatcher.submit("a@example.com", "One", "1")
    dispatcher.submit("a@example.com", "Two", "2")

    assert dispatcher.pending == 1


class FakeSMTP:
    """Stand-in for smtplib.SMTP."""

    instances = []
    fail_with = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.calls = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, username, password):
        self.calls.append(("login", username, password))

    def send_message(self, message):
        if FakeSMTP.fail_with:
            raise FakeSMTP.fail_with
        self.calls.append(("send", message["To"], message["Subject"], message.get_content()))


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.fail_with = None
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def test_smtp_sender(fake_smtp):
    """The SMTP sender upgrades to TLS, logs in and sends."""
    sender = SmtpEmailSender("smtp.example.com", 587, "user", "secret", sender="from@example.com")
    sender.send("to@example.com", "Alert", "Spot 3 occupied")

    smtp = fake_smtp.instances[0]
    assert (smtp.host, smtp.port) == ("smtp.example.com", 587)
    assert smtp.calls[0] == "starttls"
    assert smtp.calls[1] == ("login", "user", "secret")
    assert smtp.calls[2][:3] == ("send", "to@example.com", "Alert")
    assert smtp.calls[2][3].strip() == "Spot 3 occupied"


def test_smtp_sender_failure(fake_smtp):
    """SMTP errors surface as NotificationFailure."""
    fake_smtp.fail_with = smtplib.SMTPRecipientsRefused({})
    sender = SmtpEmailSender("smtp.example.com", use_tls=False)

    with pytest.raises(NotificationFailure):
        sender.send("to@example.com", "Alert", "Body")


def test_smtp_sender_rejects_line_breaks_in_headers(fake_smtp):
    """A destination carrying extra header lines is refused before connecting."""
    sender = SmtpEmailSender("smtp.example.com", use_tls=False)

    with pytest.raises(NotificationFailure):
        sender.send("a@example.com\nBcc: x@example.com", "Alert", "Body")

    assert fake_smtp.instances == []


def test_load_config(tmp_path, monkeypatch):
    """YAML config is validated and ${VAR} references resolved."""
    monkeypatch.setenv("TEST_SMTP_PASSWORD", "hunter2")
    path = tmp_path / "config.yaml"
    path.write_text(
        "spots:\n"
        "  count: 4\n"
        "reservations:\n"
        "  ttl_minutes: 15\n"
        "notifications:\n"
        "  smtp_host: smtp.example.com\n"
        "  smtp_password: ${TEST_SMTP_PASSWORD}\n"
    )

    config = load_config(path)

    assert config.spots.count == 4
    assert config.reservations.ttl_minutes == 15
    assert config.reservations.sweep_interval_seconds == 60
    assert config.sensor.occupied_threshold_cm == 20
    assert config.broadcast.send_timeout_seconds == 10
    assert config.notifications.smtp_password == "hunter2"


def test_missing_config_uses_defaults(tmp_path):
    """A missing config file falls back to defaults."""
    config = load_config_or_default(tmp_path / "missing.yaml")

    assert config == AppConfig()
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "missing.yaml")
