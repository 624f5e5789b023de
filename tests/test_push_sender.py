import pytest
import requests
from pydantic import ValidationError

from api.notifications import messages
from utils import push_sender
from utils.errors import ConfigurationError, DeliveryError
from utils.push_sender import PushMessage, PushSender

from conftest import make_user


class FakeResponse:
    def __init__(self, status_code, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []

    def post(self, url, json=None, timeout=None):
        self.calls.append((url, json, timeout))
        if self.exc:
            raise self.exc
        return self.response


def test_message_requires_exactly_one_target():
    with pytest.raises(ValidationError):
        PushMessage(title="t", body="b")
    with pytest.raises(ValidationError):
        PushMessage(token="x", topic="y", title="t", body="b")


def test_prayer_message_payload(settings):
    payload = messages.prayer_due(settings, make_user("u1"), "Asr").to_fcm()["message"]

    assert payload["token"] == "token-u1"
    assert payload["notification"] == {"title": "🕌 Time for Asr", "body": "Allah-o-Akbar! It's time for Asr prayer."}
    assert payload["android"]["priority"] == "HIGH"
    assert payload["android"]["notification"]["sound"] == "azan_tone"
    assert payload["android"]["notification"]["channel_id"] == "prayer-notifications"
    assert payload["apns"]["payload"]["aps"]["sound"] == "azan_tone.caf"
    assert payload["webpush"]["fcm_options"]["link"] == "https://salah-tracker-app.vercel.app"
    assert payload["webpush"]["notification"]["icon"] == "https://salah-tracker-app.vercel.app/icon-192.png"
    assert payload["fcm_options"] == {"analytics_label": "prayer-notification"}
    assert payload["data"] == {"type": "prayer_due", "prayer": "Asr"}


def test_donation_message_goes_to_topic(settings):
    payload = messages.donation_reminder(settings).to_fcm()["message"]

    assert payload["topic"] == "donations"
    assert "token" not in payload
    assert "apns" not in payload


async def test_send_returns_message_name(settings):
    session = FakeSession(FakeResponse(200, {"name": "projects/test-project/messages/42"}))
    sender = PushSender(settings, session=session)

    message_id = await sender.send(messages.manual(settings, "tok-123456789", "Hi", "There"))

    assert message_id == "projects/test-project/messages/42"
    url, body, _ = session.calls[0]
    assert url == "https://fcm.googleapis.com/v1/projects/test-project/messages:send"
    assert body["message"]["token"] == "tok-123456789"


async def test_rejected_send_raises_delivery_error(settings):
    error = {"error": {"status": "NOT_FOUND", "details": [{"errorCode": "UNREGISTERED"}]}}
    sender = PushSender(settings, session=FakeSession(FakeResponse(404, error, text="not found")))

    with pytest.raises(DeliveryError) as exc:
        await sender.send(messages.manual(settings, "tok-123456789", "Hi", "There"))

    assert exc.value.status_code == 404
    assert exc.value.error_code == "UNREGISTERED"


async def test_transport_error_raises_delivery_error(settings):
    sender = PushSender(settings, session=FakeSession(exc=requests.ConnectionError("down")))

    with pytest.raises(DeliveryError):
        await sender.send(messages.manual(settings, "tok-123456789", "Hi", "There"))


async def test_stub_mode_skips_network(settings):
    settings.push_mode = "stub"
    session = FakeSession(exc=AssertionError("network used"))

    message_id = await PushSender(settings, session=session).send(messages.donation_reminder(settings))

    assert message_id.startswith("stub-")
    assert session.calls == []


def test_init_messaging_is_one_time(settings, monkeypatch):
    created = []

    def fake_from_info(info, scopes=None):
        created.append(info)
        return object()

    monkeypatch.setattr(push_sender.service_account.Credentials, "from_service_account_info", fake_from_info)
    monkeypatch.setattr(push_sender, "AuthorizedSession", lambda creds: object())
    push_sender.reset_messaging()
    try:
        first = push_sender.init_messaging(settings)
        second = push_sender.init_messaging(settings)
    finally:
        push_sender.reset_messaging()

    assert first is second
    assert len(created) == 1
    assert created[0]["client_email"] == settings.fcm_client_email


def test_init_messaging_without_credentials(settings):
    settings.fcm_client_email = ""
    push_sender.reset_messaging()

    with pytest.raises(ConfigurationError):
        push_sender.init_messaging(settings)
