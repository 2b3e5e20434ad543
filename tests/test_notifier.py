"""
Tests for the Twilio SMS notifier.
"""

from types import SimpleNamespace

import pytest
import requests
from twilio.base.exceptions import TwilioRestException

from soil_alert.errors import DeliveryError
from soil_alert.notifier import SmsNotifier


class FakeMessages:
    def __init__(self, error=None):
        self.error = error
        self.created = []

    def create(self, body, from_, to):
        self.created.append({"body": body, "from_": from_, "to": to})
        if self.error is not None:
            raise self.error
        return SimpleNamespace(sid="SM123")


def make_notifier(error=None):
    messages = FakeMessages(error)
    client = SimpleNamespace(messages=messages)
    notifier = SmsNotifier("ACtest", "token", "+15005550006", client=client)
    return notifier, messages


class TestSmsNotifier:

    def test_send_message_returns_sid(self):
        notifier, messages = make_notifier()

        assert notifier.send_message("+919876543210", "Soil is dry") == "SM123"
        assert messages.created == [
            {"body": "Soil is dry", "from_": "+15005550006", "to": "+919876543210"}
        ]

    def test_provider_rejection(self):
        error = TwilioRestException(400, "https://api.twilio.com", msg="Invalid 'To' Phone Number")
        notifier, _ = make_notifier(error)

        with pytest.raises(DeliveryError, match="Invalid 'To' Phone Number"):
            notifier.send_message("+910000000000", "Soil is dry")

    def test_transport_failure(self):
        notifier, _ = make_notifier(requests.ConnectionError("connection reset"))

        with pytest.raises(DeliveryError):
            notifier.send_message("+919876543210", "Soil is dry")

    def test_builds_twilio_client(self):
        notifier = SmsNotifier("ACtest", "token", "+15005550006", timeout=3)

        assert notifier.client.http_client.timeout == 3
