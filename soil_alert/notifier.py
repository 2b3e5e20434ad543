"""
SMS delivery through Twilio.
"""

import logging

import requests
from twilio.base.exceptions import TwilioException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from soil_alert.errors import DeliveryError

logger = logging.getLogger(__name__)


class SmsNotifier:
    """Sends text messages from the configured Twilio number."""

    def __init__(self, account_sid: str, auth_token: str, from_number: str,
                 timeout: float = 10.0, client: Client = None):
        self.from_number = from_number
        self.client = client or Client(
            account_sid,
            auth_token,
            http_client=TwilioHttpClient(timeout=timeout),
        )

    def send_message(self, to: str, body: str) -> str:
        """
        Send an SMS and return the provider-assigned message SID.

        Raises:
            DeliveryError: Provider rejected the message or transport failed
        """
        try:
            message = self.client.messages.create(
                body=body,
                from_=self.from_number,
                to=to,
            )
        except TwilioException as e:
            logger.error(f"Twilio rejected SMS to {to}: {e}")
            raise DeliveryError(f"Failed to send SMS: {e}") from e
        except requests.RequestException as e:
            logger.error(f"Could not reach Twilio for SMS to {to}: {e}")
            raise DeliveryError(f"Failed to send SMS: {e}") from e

        logger.info(f"SMS sent to {to}, message SID: {message.sid}")
        return message.sid
