"""
SMS and WhatsApp sender using the Twilio Messaging API.
"""

import os
import json
import asyncio
import logging
from typing import Optional, Dict

from twilio.rest import Client
from twilio.base.exceptions import TwilioRestException

from order_pipeline.notifications.exceptions import ConfigurationError, MessagingError
from order_pipeline.notifications.models import normalize_phone_number
from order_pipeline.notifications.ports import MessageSender


logger = logging.getLogger(__name__)


class TwilioMessageSender(MessageSender):
    """
    Twilio sender for raw SMS bodies and WhatsApp content templates.

    Messages go through a Messaging Service so Twilio picks the sender
    number. The Twilio client is blocking, so calls run in a worker thread.
    """

    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        messaging_service_sid: Optional[str] = None
    ):
        """
        Initialize Twilio sender.

        Args:
            account_sid: Twilio account SID (defaults to env var)
            auth_token: Twilio auth token (defaults to env var)
            messaging_service_sid: Messaging Service SID (defaults to env var)
        """
        self.account_sid = account_sid or os.getenv('TWILIO_ACCOUNT_SID')
        self.auth_token = auth_token or os.getenv('TWILIO_AUTH_TOKEN')
        self.messaging_service_sid = messaging_service_sid or os.getenv('TWILIO_MESSAGING_SERVICE_SID')

        if not self.account_sid or not self.auth_token:
            raise ConfigurationError(
                "Twilio credentials not found. Set TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN"
            )

        if not self.messaging_service_sid:
            raise ConfigurationError(
                "Twilio messaging service not configured. Set TWILIO_MESSAGING_SERVICE_SID"
            )

        self.client = Client(self.account_sid, self.auth_token)

        logger.info(f"Twilio sender initialized with messaging service: {self.messaging_service_sid}")

    async def send_text(self, phone: str, body: str) -> str:
        to_number = self.validate_phone_number(phone)
        return await asyncio.to_thread(self._create, "sms", to=to_number, body=body)

    async def send_template(
        self,
        phone: str,
        template_id: str,
        variables: Optional[Dict[str, str]] = None
    ) -> str:
        to_number = f"whatsapp:{self.validate_phone_number(phone)}"

        params = {'to': to_number, 'content_sid': template_id}
        if variables:
            params['content_variables'] = json.dumps(variables)

        return await asyncio.to_thread(self._create, "whatsapp", **params)

    def _create(self, channel: str, **params) -> str:
        try:
            logger.info(f"Sending {channel} message to {params['to']}")

            message = self.client.messages.create(
                messaging_service_sid=self.messaging_service_sid,
                **params
            )

            logger.info(f"{channel} message sent successfully: {message.sid}")
            return message.sid

        except TwilioRestException as e:
            error_msg = f"Twilio error: {e.msg} (Code: {e.code})"

            if e.code == 63016:
                error_msg += ". The recipient may not be registered for WhatsApp or " \
                             "the template is not approved for this recipient."
            elif e.code == 21211:
                error_msg += ". The recipient phone number is invalid."

            logger.error(f"Failed to send {channel} message to {params['to']}: {error_msg}")
            raise MessagingError(error_msg, channel=channel, error_code=e.code)

    @staticmethod
    def validate_phone_number(phone: str) -> str:
        """Normalize a phone number to E.164, raising InvalidRecipientError."""
        return normalize_phone_number(phone)
