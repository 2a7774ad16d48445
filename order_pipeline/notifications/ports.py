"""
Channel adapter interfaces.

The dispatcher and fallback sender only depend on these; concrete providers
live in push_sender.py and twilio_sender.py.
"""

from abc import ABC, abstractmethod
from typing import Optional, Dict

from order_pipeline.notifications.models import PushMessage, PushResult


class PushSender(ABC):
    """Push gateway that resolves a customer's registered devices."""

    @abstractmethod
    async def send_to_customer(self, customer_id: int, message: PushMessage) -> PushResult:
        """
        Send a push notification to every device registered for a customer.

        Returns:
            Delivered and failed counts; zero of both when no device is registered
        """
        ...


class MessageSender(ABC):
    """SMS/WhatsApp gateway."""

    @abstractmethod
    async def send_text(self, phone: str, body: str) -> str:
        """
        Send a raw SMS body.

        Returns:
            Provider message id

        Raises:
            MessagingError: On transport or validation failure
        """
        ...

    @abstractmethod
    async def send_template(
        self,
        phone: str,
        template_id: str,
        variables: Optional[Dict[str, str]] = None
    ) -> str:
        """
        Send a WhatsApp content template.

        Returns:
            Provider message id

        Raises:
            MessagingError: On transport or validation failure
        """
        ...
