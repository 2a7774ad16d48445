"""
Channel fallback sender.

Tries a caller-supplied list of channels in order and stops at the first
successful delivery, returning the full attempt log.
"""

import logging
from typing import List, Optional, Dict, Sequence, Union

from order_pipeline.notifications.catalog import MessageCatalog
from order_pipeline.notifications.circuit_breaker import CircuitBreaker, CircuitOpenError
from order_pipeline.notifications.exceptions import InvalidRecipientError
from order_pipeline.notifications.models import (
    MessageChannel, MessagePayload, PushMessage, SendResult, normalize_phone_number
)
from order_pipeline.notifications.ports import PushSender, MessageSender


logger = logging.getLogger(__name__)


class ChannelFallbackSender:
    """
    Best-effort delivery of catalog messages across notification channels.

    Missing configuration and provider errors are recorded as failed
    attempts and never raised, so at most one channel delivers per call.
    """

    def __init__(
        self,
        push_sender: Optional[PushSender] = None,
        message_sender: Optional[MessageSender] = None,
        catalog: Optional[MessageCatalog] = None,
        circuit_breakers: Optional[Dict[MessageChannel, CircuitBreaker]] = None
    ):
        """
        Initialize fallback sender.

        Args:
            push_sender: Push gateway, or None when push is not configured
            message_sender: SMS/WhatsApp gateway, or None when not configured
            catalog: Message text and template lookup
            circuit_breakers: Optional per-channel circuit breakers
        """
        self.push_sender = push_sender
        self.message_sender = message_sender
        self.catalog = catalog or MessageCatalog()
        self.circuit_breakers = dict(circuit_breakers or {})

    async def send(
        self,
        preferred_channels: Sequence[Union[MessageChannel, str]],
        payload: MessagePayload
    ) -> List[SendResult]:
        """
        Deliver a message using the first channel that succeeds.

        Args:
            preferred_channels: Channels in priority order
            payload: Message type and destination identifiers

        Returns:
            One SendResult per channel attempted; only the last can be a success

        Raises:
            ValueError: If a channel name is not supported
        """
        channels = [MessageChannel(channel) for channel in preferred_channels]
        results: List[SendResult] = []

        for channel in channels:
            try:
                result = await self._attempt(channel, payload)
            except CircuitOpenError as e:
                result = SendResult(channel=channel, success=False, error=str(e))
            except Exception as e:
                logger.error(f"Error sending {channel.value} for {payload.message_type}: {e}")
                result = SendResult(channel=channel, success=False, error=str(e) or type(e).__name__)

            results.append(result)

            if result.success:
                break

        self._log_delivery_summary(payload, results)
        return results

    async def _attempt(self, channel: MessageChannel, payload: MessagePayload) -> SendResult:
        if channel == MessageChannel.PUSH:
            return await self._send_push(payload)
        if channel == MessageChannel.SMS:
            return await self._send_sms(payload)
        return await self._send_whatsapp(payload)

    async def _send_push(self, payload: MessagePayload) -> SendResult:
        channel = MessageChannel.PUSH

        if self.push_sender is None:
            return SendResult(channel=channel, success=False, error="Push gateway not configured")
        if payload.customer_id is None:
            return SendResult(channel=channel, success=False, error="No customer id for push delivery")

        text = self.catalog.message_for(payload.message_type)
        if text is None:
            return SendResult(channel=channel, success=False,
                              error=f"No message text for {payload.message_type}")

        try:
            body = text.render(payload.variables)
        except KeyError as e:
            return SendResult(channel=channel, success=False,
                              error=f"Missing variable {e} for {payload.message_type}")

        message = PushMessage(title=text.title, body=body, data=payload.data)
        push_result = await self._call(channel, self.push_sender.send_to_customer,
                                       payload.customer_id, message)

        if push_result.is_success:
            return SendResult(channel=channel, success=True)

        if push_result.failed:
            return SendResult(channel=channel, success=False,
                              error=f"Push delivery failed for {push_result.failed} device(s)")

        return SendResult(channel=channel, success=False, error="No push tokens registered")

    async def _send_sms(self, payload: MessagePayload) -> SendResult:
        channel = MessageChannel.SMS

        missing = self._check_messaging_requirements(channel, payload)
        if missing:
            return missing

        text = self.catalog.message_for(payload.message_type)
        if text is None:
            return SendResult(channel=channel, success=False,
                              error=f"No message text for {payload.message_type}")

        try:
            body = text.render(payload.variables)
        except KeyError as e:
            return SendResult(channel=channel, success=False,
                              error=f"Missing variable {e} for {payload.message_type}")

        phone = normalize_phone_number(payload.phone)
        message_id = await self._call(channel, self.message_sender.send_text, phone, body)
        return SendResult(channel=channel, success=True, message_id=message_id)

    async def _send_whatsapp(self, payload: MessagePayload) -> SendResult:
        channel = MessageChannel.WHATSAPP

        missing = self._check_messaging_requirements(channel, payload)
        if missing:
            return missing

        language = payload.language or self.catalog.default_language
        template_id = self.catalog.whatsapp_template(payload.message_type, language)
        if not template_id:
            return SendResult(channel=channel, success=False,
                              error=f"No WhatsApp template for {payload.message_type} ({language})")

        phone = normalize_phone_number(payload.phone)
        message_id = await self._call(channel, self.message_sender.send_template,
                                      phone, template_id, payload.variables or None)
        return SendResult(channel=channel, success=True, message_id=message_id)

    def _check_messaging_requirements(self, channel: MessageChannel,
                                      payload: MessagePayload) -> Optional[SendResult]:
        if self.message_sender is None:
            return SendResult(channel=channel, success=False, error="Messaging gateway credentials not configured")
        if not payload.phone:
            return SendResult(channel=channel, success=False, error=f"No phone number for {channel.value} delivery")

        # Invalid recipients never reach the breaker-wrapped call
        try:
            normalize_phone_number(payload.phone)
        except InvalidRecipientError as e:
            return SendResult(channel=channel, success=False, error=str(e))
        return None

    async def _call(self, channel: MessageChannel, func, *args):
        breaker = self.circuit_breakers.get(channel)
        if breaker is None:
            return await func(*args)
        return await breaker.call_async(func, *args)

    def _log_delivery_summary(self, payload: MessagePayload, results: List[SendResult]):
        """Log summary of delivery attempts."""
        if not results:
            return

        delivered = next((r.channel.value for r in results if r.success), None)
        if delivered:
            logger.info(f"{payload.message_type} delivered via {delivered} after {len(results)} attempt(s)")
        else:
            logger.warning(
                f"{payload.message_type} not delivered on any channel",
                extra={"attempts": [r.to_dict() for r in results]}
            )
