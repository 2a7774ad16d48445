"""
Unit tests for the channel fallback sender.
"""

import pytest
from unittest.mock import AsyncMock, Mock

from order_pipeline.notifications.catalog import MessageCatalog, OTP_VERIFICATION
from order_pipeline.notifications.circuit_breaker import CircuitBreaker, CircuitState
from order_pipeline.notifications.exceptions import MessagingError, PushError
from order_pipeline.notifications.fallback_sender import ChannelFallbackSender
from order_pipeline.notifications.models import (
    MessageChannel, MessagePayload, PushMessage, PushResult
)
from order_pipeline.notifications.ports import MessageSender, PushSender


@pytest.fixture
def push_sender():
    """Push gateway that delivers to one device."""
    sender = Mock(spec=PushSender)
    sender.send_to_customer = AsyncMock(return_value=PushResult(sent=1, failed=0))
    return sender


@pytest.fixture
def message_sender():
    """SMS/WhatsApp gateway that always succeeds."""
    sender = Mock(spec=MessageSender)
    sender.send_text = AsyncMock(return_value="SM123")
    sender.send_template = AsyncMock(return_value="MM456")
    return sender


@pytest.fixture
def catalog():
    """Catalog with a provisioned Spanish template for order:ready."""
    return MessageCatalog().with_whatsapp_templates({"order:ready": {"es": "HX_ready"}})


@pytest.fixture
def payload():
    return MessagePayload(
        message_type="order:ready",
        customer_id=9,
        phone="+5215512345678",
        data={"orderId": "501"}
    )


class TestChannelFallbackSender:
    """Test ordered channel fallback."""

    @pytest.mark.asyncio
    async def test_stops_at_first_success(self, push_sender, message_sender, catalog, payload):
        sender = ChannelFallbackSender(push_sender, message_sender, catalog)

        results = await sender.send([MessageChannel.PUSH, MessageChannel.SMS], payload)

        assert len(results) == 1
        assert results[0].channel == MessageChannel.PUSH
        assert results[0].success is True
        message_sender.send_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_push_without_tokens_falls_back_to_sms(self, push_sender, message_sender, catalog, payload):
        push_sender.send_to_customer.return_value = PushResult(sent=0, failed=0)
        sender = ChannelFallbackSender(push_sender, message_sender, catalog)

        results = await sender.send(["push", "sms"], payload)

        assert [r.channel for r in results] == [MessageChannel.PUSH, MessageChannel.SMS]
        assert results[0].success is False
        assert results[0].error == "No push tokens registered"
        assert results[1].success is True
        assert results[1].message_id == "SM123"
        message_sender.send_text.assert_awaited_once_with(
            "+5215512345678", catalog.message_for("order:ready").body
        )

    @pytest.mark.asyncio
    async def test_push_message_uses_catalog_text_and_data(self, push_sender, catalog, payload):
        sender = ChannelFallbackSender(push_sender=push_sender, catalog=catalog)

        await sender.send(["push"], payload)

        text = catalog.message_for("order:ready")
        push_sender.send_to_customer.assert_awaited_once_with(
            9, PushMessage(title=text.title, body=text.body, data={"orderId": "501"})
        )

    @pytest.mark.asyncio
    async def test_push_rejected_by_all_devices(self, push_sender, message_sender, catalog, payload):
        push_sender.send_to_customer.return_value = PushResult(sent=0, failed=2)
        sender = ChannelFallbackSender(push_sender, message_sender, catalog)

        results = await sender.send(["push"], payload)

        assert len(results) == 1
        assert results[0].success is False
        assert "2 device" in results[0].error

    @pytest.mark.asyncio
    async def test_whatsapp_sends_template_with_variables(self, message_sender, catalog):
        sender = ChannelFallbackSender(message_sender=message_sender, catalog=catalog)
        payload = MessagePayload(message_type="order:ready", phone="+5215512345678",
                                 variables={"1": "Ana"})

        results = await sender.send(["whatsapp"], payload)

        assert results[0].success is True
        assert results[0].message_id == "MM456"
        message_sender.send_template.assert_awaited_once_with("+5215512345678", "HX_ready", {"1": "Ana"})

    @pytest.mark.asyncio
    async def test_whatsapp_without_template_for_language(self, message_sender, catalog):
        sender = ChannelFallbackSender(message_sender=message_sender, catalog=catalog)
        payload = MessagePayload(message_type="order:ready", phone="+5215512345678", language="en")

        results = await sender.send(["whatsapp", "sms"], payload)

        assert [r.success for r in results] == [False, True]
        assert "No WhatsApp template" in results[0].error
        message_sender.send_template.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_requirements_are_reported(self, catalog):
        sender = ChannelFallbackSender(catalog=catalog)
        payload = MessagePayload(message_type="order:ready")

        results = await sender.send(["push", "sms", "whatsapp"], payload)

        assert len(results) == 3
        assert all(not r.success for r in results)
        assert results[0].error == "Push gateway not configured"
        assert "credentials not configured" in results[1].error
        assert "credentials not configured" in results[2].error

    @pytest.mark.asyncio
    async def test_missing_customer_and_phone(self, push_sender, message_sender, catalog):
        sender = ChannelFallbackSender(push_sender, message_sender, catalog)
        payload = MessagePayload(message_type="order:ready")

        results = await sender.send(["push", "sms"], payload)

        assert [r.success for r in results] == [False, False]
        assert "customer id" in results[0].error
        assert "phone number" in results[1].error
        push_sender.send_to_customer.assert_not_awaited()
        message_sender.send_text.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_adapter_errors_become_failed_results(self, push_sender, message_sender, catalog, payload):
        push_sender.send_to_customer.side_effect = PushError("Expo unavailable", status_code=503)
        message_sender.send_text.side_effect = MessagingError("Twilio error: invalid number", error_code=21211)
        sender = ChannelFallbackSender(push_sender, message_sender, catalog)

        results = await sender.send(["push", "sms"], payload)

        assert [r.success for r in results] == [False, False]
        assert results[0].error == "Expo unavailable"
        assert "invalid number" in results[1].error

    @pytest.mark.asyncio
    async def test_empty_preference_list(self, push_sender, catalog, payload):
        sender = ChannelFallbackSender(push_sender=push_sender, catalog=catalog)

        assert await sender.send([], payload) == []
        push_sender.send_to_customer.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_channel_raises(self, catalog, payload):
        sender = ChannelFallbackSender(catalog=catalog)

        with pytest.raises(ValueError):
            await sender.send(["pigeon"], payload)

    @pytest.mark.asyncio
    async def test_open_circuit_skips_channel(self, push_sender, message_sender, catalog, payload):
        breaker = CircuitBreaker("push", failure_threshold=1)
        breaker.record_failure()
        sender = ChannelFallbackSender(push_sender, message_sender, catalog,
                                       circuit_breakers={MessageChannel.PUSH: breaker})

        results = await sender.send(["push", "sms"], payload)

        assert results[0].success is False
        assert "is open" in results[0].error
        assert results[1].success is True
        push_sender.send_to_customer.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_adapter_failures_trip_circuit(self, message_sender, catalog, payload):
        message_sender.send_text.side_effect = MessagingError("Twilio down")
        breaker = CircuitBreaker("sms", failure_threshold=2)
        sender = ChannelFallbackSender(message_sender=message_sender, catalog=catalog,
                                       circuit_breakers={MessageChannel.SMS: breaker})

        await sender.send(["sms"], payload)
        await sender.send(["sms"], payload)
        results = await sender.send(["sms"], payload)

        assert message_sender.send_text.await_count == 2
        assert "is open" in results[0].error

    @pytest.mark.asyncio
    async def test_invalid_recipients_do_not_trip_circuit(self, message_sender, catalog, payload):
        breaker = CircuitBreaker("sms", failure_threshold=2)
        sender = ChannelFallbackSender(message_sender=message_sender, catalog=catalog,
                                       circuit_breakers={MessageChannel.SMS: breaker})
        bad_payload = MessagePayload(message_type="order:ready", phone="12")

        for _ in range(3):
            results = await sender.send(["sms", "whatsapp"], bad_payload)
            assert [r.success for r in results] == [False, False]
            assert all("Invalid phone number" in r.error for r in results)

        results = await sender.send(["sms"], payload)

        assert results[0].success is True
        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0
        message_sender.send_text.assert_awaited_once()
        message_sender.send_template.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_phone_is_normalized_before_sending(self, message_sender, catalog):
        sender = ChannelFallbackSender(message_sender=message_sender, catalog=catalog)
        payload = MessagePayload(message_type="order:ready", phone="+52 (155) 1234-5678")

        await sender.send(["sms"], payload)

        assert message_sender.send_text.await_args.args[0] == "+5215512345678"

    @pytest.mark.asyncio
    async def test_otp_over_sms(self, message_sender, catalog):
        sender = ChannelFallbackSender(message_sender=message_sender, catalog=catalog)
        payload = MessagePayload(message_type=OTP_VERIFICATION, phone="+5215512345678",
                                 variables={"1": "482913"})

        results = await sender.send(["whatsapp", "sms"], payload)

        assert [r.channel for r in results] == [MessageChannel.WHATSAPP, MessageChannel.SMS]
        assert "No WhatsApp template" in results[0].error
        assert results[1].success is True
        message_sender.send_text.assert_awaited_once_with(
            "+5215512345678", "Tu código de verificación es 482913"
        )

    @pytest.mark.asyncio
    async def test_missing_text_variable_fails_channel(self, push_sender, message_sender, catalog):
        sender = ChannelFallbackSender(push_sender, message_sender, catalog)
        payload = MessagePayload(message_type=OTP_VERIFICATION, customer_id=9, phone="+5215512345678")

        results = await sender.send(["push", "sms"], payload)

        assert [r.success for r in results] == [False, False]
        assert all("Missing variable" in r.error for r in results)
        push_sender.send_to_customer.assert_not_awaited()
        message_sender.send_text.assert_not_awaited()
