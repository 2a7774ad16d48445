"""
Notification system for the order event pipeline.

Provides the message catalog, channel adapters (Expo push, Twilio SMS and
WhatsApp) and the channel fallback sender that tries channels in order and
stops at the first successful delivery.
"""

from order_pipeline.notifications.models import (
    MessageChannel, MessageText, SendResult, PushMessage, PushResult, MessagePayload
)
from order_pipeline.notifications.catalog import (
    MessageCatalog, DEFAULT_MESSAGES, DEFAULT_ORDER_STATUS_MESSAGES,
    DEFAULT_WHATSAPP_TEMPLATES, OTP_VERIFICATION
)
from order_pipeline.notifications.ports import PushSender, MessageSender
from order_pipeline.notifications.push_sender import ExpoPushSender, is_expo_push_token
from order_pipeline.notifications.twilio_sender import TwilioMessageSender
from order_pipeline.notifications.fallback_sender import ChannelFallbackSender
from order_pipeline.notifications.circuit_breaker import CircuitBreaker, CircuitState, CircuitOpenError
from order_pipeline.notifications.exceptions import (
    NotificationError, ConfigurationError, ChannelError, PushError,
    MessagingError, InvalidRecipientError
)

__all__ = [
    'MessageChannel',
    'MessageText',
    'SendResult',
    'PushMessage',
    'PushResult',
    'MessagePayload',
    'MessageCatalog',
    'DEFAULT_MESSAGES',
    'DEFAULT_ORDER_STATUS_MESSAGES',
    'DEFAULT_WHATSAPP_TEMPLATES',
    'OTP_VERIFICATION',
    'PushSender',
    'MessageSender',
    'ExpoPushSender',
    'is_expo_push_token',
    'TwilioMessageSender',
    'ChannelFallbackSender',
    'CircuitBreaker',
    'CircuitState',
    'CircuitOpenError',
    'NotificationError',
    'ConfigurationError',
    'ChannelError',
    'PushError',
    'MessagingError',
    'InvalidRecipientError'
]
