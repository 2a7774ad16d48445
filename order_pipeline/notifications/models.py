"""
Data models for the notification system.
"""

import re
from enum import Enum
from typing import Optional, Dict, Any, Mapping
from dataclasses import dataclass, field

from order_pipeline.notifications.exceptions import InvalidRecipientError


_E164_PATTERN = re.compile(r'^\+[1-9]\d{7,14}$')

# Twilio-style placeholders, e.g. {{1}} or {{code}}
_PLACEHOLDER_PATTERN = re.compile(r'\{\{(\w+)\}\}')


def normalize_phone_number(phone: Optional[str]) -> str:
    """
    Normalize a phone number to E.164.

    Args:
        phone: Phone number, optionally with spaces, dashes or a whatsapp: prefix

    Returns:
        E.164 number such as +521234567890

    Raises:
        InvalidRecipientError: If the number cannot be normalized
    """
    clean_number = re.sub(r'[^\d+]', '', (phone or '').replace('whatsapp:', ''))

    if not _E164_PATTERN.match(clean_number):
        raise InvalidRecipientError(f"Invalid phone number: {phone!r}", recipient=phone)

    return clean_number


class MessageChannel(str, Enum):
    """Supported notification channels."""
    PUSH = "push"
    SMS = "sms"
    WHATSAPP = "whatsapp"


@dataclass(frozen=True)
class MessageText:
    """Localized title and body for a message type."""
    title: str
    body: str

    def render(self, variables: Optional[Mapping[str, str]] = None) -> str:
        """
        Fill {{name}} placeholders in the body.

        Raises:
            KeyError: If a placeholder has no value
        """
        values = variables or {}
        return _PLACEHOLDER_PATTERN.sub(lambda match: str(values[match.group(1)]), self.body)


@dataclass
class SendResult:
    """Outcome of one channel attempt."""
    channel: MessageChannel
    success: bool
    error: Optional[str] = None
    message_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {'channel': self.channel.value, 'success': self.success}
        if self.error:
            result['error'] = self.error
        if self.message_id:
            result['message_id'] = self.message_id
        return result


@dataclass
class PushMessage:
    """Push notification content."""
    title: str
    body: str
    data: Optional[Dict[str, Any]] = None


@dataclass
class PushResult:
    """Per-customer push delivery counts."""
    sent: int = 0
    failed: int = 0

    @property
    def is_success(self) -> bool:
        """At least one device accepted the notification."""
        return self.sent > 0


@dataclass
class MessagePayload:
    """Request to deliver a catalog message through the fallback sender."""
    message_type: str
    customer_id: Optional[int] = None
    phone: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    variables: Dict[str, str] = field(default_factory=dict)
    language: Optional[str] = None

    def __post_init__(self):
        if not self.message_type:
            raise ValueError("Message type is required")
