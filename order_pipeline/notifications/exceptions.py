"""
Custom exceptions for the notification system.
"""


class NotificationError(Exception):
    """Base exception for notification system errors."""
    pass


class ConfigurationError(NotificationError):
    """Raised when a channel is missing credentials or settings."""
    pass


class ChannelError(NotificationError):
    """Base exception for channel-specific errors."""

    def __init__(self, message: str, channel: str):
        super().__init__(message)
        self.channel = channel


class PushError(ChannelError):
    """Exception for push gateway errors."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message, "push")
        self.status_code = status_code


class MessagingError(ChannelError):
    """Exception for SMS/WhatsApp gateway errors."""

    def __init__(self, message: str, channel: str = "sms", error_code: int = None):
        super().__init__(message, channel)
        self.error_code = error_code


class InvalidRecipientError(NotificationError):
    """Raised when recipient information is invalid."""

    def __init__(self, message: str, recipient: str):
        super().__init__(message)
        self.recipient = recipient
