"""
Application factory for the order event pipeline.

Builds the dispatcher and fallback sender from settings, wiring concrete
adapters only where their credentials are configured.
"""

import logging
from typing import Optional, Dict, Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from order_pipeline.config import Settings, get_settings
from order_pipeline.utils.logger import setup_logging, configure_third_party_loggers
from order_pipeline.utils.error_handler import initialize_error_handler, GlobalErrorHandler

from order_pipeline.analytics.posthog_sink import AnalyticsSink, PostHogAnalyticsSink
from order_pipeline.dispatch.dispatcher import OrderEventDispatcher
from order_pipeline.ledger.order_ledger import OrderLedger, SqlOrderLedger
from order_pipeline.ledger.push_tokens import PushTokenStore, SqlPushTokenStore
from order_pipeline.notifications.catalog import MessageCatalog
from order_pipeline.notifications.circuit_breaker import CircuitBreaker
from order_pipeline.notifications.exceptions import ConfigurationError
from order_pipeline.notifications.fallback_sender import ChannelFallbackSender
from order_pipeline.notifications.models import MessageChannel
from order_pipeline.notifications.ports import PushSender, MessageSender
from order_pipeline.notifications.push_sender import ExpoPushSender
from order_pipeline.notifications.twilio_sender import TwilioMessageSender


class ApplicationContainer:
    """
    Dependency injection container for pipeline components.

    Components are created lazily on first access. Optional collaborators
    resolve to None when not configured, and the components that use them
    degrade accordingly.
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize application container.

        Args:
            settings: Application settings (uses default if None)
        """
        self.settings = settings or get_settings()

        self._logger: Optional[logging.Logger] = None
        self._error_handler: Optional[GlobalErrorHandler] = None
        self._engine: Optional[Engine] = None
        self._ledger: Optional[OrderLedger] = None
        self._token_store: Optional[PushTokenStore] = None
        self._push_sender: Optional[PushSender] = None
        self._message_sender: Optional[MessageSender] = None
        self._message_sender_resolved = False
        self._analytics_sink: Optional[AnalyticsSink] = None
        self._catalog: Optional[MessageCatalog] = None
        self._circuit_breakers: Optional[Dict[MessageChannel, CircuitBreaker]] = None
        self._fallback_sender: Optional[ChannelFallbackSender] = None
        self._dispatcher: Optional[OrderEventDispatcher] = None

    @property
    def logger(self) -> logging.Logger:
        """Get or create logger."""
        if self._logger is None:
            self._logger = setup_logging(self.settings.logging.to_logger_config())
            configure_third_party_loggers()
        return self._logger

    @property
    def error_handler(self) -> GlobalErrorHandler:
        """Get or create error handler."""
        if self._error_handler is None:
            self._error_handler = initialize_error_handler(self.logger)
        return self._error_handler

    @property
    def engine(self) -> Optional[Engine]:
        """Get or create the ledger database engine."""
        if self._engine is None and self.settings.ledger.url:
            self._engine = self._create_engine()
        return self._engine

    @property
    def ledger(self) -> Optional[OrderLedger]:
        if self._ledger is None and self.engine is not None:
            self._ledger = SqlOrderLedger(self.engine)
        return self._ledger

    @property
    def token_store(self) -> Optional[PushTokenStore]:
        if self._token_store is None and self.engine is not None:
            self._token_store = SqlPushTokenStore(self.engine)
        return self._token_store

    @property
    def push_sender(self) -> Optional[PushSender]:
        """Get or create the Expo push sender."""
        if self._push_sender is None and self.settings.push.enabled and self.token_store is not None:
            self._push_sender = ExpoPushSender(
                token_store=self.token_store,
                push_url=self.settings.push.url,
                access_token=self.settings.push.access_token,
                timeout=self.settings.push.timeout_seconds
            )
        return self._push_sender

    @property
    def message_sender(self) -> Optional[MessageSender]:
        """Get or create the Twilio sender (None when credentials are missing)."""
        if not self._message_sender_resolved:
            self._message_sender = self._create_message_sender()
            self._message_sender_resolved = True
        return self._message_sender

    @property
    def analytics_sink(self) -> Optional[AnalyticsSink]:
        if self._analytics_sink is None and self.settings.analytics.is_configured:
            self._analytics_sink = PostHogAnalyticsSink(
                api_key=self.settings.analytics.api_key,
                host=self.settings.analytics.host,
                timeout=self.settings.analytics.timeout_seconds
            )
        return self._analytics_sink

    @property
    def catalog(self) -> MessageCatalog:
        """Get message catalog with configured WhatsApp template ids."""
        if self._catalog is None:
            catalog = MessageCatalog(default_language=self.settings.dispatch.default_language)
            if self.settings.twilio.whatsapp_templates:
                catalog = catalog.with_whatsapp_templates(self.settings.twilio.whatsapp_templates)
            self._catalog = catalog
        return self._catalog

    @property
    def circuit_breakers(self) -> Dict[MessageChannel, CircuitBreaker]:
        if self._circuit_breakers is None:
            config = self.settings.circuit_breaker
            if config.enabled:
                self._circuit_breakers = {
                    channel: CircuitBreaker(
                        name=channel.value,
                        failure_threshold=config.failure_threshold,
                        timeout_seconds=config.timeout_seconds
                    )
                    for channel in MessageChannel
                }
            else:
                self._circuit_breakers = {}
        return self._circuit_breakers

    @property
    def fallback_sender(self) -> ChannelFallbackSender:
        """Get or create the channel fallback sender."""
        if self._fallback_sender is None:
            self._fallback_sender = ChannelFallbackSender(
                push_sender=self.push_sender,
                message_sender=self.message_sender,
                catalog=self.catalog,
                circuit_breakers=self.circuit_breakers
            )
        return self._fallback_sender

    @property
    def dispatcher(self) -> OrderEventDispatcher:
        """Get or create the order event dispatcher."""
        if self._dispatcher is None:
            self._dispatcher = OrderEventDispatcher(
                push_sender=self.push_sender,
                analytics_sink=self.analytics_sink,
                ledger=self.ledger,
                catalog=self.catalog,
                config=self.settings.dispatch,
                error_handler=self.error_handler
            )
            self.logger.info(
                "Order event dispatcher created",
                extra={
                    "push": self.push_sender is not None,
                    "analytics": self.analytics_sink is not None,
                    "ledger": self.ledger is not None
                }
            )
        return self._dispatcher

    def get_component_status(self) -> Dict[str, Any]:
        """
        Get configuration status of all components.

        Returns:
            Component status dictionary
        """
        return {
            'environment': self.settings.environment.value,
            'components': {
                'ledger': self.ledger is not None,
                'push_sender': self.push_sender is not None,
                'message_sender': self.message_sender is not None,
                'analytics_sink': self.analytics_sink is not None,
            },
            'circuit_breakers': {
                channel.value: breaker.get_status()
                for channel, breaker in self.circuit_breakers.items()
            }
        }

    async def close(self):
        """Release HTTP sessions and database connections."""
        if isinstance(self._push_sender, ExpoPushSender):
            await self._push_sender.close()

        if isinstance(self._analytics_sink, PostHogAnalyticsSink):
            await self._analytics_sink.close()

        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

    def _create_engine(self) -> Engine:
        """Create the SQLAlchemy engine for the ledger."""
        url = self.settings.ledger.url
        kwargs: Dict[str, Any] = {'echo': self.settings.ledger.echo}
        if not url.startswith('sqlite'):
            kwargs['pool_size'] = self.settings.ledger.pool_size
            kwargs['pool_pre_ping'] = True
        return create_engine(url, **kwargs)

    def _create_message_sender(self) -> Optional[MessageSender]:
        """Create the Twilio sender if credentials are configured."""
        twilio = self.settings.twilio
        try:
            return TwilioMessageSender(
                account_sid=twilio.account_sid,
                auth_token=twilio.auth_token,
                messaging_service_sid=twilio.messaging_service_sid
            )
        except ConfigurationError as e:
            self.logger.info(f"SMS/WhatsApp disabled: {e}")
            return None


def create_app(settings: Optional[Settings] = None) -> ApplicationContainer:
    """
    Convenience function to create application.

    Args:
        settings: Application settings (loaded from the environment if None)

    Returns:
        Configured ApplicationContainer
    """
    return ApplicationContainer(settings)
