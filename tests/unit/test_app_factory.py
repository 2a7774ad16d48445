"""
Unit tests for the application container.
"""

import pytest
from unittest.mock import patch

from order_pipeline.analytics.posthog_sink import PostHogAnalyticsSink
from order_pipeline.app_factory import ApplicationContainer, create_app
from order_pipeline.config.settings import (
    AnalyticsConfig, CircuitBreakerConfig, LedgerConfig, Settings, TwilioConfig
)
from order_pipeline.ledger.order_ledger import SqlOrderLedger
from order_pipeline.notifications.models import MessageChannel
from order_pipeline.notifications.push_sender import ExpoPushSender
from order_pipeline.notifications.twilio_sender import TwilioMessageSender


@pytest.fixture
def bare_settings():
    with patch.dict('os.environ', {}, clear=True):
        return Settings(environment="testing")


class TestApplicationContainer:
    """Test component wiring."""

    def test_unconfigured_collaborators_are_none(self, bare_settings):
        with patch.dict('os.environ', {}, clear=True):
            container = create_app(bare_settings)

            assert container.ledger is None
            assert container.push_sender is None
            assert container.message_sender is None
            assert container.analytics_sink is None

            dispatcher = container.dispatcher
            assert dispatcher.push_sender is None
            assert dispatcher.config is bare_settings.dispatch

    def test_configured_collaborators(self, tmp_path):
        with patch.dict('os.environ', {}, clear=True):
            settings = Settings(
                environment="testing",
                ledger=LedgerConfig(url=f"sqlite:///{tmp_path / 'orders.db'}"),
                analytics=AnalyticsConfig(api_key="phc_test"),
                twilio=TwilioConfig(
                    account_sid="AC123",
                    auth_token="secret",
                    messaging_service_sid="MG123",
                    whatsapp_templates={"order:ready": {"es": "HX_ready"}}
                )
            )

            with patch('order_pipeline.notifications.twilio_sender.Client'):
                container = ApplicationContainer(settings)

                assert isinstance(container.ledger, SqlOrderLedger)
                assert isinstance(container.push_sender, ExpoPushSender)
                assert isinstance(container.analytics_sink, PostHogAnalyticsSink)
                assert isinstance(container.message_sender, TwilioMessageSender)

                sender = container.fallback_sender
                assert sender.message_sender is container.message_sender
                assert sender.catalog.whatsapp_template("order:ready", "es") == "HX_ready"
                assert set(sender.circuit_breakers) == set(MessageChannel)

    def test_circuit_breakers_can_be_disabled(self):
        with patch.dict('os.environ', {}, clear=True):
            settings = Settings(environment="testing", circuit_breaker=CircuitBreakerConfig(enabled=False))

            assert ApplicationContainer(settings).fallback_sender.circuit_breakers == {}

    def test_component_status(self, bare_settings):
        with patch.dict('os.environ', {}, clear=True):
            status = ApplicationContainer(bare_settings).get_component_status()

        assert status['environment'] == "testing"
        assert status['components'] == {
            'ledger': False,
            'push_sender': False,
            'message_sender': False,
            'analytics_sink': False,
        }
        assert status['circuit_breakers']['sms']['state'] == "closed"

    @pytest.mark.asyncio
    async def test_close_disposes_engine(self, tmp_path):
        with patch.dict('os.environ', {}, clear=True):
            settings = Settings(
                environment="testing",
                ledger=LedgerConfig(url=f"sqlite:///{tmp_path / 'orders.db'}")
            )
        container = ApplicationContainer(settings)
        assert container.engine is not None

        await container.close()

        assert container._engine is None
