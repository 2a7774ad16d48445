"""
Order event dispatcher.

Fans a batch of order events out to the analytics sink and to customer
push notifications. Every side effect is best-effort: enrichment,
analytics and individual sends report their failures and never abort
the batch.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Dict, Iterable, Callable

from order_pipeline.analytics.models import AnalyticsRecord
from order_pipeline.analytics.posthog_sink import AnalyticsSink
from order_pipeline.config.settings import DispatchConfig
from order_pipeline.ledger.order_ledger import OrderLedger
from order_pipeline.models.order_models import EventType, OrderEvent
from order_pipeline.notifications.catalog import MessageCatalog
from order_pipeline.notifications.models import MessageText, PushMessage
from order_pipeline.notifications.ports import PushSender
from order_pipeline.utils.error_handler import ErrorSeverity, GlobalErrorHandler, get_error_handler
from order_pipeline.utils.logger import PerformanceLogger


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchSummary:
    """Outcome counts of a dispatch run."""
    analytics_count: int = 0
    notification_count: int = 0


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OrderEventDispatcher:
    """
    Dispatches derived order events to analytics and push notifications.

    A single process() call issues at most one ledger query, one analytics
    batch and one push send per qualifying event. Repeated calls with the
    same events repeat those side effects.
    """

    def __init__(
        self,
        push_sender: Optional[PushSender] = None,
        analytics_sink: Optional[AnalyticsSink] = None,
        ledger: Optional[OrderLedger] = None,
        catalog: Optional[MessageCatalog] = None,
        config: Optional[DispatchConfig] = None,
        error_handler: Optional[GlobalErrorHandler] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        """
        Initialize dispatcher.

        Args:
            push_sender: Push gateway; notifications are skipped when None
            analytics_sink: Analytics destination; emission is skipped when None
            ledger: Order ledger for lifetime order counts
            catalog: Order status notification texts
            config: Age threshold and revenue conversion settings
            error_handler: Sink for best-effort failures (global handler by default)
            clock: Returns the current aware datetime
        """
        self.push_sender = push_sender
        self.analytics_sink = analytics_sink
        self.ledger = ledger
        self.catalog = catalog or MessageCatalog()
        self.config = config or DispatchConfig()
        self._error_handler = error_handler
        self._clock = clock or _utc_now
        self.performance = PerformanceLogger(logger)

    @property
    def error_handler(self) -> GlobalErrorHandler:
        if self._error_handler is None:
            self._error_handler = get_error_handler()
        return self._error_handler

    @property
    def max_notification_age(self) -> timedelta:
        return timedelta(seconds=self.config.max_notification_age_seconds)

    async def process(
        self,
        events: Iterable[OrderEvent],
        skip_age_check: bool = False,
        skip_notifications: bool = False
    ) -> DispatchSummary:
        """
        Emit analytics and push notifications for a batch of order events.

        Args:
            events: Order events, typically from one polling cycle
            skip_age_check: Notify regardless of order age (real-time sources)
            skip_notifications: Emit analytics only

        Returns:
            DispatchSummary with records built and notification sends issued

        Raises:
            TypeError: If an element is not an OrderEvent or has a naive order_date
        """
        events = list(events)
        for event in events:
            if not isinstance(event, OrderEvent):
                raise TypeError(f"Expected OrderEvent, got {type(event).__name__}")
            if event.order_date is not None and event.order_date.tzinfo is None:
                raise TypeError(f"order_date must be timezone-aware (transaction {event.transaction_id})")

        if not events:
            return DispatchSummary()

        with self.performance.timer("dispatch_order_events", event_count=len(events)):
            order_counts = await self._load_order_counts(events)
            records = self.build_analytics_records(events, order_counts)

            tasks = []
            if records and self.analytics_sink is not None:
                tasks.append(self._emit_analytics(records))

            notification_count = 0
            if not skip_notifications and self.push_sender is not None:
                now = self._clock()
                for event in events:
                    notification = self._notification_for(event, now, skip_age_check)
                    if notification is None:
                        continue
                    tasks.append(self._send_notification(event, notification))
                    notification_count += 1

            results = await asyncio.gather(*tasks, return_exceptions=True)

        for result in results:
            if isinstance(result, Exception):
                self.error_handler.report_error(result, component="dispatcher", severity=ErrorSeverity.HIGH)

        return DispatchSummary(analytics_count=len(records), notification_count=notification_count)

    async def _load_order_counts(self, events: List[OrderEvent]) -> Dict[int, int]:
        customer_ids = sorted({
            event.customer_id for event in events
            if event.event_type == EventType.CLOSED and event.customer_id is not None
        })

        if not customer_ids or self.ledger is None:
            return {}

        try:
            return await self.ledger.count_orders_by_customer(customer_ids)
        except Exception as e:
            self.error_handler.report_error(
                e,
                component="order_ledger",
                severity=ErrorSeverity.MEDIUM,
                context={"customer_ids": customer_ids}
            )
            return {}

    def build_analytics_records(self, events: List[OrderEvent],
                                order_counts: Optional[Dict[int, int]] = None) -> List[AnalyticsRecord]:
        """Build one analytics record per event that has a customer."""
        order_counts = order_counts or {}
        records = []

        for event in events:
            if event.customer_id is None:
                continue

            properties = {
                'service_mode': event.service_mode_name,
                'transaction_id': str(event.transaction_id),
            }
            user_properties = None

            if event.event_type == EventType.CLOSED:
                if event.income_amount is not None:
                    properties['amount'] = event.income_amount // self.config.revenue_divisor
                    properties['currency'] = self.config.currency

                if event.customer_id in order_counts:
                    user_properties = {'order_count': order_counts[event.customer_id]}

            records.append(AnalyticsRecord(
                distinct_id=str(event.customer_id),
                event=event.event_type.value,
                properties=properties,
                user_properties=user_properties
            ))

        return records

    async def _emit_analytics(self, records: List[AnalyticsRecord]):
        try:
            await self.analytics_sink.track_batch(records)
        except Exception as e:
            self.error_handler.report_error(
                e,
                component="analytics",
                severity=ErrorSeverity.MEDIUM,
                context={"record_count": len(records)}
            )

    def _notification_for(self, event: OrderEvent, now: datetime,
                          skip_age_check: bool) -> Optional[MessageText]:
        if event.customer_id is None:
            return None

        if not skip_age_check and event.order_date is not None:
            if now - event.order_date > self.max_notification_age:
                logger.debug(f"Skipping stale {event.event_type.value} notification for "
                             f"transaction {event.transaction_id}")
                return None

        return self.catalog.order_status_notification(event.event_type)

    async def _send_notification(self, event: OrderEvent, notification: MessageText):
        message = PushMessage(
            title=notification.title,
            body=notification.body,
            data={'orderId': str(event.transaction_id)}
        )

        try:
            await self.push_sender.send_to_customer(event.customer_id, message)
        except Exception as e:
            self.error_handler.report_error(
                e,
                component="order_notification",
                severity=ErrorSeverity.LOW,
                context={
                    "customer_id": event.customer_id,
                    "message_type": event.event_type.value,
                    "transaction_id": event.transaction_id
                }
            )
