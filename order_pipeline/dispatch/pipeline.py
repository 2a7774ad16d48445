"""
Bridge from polled transaction changes to dispatched order events.
"""

import logging
from typing import Iterable

from order_pipeline.dispatch.dispatcher import DispatchSummary, OrderEventDispatcher
from order_pipeline.events.deriver import derive_batch
from order_pipeline.models.order_models import TransactionChange


logger = logging.getLogger(__name__)


async def process_transaction_changes(
    changes: Iterable[TransactionChange],
    dispatcher: OrderEventDispatcher,
    skip_age_check: bool = False,
    skip_notifications: bool = False
) -> DispatchSummary:
    """
    Derive events for a polling batch and dispatch them in one call.

    Args:
        changes: Transaction changes observed in one polling cycle
        dispatcher: Dispatcher receiving the derived events
        skip_age_check: Notify regardless of order age
        skip_notifications: Emit analytics only

    Returns:
        DispatchSummary from the dispatcher
    """
    events = derive_batch(changes)

    if not events:
        return DispatchSummary()

    summary = await dispatcher.process(
        events,
        skip_age_check=skip_age_check,
        skip_notifications=skip_notifications
    )

    event_types = ", ".join(event.event_type.value for event in events)
    logger.info(
        f"{len(events)} events ({event_types}) -> "
        f"{summary.analytics_count} analytics, {summary.notification_count} notifications"
    )

    return summary
