"""
Order event derivation from POS transaction snapshots.

The poller compares two consecutive snapshots of a transaction and hands us
the difference. Polls are interval-sampled, so a single change can straddle
several real transitions; the rules below recover the ones worth surfacing
without ever synthesizing stages that were skipped between polls.
"""

import logging
from typing import List, Optional, Iterable, Tuple
from datetime import datetime

from order_pipeline.models.order_models import (
    DECLINED_STATUS, EventType, ProcessingStatus, TransactionAction,
    TransactionChange, OrderEvent, parse_poster_date
)


logger = logging.getLogger(__name__)


# Ordered fulfillment stages. Rank is the status code itself.
STAGE_PROGRESSION: Tuple[Tuple[int, EventType], ...] = (
    (ProcessingStatus.CREATED, EventType.CREATED),
    (ProcessingStatus.ACCEPTED, EventType.ACCEPTED),
    (ProcessingStatus.READY, EventType.READY),
    (ProcessingStatus.DELIVERED, EventType.DELIVERED),
    (ProcessingStatus.CLOSED, EventType.CLOSED),
)

# Stages below this are covered by the action/is_accepted signals
MIN_STAGE_FOR_EVENT = ProcessingStatus.READY


def _stage_for(processing_status: Optional[int]) -> Optional[Tuple[int, EventType]]:
    for stage in STAGE_PROGRESSION:
        if stage[0] == processing_status:
            return stage
    return None


def _order_date(change: TransactionChange) -> Optional[datetime]:
    if not change.date_start:
        return None
    try:
        return parse_poster_date(change.date_start)
    except ValueError:
        logger.debug(f"Ignoring unparseable date_start for transaction {change.transaction_id}")
        return None


def derive_order_events(change: TransactionChange) -> List[OrderEvent]:
    """
    Derive lifecycle events from a single transaction change.

    Rules are applied independently, so one change may produce several
    events (e.g. a first observation of an already accepted order yields
    both order:created and order:accepted).

    Args:
        change: Snapshot difference for one transaction

    Returns:
        Derived events, possibly empty
    """
    events: List[OrderEvent] = []
    order_date = _order_date(change)

    def emit(event_type: EventType):
        events.append(OrderEvent(
            transaction_id=change.transaction_id,
            event_type=event_type,
            customer_id=change.customer_id,
            service_mode=change.service_mode,
            income_amount=change.income_amount,
            payed_sum=change.payed_sum,
            order_date=order_date
        ))

    is_created = change.is_first_observation
    is_updated = change.action == TransactionAction.UPDATED

    # First observation; may have been declined between polls
    if is_created:
        emit(EventType.CREATED)
        if change.status == DECLINED_STATUS:
            emit(EventType.DECLINED)

    # Acceptance comes from the audit history, not processing_status
    if change.is_accepted and (is_created or not change.old_is_accepted):
        emit(EventType.ACCEPTED)

    if is_updated and change.old_status != DECLINED_STATUS and change.status == DECLINED_STATUS:
        emit(EventType.DECLINED)

    # Only the current stage fires, so 20 -> 50 gives delivered and no ready
    if (is_updated and
            change.old_processing_status is not None and
            change.processing_status != change.old_processing_status):
        stage = _stage_for(change.processing_status)
        if stage and stage[0] >= MIN_STAGE_FOR_EVENT:
            emit(stage[1])

    return events


def derive_batch(changes: Iterable[TransactionChange]) -> List[OrderEvent]:
    """
    Derive events for every change in a polling batch, preserving order.

    Args:
        changes: Transaction changes from one polling cycle

    Returns:
        Flattened list of derived events
    """
    events: List[OrderEvent] = []

    for change in changes:
        events.extend(derive_order_events(change))

    return events
