"""
Data models for the order event pipeline.
"""

from .order_models import (
    DECLINED_STATUS,
    EventType,
    TransactionAction,
    ProcessingStatus,
    ServiceMode,
    TransactionChange,
    OrderEvent,
    parse_poster_date
)

__all__ = [
    'DECLINED_STATUS',
    'EventType',
    'TransactionAction',
    'ProcessingStatus',
    'ServiceMode',
    'TransactionChange',
    'OrderEvent',
    'parse_poster_date'
]
