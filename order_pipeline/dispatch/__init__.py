"""
Order event dispatch: analytics and push fan-out.
"""

from order_pipeline.dispatch.dispatcher import DispatchSummary, OrderEventDispatcher
from order_pipeline.dispatch.pipeline import process_transaction_changes

__all__ = [
    'DispatchSummary',
    'OrderEventDispatcher',
    'process_transaction_changes'
]
