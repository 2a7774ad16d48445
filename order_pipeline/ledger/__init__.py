"""
Read-only database collaborators: order ledger and push token store.
"""

from .schema import metadata, transactions, push_tokens
from .order_ledger import OrderLedger, SqlOrderLedger
from .push_tokens import PushTokenStore, SqlPushTokenStore

__all__ = [
    'metadata',
    'transactions',
    'push_tokens',
    'OrderLedger',
    'SqlOrderLedger',
    'PushTokenStore',
    'SqlPushTokenStore'
]
