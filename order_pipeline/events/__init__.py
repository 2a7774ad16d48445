"""
Lifecycle event derivation.
"""

from .deriver import (
    STAGE_PROGRESSION,
    MIN_STAGE_FOR_EVENT,
    derive_order_events,
    derive_batch
)

__all__ = [
    'STAGE_PROGRESSION',
    'MIN_STAGE_FOR_EVENT',
    'derive_order_events',
    'derive_batch'
]
