"""
Analytics emission for order lifecycle events.
"""

from order_pipeline.analytics.models import AnalyticsRecord
from order_pipeline.analytics.posthog_sink import (
    AnalyticsSink, PostHogAnalyticsSink, AnalyticsError, DEFAULT_POSTHOG_HOST
)

__all__ = [
    'AnalyticsRecord',
    'AnalyticsSink',
    'PostHogAnalyticsSink',
    'AnalyticsError',
    'DEFAULT_POSTHOG_HOST'
]
