"""
Order lifecycle event pipeline.

Turns polled point-of-sale transaction changes into order lifecycle events
and fans them out to customer notifications and revenue analytics.
"""

__version__ = "1.0.0"
