"""
Analytics sink backed by the PostHog batch capture API.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import List, Optional, Dict, Any, Sequence

import aiohttp

from order_pipeline.analytics.models import AnalyticsRecord


logger = logging.getLogger(__name__)


DEFAULT_POSTHOG_HOST = "https://us.i.posthog.com"


class AnalyticsError(Exception):
    """Raised when an analytics batch cannot be delivered."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AnalyticsSink(ABC):
    """Destination for batched analytics records."""

    @abstractmethod
    async def track_batch(self, records: Sequence[AnalyticsRecord]) -> None:
        """Deliver all records in one request. Raises on failure."""


class PostHogAnalyticsSink(AnalyticsSink):
    """
    PostHog sink posting to the /batch/ endpoint.

    User properties are applied through the ``$set`` event property, so a
    record updates the person profile in the same request as the capture.
    """

    def __init__(self, api_key: str, host: str = DEFAULT_POSTHOG_HOST, timeout: float = 10.0):
        """
        Initialize PostHog sink.

        Args:
            api_key: PostHog project API key
            host: PostHog host or reverse proxy URL
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise ValueError("PostHog API key is required")

        self.api_key = api_key
        self.batch_url = f"{host.rstrip('/')}/batch/"
        self.timeout = aiohttp.ClientTimeout(total=timeout)

        self._session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _ensure_session(self):
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                headers={'Content-Type': 'application/json'}
            )

    async def close(self):
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def track_batch(self, records: Sequence[AnalyticsRecord]) -> None:
        if not records:
            return

        await self._ensure_session()

        body = {
            'api_key': self.api_key,
            'batch': [self._to_capture(record) for record in records],
        }

        try:
            async with self._session.post(self.batch_url, json=body) as response:
                if response.status != 200:
                    text = await response.text()
                    raise AnalyticsError(f"PostHog batch rejected: HTTP {response.status} {text}",
                                         status_code=response.status)
        except aiohttp.ClientError as e:
            raise AnalyticsError(f"PostHog transport error: {e}")

        logger.debug(f"Sent {len(records)} analytics events to PostHog")

    @staticmethod
    def _to_capture(record: AnalyticsRecord) -> Dict[str, Any]:
        properties = dict(record.properties)
        if record.user_properties:
            properties['$set'] = dict(record.user_properties)

        return {
            'event': record.event,
            'distinct_id': record.distinct_id,
            'properties': properties,
            'timestamp': datetime.now(timezone.utc).isoformat(),
        }
