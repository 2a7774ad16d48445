"""
Read-only access to registered push tokens.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import List

from sqlalchemy import Engine, select

from order_pipeline.ledger.schema import push_tokens


class PushTokenStore(ABC):
    """Registered device tokens per customer. Registration is owned elsewhere."""

    @abstractmethod
    async def get_tokens(self, customer_id: int) -> List[str]:
        """Get every token registered for a customer."""
        ...


class SqlPushTokenStore(PushTokenStore):
    """Token store backed by the push_tokens table."""

    def __init__(self, engine: Engine):
        self._engine = engine

    async def get_tokens(self, customer_id: int) -> List[str]:
        return await asyncio.to_thread(self._fetch, customer_id)

    def _fetch(self, customer_id: int) -> List[str]:
        query = select(push_tokens.c.token).where(push_tokens.c.client_id == customer_id)

        with self._engine.connect() as conn:
            return [row.token for row in conn.execute(query)]
