"""
Read-only access to the relational order ledger.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List

from sqlalchemy import Engine, func, select

from order_pipeline.ledger.schema import transactions


logger = logging.getLogger(__name__)


class OrderLedger(ABC):
    """Source of lifetime order counts per customer."""

    @abstractmethod
    async def count_orders_by_customer(self, customer_ids: Iterable[int]) -> Dict[int, int]:
        """
        Count all recorded transactions for each customer.

        Customers without any row are absent from the result.
        """
        ...


class SqlOrderLedger(OrderLedger):
    """
    Order ledger backed by the transactions table.

    Issues a single grouped query per call; the blocking engine call runs
    in a worker thread.
    """

    def __init__(self, engine: Engine):
        self._engine = engine

    async def count_orders_by_customer(self, customer_ids: Iterable[int]) -> Dict[int, int]:
        ids = sorted(set(customer_ids))
        if not ids:
            return {}

        return await asyncio.to_thread(self._count, ids)

    def _count(self, customer_ids: List[int]) -> Dict[int, int]:
        query = (
            select(transactions.c.customer_id, func.count().label("order_count"))
            .where(transactions.c.customer_id.in_(customer_ids))
            .group_by(transactions.c.customer_id)
        )

        with self._engine.connect() as conn:
            rows = conn.execute(query).all()

        counts = {row.customer_id: row.order_count or 0 for row in rows}
        logger.debug(f"Order counts fetched for {len(counts)}/{len(customer_ids)} customers")
        return counts
