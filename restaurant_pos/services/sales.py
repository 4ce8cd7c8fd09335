"""
Sales Aggregator

One record per restaurant per business day holding the cumulative revenue
and the number of closed tables. Updated only when a table closes.
"""

import logging
from datetime import datetime
from typing import Optional

from restaurant_pos import keys
from restaurant_pos.core.config import Settings, get_settings
from restaurant_pos.models import SalesRecord
from restaurant_pos.store.base import BaseKeyValueStore

logger = logging.getLogger(__name__)


class SalesAggregator:
    """Daily revenue totals."""

    def __init__(self, store: BaseKeyValueStore, settings: Optional[Settings] = None):
        self._store = store
        self._settings = settings or get_settings()

    def today(self) -> str:
        """Current business day as YYYY-MM-DD."""
        return datetime.now(self._settings.tzinfo).date().isoformat()

    async def record_sale(self, restaurant_id: str, day: str, amount: float) -> SalesRecord:
        """
        Additive upsert of one closed table into the day's record.

        The caller must hold the restaurant writer lock.
        """
        key = keys.sales_key(restaurant_id, day)
        data = await self._store.get(key)

        record = (
            SalesRecord.model_validate(data)
            if data is not None
            else SalesRecord(restaurant_id=restaurant_id, date=day, total=0, count=0)
        )
        record.total += amount
        record.count += 1
        await self._store.set(key, record.to_store())

        logger.info(
            f"Sale recorded for {restaurant_id} on {day}: "
            f"{amount:.2f} (day total {record.total:.2f}, {record.count} tables)"
        )
        return record

    async def list_sales(self, restaurant_id: str) -> list[SalesRecord]:
        """Every recorded day, newest first."""
        records = await self._store.get_by_prefix(keys.scan_prefix(keys.SALES, restaurant_id))
        sales = [SalesRecord.model_validate(record) for record in records]
        return sorted(sales, key=lambda record: record.date, reverse=True)
