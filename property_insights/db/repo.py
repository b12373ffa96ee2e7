"""Domain queries over a read-only ``DataStore``."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from ..config import TableNames
from ..errors import StoreQueryFailed
from ..utils.logging import get_logger
from .store import DataStore, Filter

LOGGER = get_logger("db.repo")

PROPERTY_ID_COL = "property_id"
SUBMARKET_COL = "submarket"
YEAR_BUILT_COL = "year_built"
METRIC_NAME_COL = "property_name"
METRIC_SUBMARKET_COL = "submarket"
TREND_DATE_COL = "date"


class Repo:
    def __init__(self, store: DataStore, tables: Optional[TableNames] = None) -> None:
        self.store = store
        self.tables = tables or TableNames()

    @property
    def mode(self) -> str:
        return self.store.mode

    async def _select(self, table: str, filters: Sequence[Filter] = (), limit: Optional[int] = None) -> List[Dict]:
        try:
            rows = await self.store.select(table, filters, limit)
        except Exception as exc:
            raise StoreQueryFailed(table, exc) from exc
        LOGGER.debug("select table=%s filters=%d rows=%d", table, len(filters), len(rows))
        return rows

    # ------------------------------------------------------------------
    # Properties
    async def list_properties(self, submarket: Optional[str] = None, limit: int = 200) -> List[Dict]:
        filters = [Filter(SUBMARKET_COL, "eq", submarket)] if submarket else []
        return await self._select(self.tables.properties, filters, limit)

    async def get_property(self, property_id: str) -> Optional[Dict]:
        rows = await self._select(self.tables.properties, [Filter(PROPERTY_ID_COL, "eq", property_id)], 1)
        return rows[0] if rows else None

    async def properties_in_submarket(self, submarket: str, exclude_id: Optional[str], limit: int) -> List[Dict]:
        filters = [Filter(SUBMARKET_COL, "eq", submarket)]
        if exclude_id is not None:
            filters.append(Filter(PROPERTY_ID_COL, "neq", exclude_id))
        return await self._select(self.tables.properties, filters, limit)

    async def properties_built_between(
        self, low: int, high: int, exclude_id: Optional[str], limit: int
    ) -> List[Dict]:
        filters = [Filter(YEAR_BUILT_COL, "gte", low), Filter(YEAR_BUILT_COL, "lte", high)]
        if exclude_id is not None:
            filters.append(Filter(PROPERTY_ID_COL, "neq", exclude_id))
        return await self._select(self.tables.properties, filters, limit)

    # ------------------------------------------------------------------
    # Per-year metric tables
    async def _property_row(self, table: str, property_name: str) -> Optional[Dict]:
        rows = await self._select(table, [Filter(METRIC_NAME_COL, "eq", property_name)], 1)
        return rows[0] if rows else None

    async def rent_row(self, property_name: str) -> Optional[Dict]:
        return await self._property_row(self.tables.rent, property_name)

    async def grade_row(self, property_name: str) -> Optional[Dict]:
        return await self._property_row(self.tables.grade, property_name)

    async def price_position_row(self, property_name: str) -> Optional[Dict]:
        return await self._property_row(self.tables.price_position, property_name)

    async def _submarket_rows(self, table: str, submarket: str, limit: int) -> List[Dict]:
        return await self._select(table, [Filter(METRIC_SUBMARKET_COL, "eq", submarket)], limit)

    async def submarket_rent_rows(self, submarket: str, limit: int) -> List[Dict]:
        return await self._submarket_rows(self.tables.rent, submarket, limit)

    async def submarket_grade_rows(self, submarket: str, limit: int) -> List[Dict]:
        return await self._submarket_rows(self.tables.grade, submarket, limit)

    async def submarket_price_position_rows(self, submarket: str, limit: int) -> List[Dict]:
        return await self._submarket_rows(self.tables.price_position, submarket, limit)

    async def rent_trend_rows(self, submarket: str, limit: int) -> List[Dict]:
        rows = await self._submarket_rows(self.tables.rent_trend, submarket, 10_000)
        rows = sorted(rows, key=lambda row: str(row.get(TREND_DATE_COL) or ""))
        return rows[-limit:] if limit else rows


__all__ = ["Repo"]
