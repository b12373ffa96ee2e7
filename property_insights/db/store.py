"""Read-only table access for Supabase or local CSV backends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from ..config import StoreSettings
from ..utils.io import load_csv, table_path
from ..utils.logging import get_logger
from .supabase_client import create_supabase_client

LOGGER = get_logger("db.store")

FILTER_OPS = ("eq", "neq", "gte", "lte")


@dataclass(frozen=True)
class Filter:
    column: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in FILTER_OPS:
            raise ValueError(f"Unsupported filter operator: {self.op}")


class DataStore:
    """Minimal query surface: equality and range filters plus a row limit."""

    mode = "abstract"

    async def select(self, table: str, filters: Sequence[Filter] = (), limit: Optional[int] = None) -> List[Dict]:
        raise NotImplementedError


class SupabaseStore(DataStore):
    mode = "supabase"

    def __init__(self, client) -> None:
        self._client = client

    async def select(self, table: str, filters: Sequence[Filter] = (), limit: Optional[int] = None) -> List[Dict]:
        query = self._client.table(table).select("*")
        for item in filters:
            query = getattr(query, item.op)(item.column, item.value)
        if limit is not None:
            query = query.limit(limit)
        response = await query.execute()
        return list(response.data or [])


class CSVStore(DataStore):
    """pandas-backed store: one CSV per table, or DataFrames handed in directly."""

    mode = "csv"

    def __init__(self, data_dir: Optional[str] = None, frames: Optional[Mapping[str, pd.DataFrame]] = None) -> None:
        self.data_dir = data_dir or "."
        self._frames: Dict[str, pd.DataFrame] = dict(frames or {})

    def _frame(self, table: str) -> pd.DataFrame:
        if table not in self._frames:
            self._frames[table] = load_csv(table_path(self.data_dir, table))
        return self._frames[table]

    async def select(self, table: str, filters: Sequence[Filter] = (), limit: Optional[int] = None) -> List[Dict]:
        df = self._frame(table)
        for item in filters:
            if item.column not in df.columns:
                raise KeyError(f"column '{item.column}' not found in table '{table}'")
            df = df[self._mask(df[item.column], item)]
        if limit is not None:
            df = df.head(limit)
        df = df.astype(object).where(pd.notnull(df), None)
        return df.to_dict("records")

    @staticmethod
    def _mask(column: pd.Series, item: Filter) -> pd.Series:
        if item.op in ("eq", "neq"):
            key = str(item.value).strip().lower()
            matches = column.astype(str).str.strip().str.lower() == key
            return matches if item.op == "eq" else ~matches
        numeric = pd.to_numeric(column, errors="coerce")
        if item.op == "gte":
            return numeric >= float(item.value)
        return numeric <= float(item.value)


async def create_store(settings: StoreSettings) -> DataStore:
    """Build the configured store, falling back to CSV when Supabase is unusable."""

    if settings.mode == "supabase":
        try:
            client = await create_supabase_client(settings)
        except Exception as exc:
            LOGGER.warning("Failed to initialise Supabase client (%s); falling back to CSV", exc)
            client = None
        if client is not None:
            LOGGER.info("Store running in Supabase mode")
            return SupabaseStore(client)
    LOGGER.info("Store running in CSV mode data_dir=%s", settings.data_dir)
    return CSVStore(settings.data_dir)


__all__ = ["Filter", "DataStore", "SupabaseStore", "CSVStore", "create_store"]
