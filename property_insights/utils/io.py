"""IO helpers for loading CSV tables into pandas DataFrames."""

from __future__ import annotations

import os
from functools import lru_cache

import pandas as pd

from .logging import get_logger

LOGGER = get_logger("utils.io")


@lru_cache(maxsize=16)
def load_csv(path: str) -> pd.DataFrame:
    """Load a CSV file, raising ``FileNotFoundError`` when it does not exist."""

    if not os.path.exists(path):
        raise FileNotFoundError(f"CSV not found: {path}")
    LOGGER.debug("loading_csv path=%s", path)
    return pd.read_csv(path)


def table_path(data_dir: str, table: str) -> str:
    name = table if table.endswith(".csv") else f"{table}.csv"
    return name if os.path.isabs(name) else os.path.join(data_dir, name)


__all__ = ["load_csv", "table_path"]
