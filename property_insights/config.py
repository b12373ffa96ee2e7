"""
Configuration management for the property insights service.

Settings are read from environment variables (optionally seeded from a
``.env`` file at the repository root) into frozen dataclasses. Nothing here
holds live clients; those are built from the settings by the factories in
``db.store`` and ``services.completion``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

try:
    from dotenv import load_dotenv
except ImportError:  # pragma: no cover - optional dependency
    load_dotenv = None

from .models.insights import QuestionCategory
from .utils.logging import get_logger

LOGGER = get_logger("config")

ROOT_DIR = Path(__file__).resolve().parents[1]

if load_dotenv is not None:
    load_dotenv(dotenv_path=ROOT_DIR / ".env", override=False)

ALL_CATEGORIES: Tuple[QuestionCategory, ...] = tuple(QuestionCategory)
DEFAULT_AUGMENTED: Tuple[QuestionCategory, ...] = (
    QuestionCategory.COMPLEX_FACT,
    QuestionCategory.INVESTMENT,
    QuestionCategory.MARKET,
)


@dataclass(frozen=True)
class TableNames:
    """Names of the read-only tables consumed by the insights pipeline."""
    properties: str = "properties"
    rent: str = "rent_history"
    grade: str = "grade_history"
    price_position: str = "price_position_history"
    rent_trend: str = "rent_time_series"


@dataclass(frozen=True)
class StoreSettings:
    mode: str = "csv"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    data_dir: str = str(ROOT_DIR / "data")
    tables: TableNames = field(default_factory=TableNames)


@dataclass(frozen=True)
class LLMSettings:
    api_key: Optional[str] = None
    model_name: str = "gemini-2.5-flash"
    temperature: float = 0.2
    warmup_timeout_s: float = 8.0


@dataclass(frozen=True)
class InsightsSettings:
    first_year: int = 2008
    last_year: int = 2020
    comparable_limit: int = 5
    year_built_window: int = 5
    market_record_limit: int = 20
    peer_record_limit: int = 20
    rent_trend_limit: int = 36
    short_term_points: int = 3
    categories: Tuple[QuestionCategory, ...] = ALL_CATEGORIES
    augmented_categories: Tuple[QuestionCategory, ...] = DEFAULT_AUGMENTED
    default_category: QuestionCategory = QuestionCategory.COMPARISON

    @property
    def years(self) -> Tuple[int, ...]:
        if self.last_year < self.first_year:
            return ()
        return tuple(range(self.first_year, self.last_year + 1))


@dataclass(frozen=True)
class Settings:
    store: StoreSettings = field(default_factory=StoreSettings)
    llm: LLMSettings = field(default_factory=LLMSettings)
    insights: InsightsSettings = field(default_factory=InsightsSettings)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        LOGGER.warning("invalid_setting name=%s value=%r default=%s", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        LOGGER.warning("invalid_setting name=%s value=%r default=%s", name, raw, default)
        return default


def parse_categories(raw: Optional[str], default: Tuple[QuestionCategory, ...]) -> Tuple[QuestionCategory, ...]:
    """Parse a comma separated list of category labels, ignoring unknown ones."""

    if raw is None or raw.strip() == "":
        return default
    parsed = []
    for token in raw.split(","):
        label = token.strip().upper()
        if not label:
            continue
        try:
            category = QuestionCategory(label)
        except ValueError:
            LOGGER.warning("unknown_category label=%s", label)
            continue
        if category not in parsed:
            parsed.append(category)
    return tuple(parsed)


def load_settings() -> Settings:
    """Build settings from the current environment."""

    supabase_url = os.getenv("SUPABASE_URL") or None
    supabase_key = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY") or None
    default_mode = "supabase" if supabase_url else "csv"
    store = StoreSettings(
        mode=os.getenv("DB_MODE", default_mode).lower(),
        supabase_url=supabase_url,
        supabase_key=supabase_key,
        data_dir=os.getenv("DATA_DIR", str(ROOT_DIR / "data")),
        tables=TableNames(
            properties=os.getenv("TABLE_PROPERTIES", "properties"),
            rent=os.getenv("TABLE_RENT", "rent_history"),
            grade=os.getenv("TABLE_GRADE", "grade_history"),
            price_position=os.getenv("TABLE_PRICE_POSITION", "price_position_history"),
            rent_trend=os.getenv("TABLE_RENT_TREND", "rent_time_series"),
        ),
    )

    model = os.getenv("LLM_MODEL") or "gemini-2.5-flash"
    llm = LLMSettings(
        api_key=os.getenv("GOOGLE_API_KEY") or None,
        # normalize: strip 'models/' prefix if present
        model_name=model.split("/", 1)[-1] if model.startswith("models/") else model,
        temperature=_env_float("LLM_TEMPERATURE", 0.2),
        warmup_timeout_s=_env_float("WARMUP_TIMEOUT_S", 8.0),
    )

    categories = parse_categories(os.getenv("INSIGHTS_CATEGORIES"), ALL_CATEGORIES)
    if QuestionCategory.COMPARISON not in categories:
        categories = categories + (QuestionCategory.COMPARISON,)
    insights = InsightsSettings(
        first_year=_env_int("INSIGHTS_FIRST_YEAR", 2008),
        last_year=_env_int("INSIGHTS_LAST_YEAR", 2020),
        comparable_limit=_env_int("INSIGHTS_COMPARABLE_LIMIT", 5),
        year_built_window=_env_int("INSIGHTS_YEAR_WINDOW", 5),
        market_record_limit=_env_int("INSIGHTS_MARKET_LIMIT", 20),
        peer_record_limit=_env_int("INSIGHTS_PEER_LIMIT", 20),
        categories=categories,
        augmented_categories=parse_categories(os.getenv("INSIGHTS_AUGMENTED_CATEGORIES"), DEFAULT_AUGMENTED),
    )
    return Settings(store=store, llm=llm, insights=insights)


__all__ = [
    "TableNames",
    "StoreSettings",
    "LLMSettings",
    "InsightsSettings",
    "Settings",
    "load_settings",
    "parse_categories",
]
