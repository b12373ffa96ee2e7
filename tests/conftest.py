import asyncio
from typing import Callable, List, Optional, Sequence

import pandas as pd
import pytest

from property_insights.config import InsightsSettings, TableNames
from property_insights.db.repo import Repo
from property_insights.db.store import CSVStore, Filter
from property_insights.models.series import NOT_LEASED
from property_insights.services.completion import CompletionBackend
from property_insights.services.insights_service import InsightsService

YEARS = list(range(2008, 2021))

PROPERTIES = [
    {"property_id": "P1", "name": "Oak Ridge", "address": "100 Oak St", "city": "Austin", "state": "TX",
     "year_built": 2010, "quantity": 200, "level": 3, "submarket": "East"},
    {"property_id": "P2", "name": "Maple Court", "address": "22 Maple Ave", "city": "Austin", "state": "TX",
     "year_built": 2012, "quantity": 150, "level": 4, "submarket": "East"},
    {"property_id": "P3", "name": "Cedar Point", "address": "9 Cedar Rd", "city": "Austin", "state": "TX",
     "year_built": 2008, "quantity": 320, "level": 2, "submarket": "East"},
    {"property_id": "P4", "name": "Pine Vista", "address": "5 Pine Blvd", "city": "Dallas", "state": "TX",
     "year_built": 1995, "quantity": 90, "level": 2, "submarket": "West"},
    {"property_id": "P5", "name": "Birch Lofts", "address": "77 Birch Ln", "city": "Dallas", "state": "TX",
     "year_built": 2014, "quantity": 120, "level": 5, "submarket": "West"},
    {"property_id": "P6", "name": "Elm Park", "address": "3 Elm Way", "city": "Austin", "state": "TX",
     "year_built": 2016, "quantity": 80, "level": 3, "submarket": "South"},
]

OAK_RIDGE_RENT = {2012: 1000, 2013: 1050, 2014: 1100, 2015: 1150, 2016: 1200,
                  2017: 1250, 2018: 1300, 2019: 1350, 2020: 1400}
MAPLE_COURT_RENT = {2013: 900, 2014: 950, 2015: 1000, 2016: 1050, 2017: 1100,
                    2018: 1150, 2019: 1200, 2020: 1250}
CEDAR_POINT_RENT = {year: 800 + 25 * (year - 2008) for year in YEARS}


def wide_row(name: str, submarket: str, values: dict, prefix: str = "", missing=NOT_LEASED) -> dict:
    row = {"property_name": name, "submarket": submarket}
    for year in YEARS:
        row[f"{prefix}{year}"] = values.get(year, missing)
    return row


def build_frames() -> dict:
    tables = TableNames()
    rent = [
        wide_row("Oak Ridge", "East", OAK_RIDGE_RENT),
        wide_row("Maple Court", "East", MAPLE_COURT_RENT),
        wide_row("Cedar Point", "East", CEDAR_POINT_RENT),
        wide_row("Pine Vista", "West", {year: 700 for year in YEARS}),
        wide_row("Elm Park", "South", {2017: 1500, 2018: 1550}),
    ]
    grade = [
        wide_row("Oak Ridge", "East", {2012: "C+", 2020: "B+"}, prefix="grade_", missing=None),
        wide_row("Maple Court", "East", {2013: "B", 2020: "B-"}, prefix="grade_", missing=None),
        wide_row("Cedar Point", "East", {2020: "B+"}, prefix="grade_", missing=None),
    ]
    position = [
        wide_row("Oak Ridge", "East", {2012: 0.95, 2016: 1.0, 2020: 1.05}, prefix="price_position_", missing="N/A"),
    ]
    trend = [
        {"date": "2020-03-01", "submarket": "East", "rent": 1210.0, "yoy_growth": 3.1, "mom_growth": 0.2},
        {"date": "2020-01-01", "submarket": "East", "rent": 1200.0, "yoy_growth": 3.4, "mom_growth": 0.3},
        {"date": "2020-02-01", "submarket": "East", "rent": 1205.0, "yoy_growth": 3.2, "mom_growth": 0.4},
        {"date": "2020-01-01", "submarket": "West", "rent": 700.0, "yoy_growth": 0.0, "mom_growth": 0.0},
    ]
    return {
        tables.properties: pd.DataFrame(PROPERTIES),
        tables.rent: pd.DataFrame(rent),
        tables.grade: pd.DataFrame(grade),
        tables.price_position: pd.DataFrame(position),
        tables.rent_trend: pd.DataFrame(trend),
    }


class FailingStore(CSVStore):
    """CSV store that raises for queries matching ``fail_when(table, filters)``."""

    def __init__(self, frames, fail_when: Callable[[str, Sequence[Filter]], bool]) -> None:
        super().__init__(frames=frames)
        self.fail_when = fail_when

    async def select(self, table, filters=(), limit=None):
        if self.fail_when(table, filters):
            raise ConnectionError(f"store unavailable for {table}")
        return await super().select(table, filters, limit)


class ScriptedCompletion(CompletionBackend):
    """Answers classification prompts with ``label`` and everything else with ``answer``."""

    def __init__(self, label: str = "FACT", answer: str = "Scripted answer.", error: Optional[Exception] = None,
                 search_delay: float = 0.0) -> None:
        self.label = label
        self.answer = answer
        self.error = error
        self.search_delay = search_delay
        self.calls: List[dict] = []

    async def complete(self, prompt, *, web_search=False, temperature=None, max_output_tokens=None):
        self.calls.append({"prompt": prompt, "web_search": web_search})
        if prompt.startswith("Classify"):
            return self.label
        if web_search and self.search_delay:
            await asyncio.sleep(self.search_delay)
        if self.error is not None:
            raise self.error
        return self.answer

    @property
    def answer_calls(self) -> List[dict]:
        return [call for call in self.calls if not call["prompt"].startswith("Classify")]


def fails_on(table: str, column: str) -> Callable[[str, Sequence[Filter]], bool]:
    def predicate(name, filters):
        return name == table and any(item.column == column for item in filters)
    return predicate


@pytest.fixture
def frames():
    return build_frames()


@pytest.fixture
def settings():
    return InsightsSettings()


@pytest.fixture
def repo(frames):
    return Repo(CSVStore(frames=frames))


@pytest.fixture
def backend():
    return ScriptedCompletion()


@pytest.fixture
def service(repo, backend, settings):
    return InsightsService(repo, backend, settings, warmup_timeout_s=0.05)
