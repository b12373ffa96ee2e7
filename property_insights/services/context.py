"""Context fetchers: load the records each question category needs.

Every fetcher returns a well-formed bundle even when the store has nothing for
the property. Secondary lookups that fail are logged and replaced by empty
results; only the subject's own rent lookup is allowed to abort a fetch.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, List, Optional, Tuple, TypeVar

from ..config import InsightsSettings
from ..db import mappers
from ..db.repo import Repo
from ..errors import ContextFetchFailed, StoreQueryFailed
from ..models.insights import ContextSummary
from ..models.property import Property
from ..models.series import YearlyMetricSeries
from ..utils.logging import get_logger
from .metrics import InvestmentMetrics, MarketConditions, investment_metrics, market_conditions
from .normalizer import normalize_property

LOGGER = get_logger("services.context")

T = TypeVar("T")


@dataclass(frozen=True)
class PeerSeries:
    name: str
    series: YearlyMetricSeries

    def to_dict(self) -> Dict[str, Any]:
        return {"property": self.name, "values": self.series.to_dict()}


@dataclass(frozen=True)
class SubjectSeries:
    rent: YearlyMetricSeries
    grade: YearlyMetricSeries
    price_position: YearlyMetricSeries


@dataclass(frozen=True)
class ContextBundle:
    """Base bundle: the subject property and nothing else."""

    property: Property

    def sections(self) -> Dict[str, Any]:
        return {"propertyDetails": self.property.to_payload()}

    def records_used(self) -> int:
        return 0

    def data_types(self) -> List[str]:
        return [name for name, value in self.sections().items() if value]

    def summary(self) -> ContextSummary:
        return ContextSummary(data_types=self.data_types(), records_used=self.records_used())


@dataclass(frozen=True)
class FactContext(ContextBundle):
    rent: Optional[YearlyMetricSeries] = None

    def sections(self) -> Dict[str, Any]:
        sections = super().sections()
        sections["rentHistory"] = self.rent.to_dict() if self.rent is not None and self.rent.has_data else {}
        return sections

    def records_used(self) -> int:
        return 1 if self.rent is not None and self.rent.has_data else 0


def _series_section(series: YearlyMetricSeries) -> Dict[str, Any]:
    return series.to_dict() if series.has_data else {}


def _subject_sections(subject: Optional[SubjectSeries]) -> Dict[str, Any]:
    if subject is None:
        return {"rentHistory": {}, "gradeHistory": {}, "pricePositionHistory": {}}
    return {
        "rentHistory": _series_section(subject.rent),
        "gradeHistory": _series_section(subject.grade),
        "pricePositionHistory": _series_section(subject.price_position),
    }


def _subject_records(subject: Optional[SubjectSeries]) -> int:
    if subject is None:
        return 0
    return sum(1 for series in (subject.rent, subject.grade, subject.price_position) if series.has_data)


@dataclass(frozen=True)
class ComparisonContext(ContextBundle):
    subject: Optional[SubjectSeries] = None
    similar_properties: List[Property] = field(default_factory=list)
    same_age_properties: List[Property] = field(default_factory=list)

    def sections(self) -> Dict[str, Any]:
        sections = super().sections()
        sections.update(_subject_sections(self.subject))
        sections["similarProperties"] = [item.to_payload() for item in self.similar_properties]
        sections["sameAgeProperties"] = [item.to_payload() for item in self.same_age_properties]
        return sections

    def records_used(self) -> int:
        return _subject_records(self.subject) + len(self.similar_properties) + len(self.same_age_properties)


@dataclass(frozen=True)
class InvestmentContext(ContextBundle):
    subject: Optional[SubjectSeries] = None
    submarket_rents: List[PeerSeries] = field(default_factory=list)
    metrics: InvestmentMetrics = field(default_factory=InvestmentMetrics)

    def sections(self) -> Dict[str, Any]:
        sections = super().sections()
        sections.update(_subject_sections(self.subject))
        sections["submarketRentHistory"] = [peer.to_dict() for peer in self.submarket_rents]
        sections["investmentMetrics"] = self.metrics.to_dict()
        return sections

    def records_used(self) -> int:
        return _subject_records(self.subject) + len(self.submarket_rents)


@dataclass(frozen=True)
class MarketContext(ContextBundle):
    subject: Optional[SubjectSeries] = None
    submarket_rents: List[PeerSeries] = field(default_factory=list)
    submarket_grades: List[PeerSeries] = field(default_factory=list)
    submarket_price_positions: List[PeerSeries] = field(default_factory=list)
    rent_trend: List[Dict[str, Any]] = field(default_factory=list)
    conditions: Optional[MarketConditions] = None

    def sections(self) -> Dict[str, Any]:
        sections = super().sections()
        sections.update(_subject_sections(self.subject))
        sections["submarketRentRecords"] = [peer.to_dict() for peer in self.submarket_rents]
        sections["submarketGradeRecords"] = [peer.to_dict() for peer in self.submarket_grades]
        sections["submarketPricePositionRecords"] = [peer.to_dict() for peer in self.submarket_price_positions]
        sections["submarketRentTrend"] = list(self.rent_trend)
        sections["marketConditions"] = self.conditions.to_dict() if self.conditions is not None else {}
        return sections

    def data_types(self) -> List[str]:
        # zeroed conditions still go to the prompt but are not reported as used data
        observed = self.conditions is not None and self.conditions.has_data
        return [name for name in super().data_types() if observed or name != "marketConditions"]

    def records_used(self) -> int:
        return (
            _subject_records(self.subject)
            + len(self.submarket_rents)
            + len(self.submarket_grades)
            + len(self.submarket_price_positions)
            + len(self.rent_trend)
        )


class ContextService:
    def __init__(self, repository: Repo, settings: Optional[InsightsSettings] = None) -> None:
        self.repository = repository
        self.settings = settings or InsightsSettings()

    @property
    def years(self) -> Tuple[int, ...]:
        return self.settings.years

    # ------------------------------------------------------------------
    # Fetchers
    async def fetch_none(self, prop: Property) -> ContextBundle:
        return ContextBundle(property=prop)

    async def fetch_fact(self, prop: Property) -> FactContext:
        rent = await self._subject_rent(prop)
        return FactContext(property=prop, rent=rent)

    async def fetch_comparison(self, prop: Property) -> ComparisonContext:
        subject, similar, same_age = await asyncio.gather(
            self._subject_series(prop),
            self._safe("similar_properties", self._similar_properties(prop), []),
            self._safe("same_age_properties", self._same_age_properties(prop), []),
        )
        return ComparisonContext(
            property=prop,
            subject=subject,
            similar_properties=similar,
            same_age_properties=same_age,
        )

    async def fetch_investment(self, prop: Property) -> InvestmentContext:
        limit = self.settings.peer_record_limit
        subject, rent_rows = await asyncio.gather(
            self._subject_series(prop),
            self._submarket_rows("submarket_rents", self.repository.submarket_rent_rows, prop, limit),
        )
        peers = [PeerSeries(mappers.row_label(row), mappers.rent_series(row, self.years)) for row in rent_rows]
        metrics = investment_metrics(
            subject.rent,
            subject.grade,
            subject.price_position,
            [peer.series for peer in peers],
            self.settings.short_term_points,
        )
        return InvestmentContext(property=prop, subject=subject, submarket_rents=peers, metrics=metrics)

    async def fetch_market(self, prop: Property) -> MarketContext:
        limit = self.settings.market_record_limit
        repo = self.repository
        subject, rent_rows, grade_rows, position_rows, trend_rows = await asyncio.gather(
            self._subject_series(prop),
            self._submarket_rows("submarket_rents", repo.submarket_rent_rows, prop, limit),
            self._submarket_rows("submarket_grades", repo.submarket_grade_rows, prop, limit),
            self._submarket_rows("submarket_price_positions", repo.submarket_price_position_rows, prop, limit),
            self._submarket_rows("rent_trend", repo.rent_trend_rows, prop, self.settings.rent_trend_limit),
        )
        rents = [PeerSeries(mappers.row_label(row), mappers.rent_series(row, self.years)) for row in rent_rows]
        grades = [PeerSeries(mappers.row_label(row), mappers.grade_series(row, self.years)) for row in grade_rows]
        positions = [
            PeerSeries(mappers.row_label(row), mappers.position_series(row, self.years)) for row in position_rows
        ]
        conditions = market_conditions(
            [peer.series for peer in rents],
            [peer.series for peer in grades],
            self.years,
            self.settings.short_term_points,
        )
        return MarketContext(
            property=prop,
            subject=subject,
            submarket_rents=rents,
            submarket_grades=grades,
            submarket_price_positions=positions,
            rent_trend=[mappers.map_rent_trend_row(row) for row in trend_rows],
            conditions=conditions,
        )

    # ------------------------------------------------------------------
    # Sub-queries
    async def _safe(self, name: str, pending: Awaitable[T], default: T) -> T:
        try:
            return await pending
        except StoreQueryFailed as exc:
            LOGGER.warning("subquery_failed name=%s table=%s cause=%s", name, exc.table, exc.cause)
            return default

    async def _subject_rent(self, prop: Property) -> YearlyMetricSeries:
        try:
            row = await self.repository.rent_row(prop.name)
        except StoreQueryFailed as exc:
            raise ContextFetchFailed(f"Failed to load rent history for property '{prop.name}'") from exc
        return mappers.rent_series(row, self.years)

    async def _subject_series(self, prop: Property) -> SubjectSeries:
        rent, grade_row, position_row = await asyncio.gather(
            self._subject_rent(prop),
            self._safe("grade_history", self.repository.grade_row(prop.name), None),
            self._safe("price_position_history", self.repository.price_position_row(prop.name), None),
        )
        return SubjectSeries(
            rent=rent,
            grade=mappers.grade_series(grade_row, self.years),
            price_position=mappers.position_series(position_row, self.years),
        )

    async def _submarket_rows(self, name: str, query, prop: Property, limit: int) -> List[Dict]:
        if not prop.has_known_submarket:
            return []
        return await self._safe(name, query(prop.submarket, limit), [])

    @staticmethod
    def _exclude_id(prop: Property) -> Optional[str]:
        return prop.property_id if prop.has_known_id else None

    def _comparables(self, rows: List[Dict], prop: Property) -> List[Property]:
        comparables = []
        for row in rows:
            candidate = normalize_property(mappers.map_property_row(row))
            if prop.has_known_id and candidate.property_id == prop.property_id:
                continue
            if not prop.has_known_id and candidate.name.lower() == prop.name.lower():
                continue
            comparables.append(candidate)
        return comparables[: self.settings.comparable_limit]

    async def _similar_properties(self, prop: Property) -> List[Property]:
        if not prop.has_known_submarket:
            return []
        # one extra row so dropping the subject still fills the set
        rows = await self.repository.properties_in_submarket(
            prop.submarket, self._exclude_id(prop), self.settings.comparable_limit + 1
        )
        return self._comparables(rows, prop)

    async def _same_age_properties(self, prop: Property) -> List[Property]:
        if not prop.has_known_year:
            return []
        window = self.settings.year_built_window
        rows = await self.repository.properties_built_between(
            prop.year_built - window, prop.year_built + window, self._exclude_id(prop), self.settings.comparable_limit + 1
        )
        return self._comparables(rows, prop)


__all__ = [
    "PeerSeries",
    "SubjectSeries",
    "ContextBundle",
    "FactContext",
    "ComparisonContext",
    "InvestmentContext",
    "MarketContext",
    "ContextService",
]
