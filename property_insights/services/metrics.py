"""Derived statistics over per-year property records.

Every function here is total: empty inputs, single observations and zero
denominators resolve to ``0.0`` or a neutral label instead of raising. Growth
figures are expressed as percentages.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..models.series import Grade, Numeric, YearlyMetricSeries

SIGNIFICANT_IMPROVEMENT = "Significant Improvement"
SLIGHT_IMPROVEMENT = "Slight Improvement"
UNCHANGED = "Unchanged"
SLIGHT_DECLINE = "Slight Decline"
SIGNIFICANT_DECLINE = "Significant Decline"

SIGNIFICANT_GRADE_DELTA = 0.5
DEFAULT_SHORT_TERM_POINTS = 3


@dataclass(frozen=True)
class GrowthFigures:
    annualized: float = 0.0
    short_term: float = 0.0
    long_term: float = 0.0
    first_year: Optional[int] = None
    last_year: Optional[int] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "annualizedGrowth": round(self.annualized, 2),
            "shortTermGrowth": round(self.short_term, 2),
            "longTermGrowth": round(self.long_term, 2),
            "firstYear": self.first_year,
            "lastYear": self.last_year,
        }


@dataclass(frozen=True)
class GradeTrajectory:
    label: str = UNCHANGED
    change: float = 0.0
    first_grade: Optional[str] = None
    last_grade: Optional[str] = None


@dataclass(frozen=True)
class PricePosition:
    average: float = 0.0
    latest: float = 0.0
    latest_year: Optional[int] = None


@dataclass(frozen=True)
class InvestmentMetrics:
    """Property growth, grade and price position next to the submarket's growth."""

    property_growth: GrowthFigures = field(default_factory=GrowthFigures)
    grade: GradeTrajectory = field(default_factory=GradeTrajectory)
    price_position: PricePosition = field(default_factory=PricePosition)
    submarket_growth: GrowthFigures = field(default_factory=GrowthFigures)

    @property
    def cagr(self) -> float:
        return self.property_growth.annualized

    @property
    def grade_trajectory(self) -> str:
        return self.grade.label

    def to_dict(self) -> Dict[str, object]:
        return {
            "cagr": round(self.property_growth.annualized, 2),
            "shortTermGrowth": round(self.property_growth.short_term, 2),
            "longTermGrowth": round(self.property_growth.long_term, 2),
            "gradeTrajectory": self.grade.label,
            "gradeChange": round(self.grade.change, 2),
            "firstGrade": self.grade.first_grade,
            "latestGrade": self.grade.last_grade,
            "avgPricePosition": round(self.price_position.average, 4),
            "latestPricePosition": round(self.price_position.latest, 4),
            "submarketCagr": round(self.submarket_growth.annualized, 2),
            "submarketShortTermGrowth": round(self.submarket_growth.short_term, 2),
            "submarketLongTermGrowth": round(self.submarket_growth.long_term, 2),
        }


@dataclass(frozen=True)
class MarketConditions:
    average_rent: YearlyMetricSeries
    yoy_growth: YearlyMetricSeries
    property_count: Dict[int, int]
    grade_distribution: Dict[int, Dict[str, float]]
    dominant_grade: Optional[str] = None
    market_expansion_rate: float = 0.0
    submarket_growth: GrowthFigures = field(default_factory=GrowthFigures)

    @property
    def has_data(self) -> bool:
        return any(self.property_count.values()) or any(self.grade_distribution.values())

    def to_dict(self) -> Dict[str, object]:
        return {
            "averageRentByYear": self.average_rent.to_dict(),
            "yoyGrowthByYear": self.yoy_growth.to_dict(),
            "propertyCountByYear": {str(year): count for year, count in self.property_count.items()},
            "gradeDistribution": {str(year): shares for year, shares in self.grade_distribution.items()},
            "dominantGrade": self.dominant_grade,
            "marketExpansionRate": round(self.market_expansion_rate, 2),
            "submarketGrowth": self.submarket_growth.to_dict(),
        }


def _pct_change(start: float, end: float) -> float:
    if not start:
        return 0.0
    return (end - start) / start * 100


def growth_from_points(points: Sequence[Tuple[int, float]], short_term_points: int = DEFAULT_SHORT_TERM_POINTS) -> GrowthFigures:
    """Compound, short-term and long-term growth over ``(year, value)`` points."""

    ordered = sorted(points)
    if len(ordered) < 2:
        return GrowthFigures()
    first_year, first = ordered[0]
    last_year, last = ordered[-1]

    long_term = _pct_change(first, last)
    span = last_year - first_year
    annualized = 0.0
    if span > 0 and first > 0 and last > 0:
        annualized = (float(np.power(last / first, 1.0 / span)) - 1) * 100

    recent = ordered[-max(short_term_points, 2):]
    short_term = _pct_change(recent[0][1], last)
    return GrowthFigures(
        annualized=annualized,
        short_term=short_term,
        long_term=long_term,
        first_year=first_year,
        last_year=last_year,
    )


def rent_growth(series: YearlyMetricSeries, short_term_points: int = DEFAULT_SHORT_TERM_POINTS) -> GrowthFigures:
    return growth_from_points(series.numeric_points(), short_term_points)


def classify_grade_change(delta: float) -> str:
    if delta > SIGNIFICANT_GRADE_DELTA:
        return SIGNIFICANT_IMPROVEMENT
    if delta > 0:
        return SLIGHT_IMPROVEMENT
    if delta < -SIGNIFICANT_GRADE_DELTA:
        return SIGNIFICANT_DECLINE
    if delta < 0:
        return SLIGHT_DECLINE
    return UNCHANGED


def grade_trajectory(series: YearlyMetricSeries) -> GradeTrajectory:
    graded = series.grade_points()
    if len(graded) < 2:
        return GradeTrajectory()
    first, last = graded[0][1], graded[-1][1]
    # rounding keeps float noise (2.3 -> 3.3) from leaking into the label
    delta = round(last.points - first.points, 4)
    return GradeTrajectory(
        label=classify_grade_change(delta),
        change=delta,
        first_grade=first.letter,
        last_grade=last.letter,
    )


def price_position(series: YearlyMetricSeries) -> PricePosition:
    points = series.numeric_points()
    if not points:
        return PricePosition()
    values = [value for _, value in points]
    latest_year, latest = points[-1]
    return PricePosition(average=float(np.mean(values)), latest=latest, latest_year=latest_year)


def average_by_year(series_list: Sequence[YearlyMetricSeries], years: Sequence[int]) -> YearlyMetricSeries:
    """Cross-property average per year; years nobody reported stay unavailable."""

    averages = {}
    for year in years:
        observed = []
        for series in series_list:
            value = series.get(year)
            if isinstance(value, Numeric):
                observed.append(value.value)
        if observed:
            averages[year] = Numeric(float(np.mean(observed)))
    return YearlyMetricSeries(years, averages)


def participants_by_year(series_list: Sequence[YearlyMetricSeries], years: Sequence[int]) -> Dict[int, int]:
    return {
        year: sum(1 for series in series_list if isinstance(series.get(year), Numeric))
        for year in years
    }


def year_over_year(series: YearlyMetricSeries) -> YearlyMetricSeries:
    """Growth between consecutive data-bearing years, keyed by the later year."""

    points = series.numeric_points()
    growth = {}
    for (_, previous), (year, current) in zip(points, points[1:]):
        if previous:
            growth[year] = Numeric(_pct_change(previous, current))
    return YearlyMetricSeries(series.years, growth)


def grade_distribution(series_list: Sequence[YearlyMetricSeries], years: Sequence[int]) -> Dict[int, Dict[str, float]]:
    distribution: Dict[int, Dict[str, float]] = {}
    for year in years:
        counts: Counter = Counter()
        for series in series_list:
            value = series.get(year)
            if isinstance(value, Grade):
                counts[value.letter] += 1
        total = sum(counts.values())
        if not total:
            continue
        distribution[year] = {
            letter: round(count / total * 100, 2)
            for letter, count in sorted(counts.items(), key=lambda item: -Grade(item[0]).points)
        }
    return distribution


def dominant_grade(distribution: Dict[int, Dict[str, float]]) -> Optional[str]:
    if not distribution:
        return None
    latest = distribution[max(distribution)]
    if not latest:
        return None
    # ties go to the stronger grade
    return max(latest.items(), key=lambda item: (item[1], Grade(item[0]).points))[0]


def expansion_rate(counts: Dict[int, int]) -> float:
    active = [(year, count) for year, count in sorted(counts.items()) if count > 0]
    if len(active) < 2:
        return 0.0
    return _pct_change(active[0][1], active[-1][1])


def investment_metrics(
    rent: YearlyMetricSeries,
    grade: YearlyMetricSeries,
    position: YearlyMetricSeries,
    peer_rents: Sequence[YearlyMetricSeries],
    short_term_points: int = DEFAULT_SHORT_TERM_POINTS,
) -> InvestmentMetrics:
    submarket_average = average_by_year(peer_rents, rent.years)
    return InvestmentMetrics(
        property_growth=rent_growth(rent, short_term_points),
        grade=grade_trajectory(grade),
        price_position=price_position(position),
        submarket_growth=rent_growth(submarket_average, short_term_points),
    )


def market_conditions(
    peer_rents: Sequence[YearlyMetricSeries],
    peer_grades: Sequence[YearlyMetricSeries],
    years: Sequence[int],
    short_term_points: int = DEFAULT_SHORT_TERM_POINTS,
) -> MarketConditions:
    average = average_by_year(peer_rents, years)
    counts = participants_by_year(peer_rents, years)
    distribution = grade_distribution(peer_grades, years)
    return MarketConditions(
        average_rent=average,
        yoy_growth=year_over_year(average),
        property_count=counts,
        grade_distribution=distribution,
        dominant_grade=dominant_grade(distribution),
        market_expansion_rate=expansion_rate(counts),
        submarket_growth=rent_growth(average, short_term_points),
    )


__all__ = [
    "GrowthFigures",
    "GradeTrajectory",
    "PricePosition",
    "InvestmentMetrics",
    "MarketConditions",
    "growth_from_points",
    "rent_growth",
    "classify_grade_change",
    "grade_trajectory",
    "price_position",
    "average_by_year",
    "participants_by_year",
    "year_over_year",
    "grade_distribution",
    "dominant_grade",
    "expansion_rate",
    "investment_metrics",
    "market_conditions",
]
