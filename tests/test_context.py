import asyncio

import pytest

from conftest import FailingStore, fails_on
from property_insights.db.repo import Repo
from property_insights.errors import ContextFetchFailed, StoreQueryFailed
from property_insights.models.series import NOT_LEASED, Numeric
from property_insights.services.context import ContextService
from property_insights.services.metrics import SIGNIFICANT_IMPROVEMENT
from property_insights.services.normalizer import normalize_property

OAK_RIDGE = {"id": "P1", "Name": "Oak Ridge", "YearBuilt": 2010, "Submarket": "East"}


def _context(repo, settings):
    return ContextService(repo, settings)


def test_fact_context_holds_only_rent_history(repo, settings):
    bundle = asyncio.run(_context(repo, settings).fetch_fact(normalize_property(OAK_RIDGE)))
    sections = bundle.sections()
    assert set(sections) == {"propertyDetails", "rentHistory"}
    assert sections["rentHistory"]["2015"] == 1150.0
    assert sections["rentHistory"]["2010"] == NOT_LEASED
    summary = bundle.summary()
    assert summary.data_types == ["propertyDetails", "rentHistory"]
    assert summary.records_used == 1


def test_fact_context_without_rows_is_well_formed(repo, settings):
    bundle = asyncio.run(_context(repo, settings).fetch_fact(normalize_property({"Name": "Nowhere"})))
    assert bundle.sections()["rentHistory"] == {}
    assert len(bundle.rent) == len(settings.years)
    assert bundle.summary().records_used == 0


def test_comparison_excludes_subject(repo, settings):
    bundle = asyncio.run(_context(repo, settings).fetch_comparison(normalize_property(OAK_RIDGE)))
    similar_ids = [item.property_id for item in bundle.similar_properties]
    same_age_ids = sorted(item.property_id for item in bundle.same_age_properties)
    assert "P1" not in similar_ids
    assert sorted(similar_ids) == ["P2", "P3"]
    assert same_age_ids == ["P2", "P3", "P5"]
    assert bundle.subject.grade.get(2012).letter == "C+"


def test_comparison_excludes_subject_by_name_without_id(repo, settings):
    prop = normalize_property({"Name": "Oak Ridge", "YearBuilt": 2010, "Submarket": "East"})
    bundle = asyncio.run(_context(repo, settings).fetch_comparison(prop))
    assert "Oak Ridge" not in [item.name for item in bundle.similar_properties]
    assert "Oak Ridge" not in [item.name for item in bundle.same_age_properties]


def test_comparison_without_id_never_filters_on_id(frames, settings):
    # an integer id column rejects the "unknown" placeholder
    repo = Repo(FailingStore(frames, fails_on("properties", "property_id")))
    prop = normalize_property({"Name": "Oak Ridge", "YearBuilt": 2010, "Submarket": "East"})
    bundle = asyncio.run(_context(repo, settings).fetch_comparison(prop))
    assert sorted(item.name for item in bundle.similar_properties) == ["Cedar Point", "Maple Court"]
    assert sorted(item.name for item in bundle.same_age_properties) == ["Birch Lofts", "Cedar Point", "Maple Court"]


def test_comparable_sets_are_bounded(repo, settings):
    from dataclasses import replace

    bundle = asyncio.run(
        _context(repo, replace(settings, comparable_limit=1)).fetch_comparison(normalize_property(OAK_RIDGE))
    )
    assert len(bundle.similar_properties) == 1
    assert len(bundle.same_age_properties) == 1


def test_submarket_failure_degrades_to_empty_set(frames, settings):
    repo = Repo(FailingStore(frames, fails_on("properties", "submarket")))
    bundle = asyncio.run(_context(repo, settings).fetch_comparison(normalize_property(OAK_RIDGE)))
    assert bundle.similar_properties == []
    assert len(bundle.same_age_properties) == 3
    assert "similarProperties" not in bundle.summary().data_types


def test_secondary_series_failure_degrades(frames, settings):
    repo = Repo(FailingStore(frames, fails_on("grade_history", "property_name")))
    bundle = asyncio.run(_context(repo, settings).fetch_comparison(normalize_property(OAK_RIDGE)))
    assert not bundle.subject.grade.has_data
    assert bundle.subject.rent.has_data


def test_rent_lookup_failure_is_surfaced_with_cause(frames, settings):
    repo = Repo(FailingStore(frames, fails_on("rent_history", "property_name")))
    with pytest.raises(ContextFetchFailed) as info:
        asyncio.run(_context(repo, settings).fetch_fact(normalize_property(OAK_RIDGE)))
    assert isinstance(info.value.__cause__, StoreQueryFailed)
    assert info.value.__cause__.table == "rent_history"


def test_investment_context_computes_metrics(repo, settings):
    bundle = asyncio.run(_context(repo, settings).fetch_investment(normalize_property(OAK_RIDGE)))
    result = bundle.metrics
    assert result.property_growth.long_term == pytest.approx(40.0)
    assert result.property_growth.short_term == pytest.approx(100 / 13)
    assert result.grade_trajectory == SIGNIFICANT_IMPROVEMENT
    assert result.price_position.average == pytest.approx(1.0)
    assert result.price_position.latest == pytest.approx(1.05)
    assert len(bundle.submarket_rents) == 3
    assert result.submarket_growth.first_year == 2008
    assert "investmentMetrics" in bundle.summary().data_types


def test_market_context_aggregates_submarket(repo, settings):
    bundle = asyncio.run(_context(repo, settings).fetch_market(normalize_property(OAK_RIDGE)))
    conditions = bundle.conditions
    assert conditions.property_count[2008] == 1
    assert conditions.property_count[2020] == 3
    assert conditions.market_expansion_rate == pytest.approx(200.0)
    assert conditions.dominant_grade == "B+"
    assert conditions.average_rent.get(2020) == Numeric(pytest.approx((1400 + 1250 + 1100) / 3))
    assert [row["date"] for row in bundle.rent_trend] == ["2020-01-01", "2020-02-01", "2020-03-01"]
    assert bundle.summary().records_used == 3 + 3 + 3 + 1 + 3


def test_market_context_for_empty_submarket(repo, settings):
    prop = normalize_property({"Name": "Lonely Tower", "Submarket": "North"})
    bundle = asyncio.run(_context(repo, settings).fetch_market(prop))
    conditions = bundle.conditions
    assert conditions.dominant_grade is None
    assert conditions.market_expansion_rate == 0.0
    assert not conditions.average_rent.has_data
    assert bundle.submarket_rents == []
    assert bundle.sections()["marketConditions"]["dominantGrade"] is None
    assert "marketConditions" not in bundle.summary().data_types


def test_market_conditions_reported_when_observed(repo, settings):
    bundle = asyncio.run(_context(repo, settings).fetch_market(normalize_property(OAK_RIDGE)))
    assert bundle.conditions.has_data
    assert "marketConditions" in bundle.summary().data_types
