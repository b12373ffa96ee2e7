from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Tuple

from ..models.series import NOT_AVAILABLE, Grade, Numeric, Unavailable, YearlyMetricSeries, YearValue
from ..utils.coerce import to_float, to_str

RENT_PREFIXES: Tuple[str, ...] = ("rent", "avg_rent")
GRADE_PREFIXES: Tuple[str, ...] = ("grade",)
POSITION_PREFIXES: Tuple[str, ...] = ("price_position", "position", "ratio")


def _first(r: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = r.get(key)
        if value is not None and to_str(value):
            return value
    return None


def map_property_row(r: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "property_id": to_str(_first(r, "property_id", "Property_ID", "id")),
        "name": to_str(_first(r, "name", "property_name", "Property_Name", "Name")),
        "address": to_str(_first(r, "address", "Address")),
        "city": to_str(_first(r, "city", "City")),
        "state": to_str(_first(r, "state", "State")),
        "year_built": _first(r, "year_built", "YearBuilt"),
        "units": _first(r, "quantity", "Quantity", "units", "num_units"),
        "levels": _first(r, "level", "Level"),
        "submarket": to_str(_first(r, "submarket", "Submarket", "submarket_name")),
    }


def _unavailable(raw: Any) -> Unavailable:
    label = to_str(raw)
    return Unavailable(label) if label and label.lower() != "nan" else Unavailable(NOT_AVAILABLE)


def parse_numeric(raw: Any) -> YearValue:
    value = to_float(raw)
    if value is None:
        return _unavailable(raw)
    return Numeric(value)


def parse_grade(raw: Any) -> YearValue:
    if isinstance(raw, str):
        grade = Grade.parse(raw)
        if grade is not None:
            return grade
    return _unavailable(raw)


def year_value(r: Mapping[str, Any], year: int, prefixes: Sequence[str]) -> Optional[Any]:
    """Find the raw value for ``year`` under ``2015``, ``rent_2015`` or ``rent2015`` style keys."""

    candidates = [str(year)]
    for prefix in prefixes:
        candidates.extend((f"{prefix}_{year}", f"{prefix}{year}"))
    for key in candidates:
        if key in r:
            return r[key]
    return None


def series_from_row(
    r: Optional[Mapping[str, Any]],
    years: Sequence[int],
    parser: Callable[[Any], YearValue],
    prefixes: Sequence[str],
) -> YearlyMetricSeries:
    if not r:
        return YearlyMetricSeries.empty(years)
    values = {year: parser(year_value(r, year, prefixes)) for year in years}
    return YearlyMetricSeries(years, values)


def rent_series(r: Optional[Mapping[str, Any]], years: Sequence[int]) -> YearlyMetricSeries:
    return series_from_row(r, years, parse_numeric, RENT_PREFIXES)


def grade_series(r: Optional[Mapping[str, Any]], years: Sequence[int]) -> YearlyMetricSeries:
    return series_from_row(r, years, parse_grade, GRADE_PREFIXES)


def position_series(r: Optional[Mapping[str, Any]], years: Sequence[int]) -> YearlyMetricSeries:
    return series_from_row(r, years, parse_numeric, POSITION_PREFIXES)


def row_label(r: Mapping[str, Any]) -> str:
    return to_str(_first(r, "property_name", "name", "Property_Name", "Name", "property_id"))


def map_rent_trend_row(r: Mapping[str, Any]) -> Dict[str, Any]:
    return {
        "date": to_str(r.get("date")),
        "rent": to_float(r.get("rent")),
        "yoy_growth": to_float(r.get("yoy_growth")),
        "mom_growth": to_float(r.get("mom_growth")),
    }
