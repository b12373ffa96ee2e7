"""Coerce loosely-typed property payloads into canonical ``Property`` records."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

from ..errors import InvalidPayload
from ..models.property import (
    DEFAULT_ADDRESS,
    DEFAULT_CITY,
    DEFAULT_LEVELS,
    DEFAULT_NAME,
    DEFAULT_PROPERTY_ID,
    DEFAULT_STATE,
    DEFAULT_SUBMARKET,
    DEFAULT_UNITS,
    DEFAULT_YEAR_BUILT,
    Property,
)
from ..utils.coerce import to_int, to_str

# Checked in order; the dashboard's own keys come first, canonical names last.
FIELD_ALIASES: Dict[str, Tuple[str, ...]] = {
    "property_id": ("id", "Property_ID", "property_id"),
    "name": ("Name", "title", "name"),
    "address": ("Address", "address"),
    "city": ("City", "city"),
    "state": ("State", "state"),
    "year_built": ("YearBuilt", "year_built"),
    "units": ("Quantity", "Units", "quantity", "units"),
    "levels": ("Level", "level", "levels"),
    "submarket": ("Submarket", "submarket"),
}

TEXT_DEFAULTS: Dict[str, str] = {
    "property_id": DEFAULT_PROPERTY_ID,
    "name": DEFAULT_NAME,
    "address": DEFAULT_ADDRESS,
    "city": DEFAULT_CITY,
    "state": DEFAULT_STATE,
    "submarket": DEFAULT_SUBMARKET,
}

INT_DEFAULTS: Dict[str, int] = {
    "year_built": DEFAULT_YEAR_BUILT,
    "units": DEFAULT_UNITS,
    "levels": DEFAULT_LEVELS,
}


def _first_present(payload: Mapping[str, Any], keys: Tuple[str, ...]) -> Optional[Any]:
    for key in keys:
        value = payload.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def normalize_property(payload: Any) -> Property:
    """Build a fully populated ``Property`` from an arbitrary mapping.

    Missing or unparseable fields fall back to their defaults; only a payload
    that is not an object at all is rejected.
    """

    if isinstance(payload, Property):
        return payload
    if not isinstance(payload, Mapping):
        raise InvalidPayload(f"propertyData must be an object, got {type(payload).__name__}")

    fields: Dict[str, Any] = {}
    for field, default in TEXT_DEFAULTS.items():
        text = to_str(_first_present(payload, FIELD_ALIASES[field]))
        fields[field] = text or default
    for field, default in INT_DEFAULTS.items():
        number = to_int(_first_present(payload, FIELD_ALIASES[field]))
        fields[field] = number if number is not None else default
    return Property(**fields)


__all__ = ["FIELD_ALIASES", "normalize_property"]
