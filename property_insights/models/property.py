"""Pydantic model for the canonical property record."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PROPERTY_ID = "unknown"
DEFAULT_NAME = "Unnamed Property"
DEFAULT_ADDRESS = "Unknown Address"
DEFAULT_CITY = "Unknown City"
DEFAULT_STATE = "TX"
DEFAULT_SUBMARKET = "Unknown"
DEFAULT_YEAR_BUILT = 0
DEFAULT_UNITS = 0
DEFAULT_LEVELS = 1


class Property(BaseModel):
    """Normalized property; serialized with the dashboard's field names."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    property_id: str = Field(DEFAULT_PROPERTY_ID, alias="Property_ID")
    name: str = Field(DEFAULT_NAME, alias="Name")
    address: str = Field(DEFAULT_ADDRESS, alias="Address")
    city: str = Field(DEFAULT_CITY, alias="City")
    state: str = Field(DEFAULT_STATE, alias="State")
    year_built: int = Field(DEFAULT_YEAR_BUILT, alias="YearBuilt")
    units: int = Field(DEFAULT_UNITS, alias="Quantity")
    levels: int = Field(DEFAULT_LEVELS, alias="Level")
    submarket: str = Field(DEFAULT_SUBMARKET, alias="Submarket")

    @property
    def has_known_id(self) -> bool:
        return self.property_id != DEFAULT_PROPERTY_ID

    @property
    def has_known_submarket(self) -> bool:
        return self.submarket != DEFAULT_SUBMARKET

    @property
    def has_known_year(self) -> bool:
        return self.year_built > 0

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class PropertyListResponse(BaseModel):
    items: List[Property]
    total: int
