"""Pydantic schemas for the property insights endpoint."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field


class QuestionCategory(str, Enum):
    FACT = "FACT"
    COMPLEX_FACT = "COMPLEX_FACT"
    COMPARISON = "COMPARISON"
    INVESTMENT = "INVESTMENT"
    MARKET = "MARKET"
    IRRELEVANT = "IRRELEVANT"


class ContextSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data_types: List[str] = Field(default_factory=list, alias="dataTypes")
    records_used: int = Field(0, alias="recordsUsed")


class InsightsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    response: str
    question_type: str = Field(..., alias="questionType")
    property: Dict[str, Any]
    context_summary: ContextSummary = Field(default_factory=ContextSummary, alias="contextSummary")


class ReadinessResponse(BaseModel):
    status: Literal["ready", "partially_initialized"]
    components: Dict[str, str] = Field(default_factory=dict)
