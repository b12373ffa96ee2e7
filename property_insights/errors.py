"""Exception hierarchy for the insights pipeline.

Only payload validation, primary record lookups and completion failures are
meant to reach the orchestrator; everything else is absorbed closer to the
data it concerns.
"""

from __future__ import annotations

from typing import Optional


class InsightsError(Exception):
    """Base class for all pipeline errors."""


class InvalidPayload(InsightsError):
    """The request body is not a well-formed object."""


class StoreQueryFailed(InsightsError):
    def __init__(self, table: str, cause: Optional[BaseException] = None) -> None:
        self.table = table
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Query against '{table}' failed{detail}")


class ContextFetchFailed(InsightsError):
    """A fetcher could not load the subject property's primary records."""


class CompletionFailed(InsightsError):
    """The completion backend raised, returned nothing, or is not configured."""


class SynthesisFailed(InsightsError):
    """The response could not be generated for a classified question."""


__all__ = [
    "InsightsError",
    "InvalidPayload",
    "StoreQueryFailed",
    "ContextFetchFailed",
    "CompletionFailed",
    "SynthesisFailed",
]
