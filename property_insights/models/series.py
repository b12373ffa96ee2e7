"""Per-year metric values and the series that hold them."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

NOT_LEASED = "Property not leased yet"
NOT_AVAILABLE = "N/A"

GRADE_BASE: Dict[str, float] = {"A": 4.0, "B": 3.0, "C": 2.0, "D": 1.0, "F": 0.0}
GRADE_MODIFIER = 0.3

_GRADE_RE = re.compile(r"^([ABCDF])\s*([+\-−–]?)$", re.IGNORECASE)


@dataclass(frozen=True)
class Numeric:
    value: float

    def to_json(self) -> float:
        return self.value


@dataclass(frozen=True)
class Grade:
    """Letter grade, A through F with an optional + or - modifier."""

    letter: str

    @classmethod
    def parse(cls, raw: str) -> Optional["Grade"]:
        match = _GRADE_RE.match(raw.strip())
        if not match:
            return None
        base, modifier = match.group(1).upper(), match.group(2)
        if modifier in ("−", "–"):
            modifier = "-"
        return cls(base + modifier)

    @property
    def points(self) -> float:
        score = GRADE_BASE[self.letter[0]]
        if self.letter.endswith("+"):
            score += GRADE_MODIFIER
        elif self.letter.endswith("-"):
            score -= GRADE_MODIFIER
        return round(score, 1)

    def to_json(self) -> str:
        return self.letter


@dataclass(frozen=True)
class Unavailable:
    """A year with no observation; ``reason`` keeps the label the store used."""

    reason: str = NOT_AVAILABLE

    def to_json(self) -> str:
        return self.reason


YearValue = Union[Numeric, Grade, Unavailable]


class YearlyMetricSeries:
    """One value per configured year, never fewer and never more."""

    def __init__(self, years: Sequence[int], values: Optional[Mapping[int, YearValue]] = None) -> None:
        values = values or {}
        self._values: Dict[int, YearValue] = {}
        for year in sorted(set(years)):
            value = values.get(year)
            self._values[year] = value if value is not None else Unavailable()

    @classmethod
    def empty(cls, years: Sequence[int]) -> "YearlyMetricSeries":
        return cls(years)

    @property
    def years(self) -> Tuple[int, ...]:
        return tuple(self._values)

    def get(self, year: int) -> Optional[YearValue]:
        return self._values.get(year)

    def items(self) -> List[Tuple[int, YearValue]]:
        return list(self._values.items())

    def numeric_points(self) -> List[Tuple[int, float]]:
        return [(year, value.value) for year, value in self._values.items() if isinstance(value, Numeric)]

    def grade_points(self) -> List[Tuple[int, Grade]]:
        return [(year, value) for year, value in self._values.items() if isinstance(value, Grade)]

    @property
    def has_data(self) -> bool:
        return any(not isinstance(value, Unavailable) for value in self._values.values())

    def observed_count(self) -> int:
        return sum(1 for value in self._values.values() if not isinstance(value, Unavailable))

    def to_dict(self) -> Dict[str, Union[float, str]]:
        return {str(year): value.to_json() for year, value in self._values.items()}

    def __iter__(self) -> Iterator[int]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, YearlyMetricSeries):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"YearlyMetricSeries({self.to_dict()!r})"


__all__ = [
    "NOT_LEASED",
    "NOT_AVAILABLE",
    "Numeric",
    "Grade",
    "Unavailable",
    "YearValue",
    "YearlyMetricSeries",
]
