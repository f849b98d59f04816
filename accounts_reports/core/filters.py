"""Filter slots and the predicate engine shared by every report table."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence, TypeVar, Union

from accounts_reports.core.errors import InvalidFilterValue

ALL = "all"

RowT = TypeVar("RowT")


@dataclass(frozen=True, slots=True)
class Bucket:
    """Named numeric range; ``None`` bounds are open-ended."""

    name: str
    lower: float | None = None
    upper: float | None = None
    lower_inclusive: bool = False
    upper_inclusive: bool = False

    def contains(self, value: float) -> bool:
        if self.lower is not None:
            if value < self.lower or (value == self.lower and not self.lower_inclusive):
                return False
        if self.upper is not None:
            if value > self.upper or (value == self.upper and not self.upper_inclusive):
                return False
        return True


@dataclass(frozen=True, slots=True)
class TextSlot:
    """Case-insensitive substring match against ``field``."""

    name: str
    field: str
    neutral: str = ""

    def validate(self, value: str) -> str:
        return "" if value is None else str(value)

    def matches(self, row: object, value: str) -> bool:
        if value == self.neutral:
            return True
        return value.lower() in str(getattr(row, self.field, "") or "").lower()


@dataclass(frozen=True, slots=True)
class ChoiceSlot:
    """Exact match against ``field``; the set of choices comes from the data."""

    name: str
    field: str
    neutral: str = ALL

    def validate(self, value: str) -> str:
        if value is None or str(value) == "":
            return self.neutral
        return str(value)

    def matches(self, row: object, value: str) -> bool:
        if value == self.neutral:
            return True
        return getattr(row, self.field, None) == value

    def choices(self, rows: Iterable[object]) -> list[str]:
        seen: list[str] = []
        for row in rows:
            option = getattr(row, self.field, "")
            if option and option not in seen:
                seen.append(option)
        return seen


@dataclass(frozen=True, slots=True)
class BucketSlot:
    """Partitions a numeric field into named buckets with no gaps or overlaps."""

    name: str
    field: str
    buckets: tuple[Bucket, ...]
    neutral: str = ALL

    @property
    def options(self) -> tuple[str, ...]:
        return tuple(bucket.name for bucket in self.buckets)

    def validate(self, value: str) -> str:
        if value is None or str(value) == "":
            return self.neutral
        value = str(value)
        if value != self.neutral and value not in self.options:
            raise InvalidFilterValue(
                f"{self.name} must be one of {', '.join((self.neutral,) + self.options)}; got {value!r}"
            )
        return value

    def classify(self, value: float) -> str | None:
        for bucket in self.buckets:
            if bucket.contains(value):
                return bucket.name
        return None

    def matches(self, row: object, value: str) -> bool:
        if value == self.neutral:
            return True
        number = getattr(row, self.field, 0)
        try:
            number = float(number)
        except (TypeError, ValueError):
            number = 0.0
        if math.isnan(number):
            number = 0.0
        return self.classify(number) == value


FilterSlot = Union[TextSlot, ChoiceSlot, BucketSlot]


def neutral_criteria(slots: Sequence[FilterSlot]) -> dict[str, str]:
    return {slot.name: slot.neutral for slot in slots}


def apply_filters(rows: Sequence[RowT], slots: Sequence[FilterSlot], criteria: Mapping[str, str]) -> list[RowT]:
    """Return the rows that satisfy every slot, preserving order."""

    active = [(slot, criteria[slot.name]) for slot in slots if criteria.get(slot.name, slot.neutral) != slot.neutral]
    if not active:
        return list(rows)
    return [row for row in rows if all(slot.matches(row, value) for slot, value in active)]


AGING_STATUS_BUCKETS = (
    Bucket("overdue", lower=30),
    Bucket("warning", lower=15, upper=30, upper_inclusive=True),
    Bucket("good", upper=15, upper_inclusive=True),
)

COMPLIANCE_LEVEL_BUCKETS = (
    Bucket("high", lower=95, lower_inclusive=True),
    Bucket("medium", lower=85, upper=95, lower_inclusive=True),
    Bucket("low", upper=85),
)

BREACH_SEVERITY_BUCKETS = (
    Bucket("high", lower=12, lower_inclusive=True),
    Bucket("medium", lower=8, upper=12, lower_inclusive=True),
    Bucket("low", upper=8),
)

DELAY_SEVERITY_BUCKETS = (
    Bucket("critical", lower=5),
    Bucket("moderate", lower=3, upper=5, upper_inclusive=True),
    Bucket("minor", upper=3, upper_inclusive=True),
)
