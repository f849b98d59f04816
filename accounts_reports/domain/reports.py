"""Per-table state owned by a single report view."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from accounts_reports.core.pagination import PaginationState


@dataclass(slots=True)
class FetchInterest:
    """Token guarding against stale fetch completions.

    ``begin`` hands out a new token; only the holder of the latest token may
    commit. ``cancel`` withdraws interest from every outstanding fetch.
    """

    generation: int = 0

    def begin(self) -> int:
        self.generation += 1
        return self.generation

    def is_current(self, token: int) -> bool:
        return token == self.generation

    def cancel(self) -> None:
        self.generation += 1


@dataclass(slots=True)
class ViewState:
    """Rows, filters and pagination of one report table."""

    rows: list[Any] = field(default_factory=list)
    criteria: dict[str, str] = field(default_factory=dict)
    pagination: PaginationState = field(default_factory=PaginationState)
    loading: bool = False
    interest: FetchInterest = field(default_factory=FetchInterest)
