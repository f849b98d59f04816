from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence, TypeVar

from accounts_reports.core.errors import InvalidPage
from accounts_reports.core.schema import PaginationInfo

DEFAULT_PAGE_SIZE = 10

T = TypeVar("T")


@dataclass(slots=True)
class PaginationState:
    """Current page of one report table. Derived bounds are never stored."""

    current_page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError("page_size must be a positive integer")
        if self.current_page < 1:
            raise InvalidPage(f"page must be >= 1, got {self.current_page}")

    def go_to(self, page: int) -> None:
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise InvalidPage(f"page must be a positive integer, got {page!r}")
        self.current_page = page

    def reset(self) -> None:
        self.current_page = 1


def total_pages(length: int, page_size: int) -> int:
    return math.ceil(length / page_size) if length > 0 else 0


def page_bounds(length: int, page: int, page_size: int) -> tuple[int, int]:
    """Return ``(start, end)`` for ``page``; an out-of-range page gives an empty window."""

    start = (page - 1) * page_size
    end = min(start + page_size, length)
    return start, end


def paginate(items: Sequence[T], state: PaginationState) -> list[T]:
    start, end = page_bounds(len(items), state.current_page, state.page_size)
    if start >= end:
        return []
    return list(items[start:end])


def pagination_info(length: int, state: PaginationState) -> PaginationInfo:
    start, end = page_bounds(length, state.current_page, state.page_size)
    return PaginationInfo(
        current_page=state.current_page,
        total_pages=total_pages(length, state.page_size),
        total_items=length,
        start_index=start,
        end_index=end,
    )
