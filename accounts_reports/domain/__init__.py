"""Domain layer definitions."""

from .reports import FetchInterest, ViewState

__all__ = [
    "FetchInterest",
    "ViewState",
]
