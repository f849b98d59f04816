from __future__ import annotations


class ReportError(Exception):
    """Base class for reporting failures."""


class SourceUnavailable(ReportError):
    """Raised when the upstream data source cannot provide a dataset."""


class MalformedPayload(SourceUnavailable):
    """Raised when a source payload does not have the expected top-level shape."""


class RenderSurfaceUnavailable(ReportError):
    """Raised when a print surface cannot be acquired."""


class UnknownDataset(ReportError, KeyError):
    def __init__(self, dataset_id: str) -> None:
        super().__init__(dataset_id)
        self.dataset_id = dataset_id

    def __str__(self) -> str:
        return f"unknown dataset: {self.dataset_id}"


class UnknownFilterSlot(ReportError, KeyError):
    def __init__(self, dataset_id: str, slot: str) -> None:
        super().__init__(slot)
        self.dataset_id = dataset_id
        self.slot = slot

    def __str__(self) -> str:
        return f"dataset {self.dataset_id} has no filter slot {self.slot!r}"


class InvalidFilterValue(ReportError, ValueError):
    """Raised when a bucket slot receives a value outside its bucket names."""


class InvalidPage(ReportError, ValueError):
    """Raised when a page number below 1 is requested."""


class InvalidTimeRange(ReportError, ValueError):
    """Raised for a time range outside weekly, monthly and yearly."""
