"""Application service layer for the accounts reports page."""
from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable

from accounts_reports.core.aggregation import compute_summary
from accounts_reports.core.datasets import DATASETS, DatasetDefinition, DatasetId, resolve_dataset_id
from accounts_reports.core.errors import InvalidTimeRange, SourceUnavailable
from accounts_reports.core.filters import BucketSlot, ChoiceSlot, apply_filters, neutral_criteria
from accounts_reports.core.normalize import (
    normalize_aging_payload,
    normalize_compliance_payload,
    normalize_period_summary,
    normalize_sla_breach_payload,
    normalize_trends_payload,
)
from accounts_reports.core.pagination import DEFAULT_PAGE_SIZE, PaginationState, paginate, pagination_info
from accounts_reports.core.schema import TIME_RANGES, PaginationInfo, PeriodSummary, SummaryMetrics, TrendPoint
from accounts_reports.core.settings import ReportSettings
from accounts_reports.domain import FetchInterest, ViewState
from accounts_reports.exporters.delimited_text import export_filename, to_delimited_text
from accounts_reports.exporters.print_document import PrintExporter, render_print_document
from accounts_reports.infrastructure import (
    HttpReportDataSource,
    ReportDataSource,
    StaticReportDataSource,
    html_file_surface_factory,
)

logger = logging.getLogger(__name__)


class ReportView:
    """Owns the rows, filters and pagination of one report table.

    State only changes through ``set_filter``, ``reset_filters``, ``set_page``
    and the fetch lifecycle methods. Any change to a filter value puts the view
    back on page 1.
    """

    def __init__(self, definition: DatasetDefinition, *, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        self.definition = definition
        self._page_size = page_size
        self._state = ViewState(
            criteria=neutral_criteria(definition.slots),
            pagination=PaginationState(page_size=page_size),
        )

    @property
    def dataset_id(self) -> DatasetId:
        return self.definition.id

    @property
    def rows(self) -> list[Any]:
        return list(self._state.rows)

    @property
    def criteria(self) -> dict[str, str]:
        return dict(self._state.criteria)

    @property
    def current_page(self) -> int:
        return self._state.pagination.current_page

    @property
    def loading(self) -> bool:
        return self._state.loading

    # ------------------------------------------------------------------
    # transitions
    # ------------------------------------------------------------------
    def set_filter(self, slot: str, value: str) -> None:
        value = self.definition.slot(slot).validate(value)
        if self._state.criteria[slot] != value:
            self._state.criteria[slot] = value
            self._state.pagination.reset()

    def reset_filters(self) -> None:
        neutral = neutral_criteria(self.definition.slots)
        if self._state.criteria != neutral:
            self._state.criteria = neutral
            self._state.pagination.reset()

    def set_page(self, page: int) -> None:
        self._state.pagination.go_to(page)

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------
    def filtered_rows(self) -> list[Any]:
        return apply_filters(self._state.rows, self.definition.slots, self._state.criteria)

    def get_visible_page(self) -> list[Any]:
        return paginate(self.filtered_rows(), self._state.pagination)

    def get_pagination_info(self) -> PaginationInfo:
        return pagination_info(len(self.filtered_rows()), self._state.pagination)

    def choices(self, slot: str) -> list[str]:
        definition = self.definition.slot(slot)
        if isinstance(definition, ChoiceSlot):
            return definition.choices(self._state.rows)
        if isinstance(definition, BucketSlot):
            return list(definition.options)
        return []

    def export_records(self) -> list[dict[str, Any]]:
        return [row.export_record() for row in self.filtered_rows()]

    # ------------------------------------------------------------------
    # fetch lifecycle
    # ------------------------------------------------------------------
    def begin_fetch(self) -> int:
        self._state.loading = True
        return self._state.interest.begin()

    def commit(self, token: int, rows: list[Any]) -> bool:
        """Install fetched rows unless a newer fetch or ``close`` superseded ``token``."""

        if not self._state.interest.is_current(token):
            return False
        self._state.rows = list(rows)
        self._state.loading = False
        return True

    def abandon(self, token: int) -> None:
        if self._state.interest.is_current(token):
            self._state.loading = False

    def close(self) -> None:
        self._state.interest.cancel()
        self._state.loading = False

    def reset(self) -> None:
        interest = self._state.interest
        interest.cancel()
        self._state = ViewState(
            criteria=neutral_criteria(self.definition.slots),
            pagination=PaginationState(page_size=self._page_size),
            interest=interest,
        )


class ReportsService:
    """Coordinates the three report tables, the trend series and the KPIs."""

    def __init__(
        self,
        source: ReportDataSource,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        print_exporter: PrintExporter | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._source = source
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._print_exporter = print_exporter or PrintExporter(html_file_surface_factory())
        self._views = {dataset_id: ReportView(definition, page_size=page_size) for dataset_id, definition in DATASETS.items()}
        self._source_summaries: dict[DatasetId, Any] = {}
        self._time_range = "weekly"
        self._period_summary = PeriodSummary()
        self._trends: list[TrendPoint] = []
        self._period_interest = FetchInterest()
        self._period_loading = False

    @property
    def time_range(self) -> str:
        return self._time_range

    @property
    def period_loading(self) -> bool:
        return self._period_loading

    @property
    def print_exporter(self) -> PrintExporter:
        return self._print_exporter

    def view(self, dataset_id: str | DatasetId) -> ReportView:
        return self._views[resolve_dataset_id(dataset_id)]

    def views(self) -> list[ReportView]:
        return list(self._views.values())

    # ------------------------------------------------------------------
    # fetching
    # ------------------------------------------------------------------
    async def _load(
        self,
        dataset_id: DatasetId,
        fetch: Callable[[], Awaitable[Any]],
        normalize: Callable[[Any], tuple[list[Any], Any]],
    ) -> bool:
        view = self._views[dataset_id]
        token = view.begin_fetch()
        try:
            rows, summary = normalize(await fetch())
        except SourceUnavailable as exc:
            logger.warning("%s unavailable, showing an empty report: %s", dataset_id.value, exc)
            rows, summary = [], None
        except Exception:
            logger.exception("%s fetch failed, showing an empty report", dataset_id.value)
            rows, summary = [], None
        except asyncio.CancelledError:
            view.abandon(token)
            raise

        if not view.commit(token, rows):
            logger.debug("discarding stale %s response", dataset_id.value)
            return False
        self._source_summaries[dataset_id] = summary
        return True

    async def load_aging(self) -> bool:
        return await self._load(
            DatasetId.PAYMENT_AGING,
            self._source.fetch_aging,
            lambda payload: (normalize_aging_payload(payload, self._clock()), None),
        )

    async def load_compliance(self) -> bool:
        return await self._load(DatasetId.COMPLIANCE, self._source.fetch_compliance, normalize_compliance_payload)

    async def load_sla_breaches(self) -> bool:
        return await self._load(DatasetId.SLA_BREACHES, self._source.fetch_sla_breaches, normalize_sla_breach_payload)

    async def _fetch_period_summary(self, time_range: str) -> PeriodSummary:
        try:
            return normalize_period_summary(await self._source.fetch_summary(time_range))
        except SourceUnavailable as exc:
            logger.warning("payment summary for %s unavailable: %s", time_range, exc)
            return PeriodSummary()
        except Exception:
            logger.exception("payment summary fetch for %s failed", time_range)
            return PeriodSummary()

    async def _fetch_trends(self, time_range: str) -> list[TrendPoint]:
        try:
            return normalize_trends_payload(await self._source.fetch_trends(time_range))
        except SourceUnavailable as exc:
            logger.warning("payment trends for %s unavailable: %s", time_range, exc)
            return []
        except Exception:
            logger.exception("payment trends fetch for %s failed", time_range)
            return []

    async def load_period(self) -> bool:
        """Fetch the released/pending totals and the trend series for the current range."""

        token = self._period_interest.begin()
        time_range = self._time_range
        self._period_loading = True
        summary, trends = await asyncio.gather(
            self._fetch_period_summary(time_range),
            self._fetch_trends(time_range),
        )

        if not self._period_interest.is_current(token):
            logger.debug("discarding stale %s period response", time_range)
            return False
        self._period_summary = summary
        self._trends = trends
        self._period_loading = False
        return True

    async def refresh(self) -> None:
        await asyncio.gather(
            self.load_aging(),
            self.load_compliance(),
            self.load_sla_breaches(),
            self.load_period(),
        )

    async def set_time_range(self, time_range: str) -> bool:
        if time_range not in TIME_RANGES:
            raise InvalidTimeRange(f"time range must be one of {', '.join(TIME_RANGES)}; got {time_range!r}")
        if time_range == self._time_range:
            return False
        self._time_range = time_range
        return await self.load_period()

    def close_view(self, dataset_id: str | DatasetId) -> None:
        self.view(dataset_id).close()

    def close(self) -> None:
        for view in self._views.values():
            view.close()
        self._period_interest.cancel()
        self._period_loading = False

    # ------------------------------------------------------------------
    # summaries
    # ------------------------------------------------------------------
    def get_summary(self) -> SummaryMetrics:
        return compute_summary(
            self._views[DatasetId.PAYMENT_AGING].rows,
            self._source_summaries.get(DatasetId.COMPLIANCE),
            self._source_summaries.get(DatasetId.SLA_BREACHES),
            self._period_summary,
            time_range=self._time_range,
        )

    def get_trends(self) -> list[TrendPoint]:
        return list(self._trends)

    # ------------------------------------------------------------------
    # exports
    # ------------------------------------------------------------------
    def export_as_delimited_text(self, dataset_id: str | DatasetId) -> str:
        view = self.view(dataset_id)
        return to_delimited_text(view.export_records(), view.definition.column_keys)

    def export_filename(self, dataset_id: str | DatasetId, on: date | None = None) -> str:
        return export_filename(self.view(dataset_id).dataset_id.value, on)

    def render_print_document(self, dataset_id: str | DatasetId) -> str:
        view = self.view(dataset_id)
        return render_print_document(view.definition.title, view.definition.columns, view.export_records())

    def trigger_print_export(self, dataset_id: str | DatasetId) -> None:
        self._print_exporter.trigger(self.render_print_document(dataset_id))

    # ------------------------------------------------------------------
    # lifecycle
    # ------------------------------------------------------------------
    async def aclose(self) -> None:
        self.close()
        await self._print_exporter.drain()
        await self._source.aclose()

    def reset(self) -> None:
        for view in self._views.values():
            view.reset()
        self._source_summaries.clear()
        self._time_range = "weekly"
        self._period_summary = PeriodSummary()
        self._trends = []
        self._period_interest.cancel()
        self._period_loading = False


def build_reports_service(settings: ReportSettings) -> ReportsService:
    source: ReportDataSource
    if settings.source_url:
        source = HttpReportDataSource(
            settings.source_url,
            token=settings.source_token,
            timeout=settings.source_timeout,
        )
    else:
        source = StaticReportDataSource()
    exporter = PrintExporter(
        html_file_surface_factory(settings.print_command),
        settle_delay=settings.print_settle_delay,
        cleanup_timeout=settings.print_cleanup_timeout,
    )
    return ReportsService(source, page_size=settings.page_size, print_exporter=exporter)


_service = ReportsService(StaticReportDataSource())


def get_reports_service() -> ReportsService:
    """Return the singleton reports service for the process."""

    return _service


def configure_reports_service(service: ReportsService) -> None:
    """Install the reports service used by the HTTP routes."""

    global _service
    _service = service


def reset_reports_state() -> None:
    """Reset the in-memory report state (used in tests)."""

    _service.reset()
