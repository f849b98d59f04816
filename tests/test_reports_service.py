import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
import sys

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from accounts_reports.application import ReportsService
from accounts_reports.core.datasets import DatasetId
from accounts_reports.core.errors import (
    InvalidFilterValue,
    InvalidPage,
    InvalidTimeRange,
    SourceUnavailable,
    UnknownDataset,
    UnknownFilterSlot,
)
from accounts_reports.exporters.print_document import PrintExporter
from accounts_reports.infrastructure import StaticReportDataSource

NOW = datetime(2025, 3, 31, tzinfo=timezone.utc)


class CapturingSurface:
    def __init__(self, sink: list[str]) -> None:
        self._sink = sink
        self._callbacks = []
        self.closed = False

    def write(self, document: str) -> None:
        self._sink.append(document)

    def on_after_print(self, callback) -> None:
        self._callbacks.append(callback)

    async def print(self) -> None:
        for callback in self._callbacks:
            callback()

    def close(self) -> None:
        self.closed = True


def _aging_payload(count: int, overdue: int) -> list[dict]:
    rows = []
    for index in range(count):
        rows.append(
            {
                "vendorName": f"Vendor {index:02d}",
                "outstandingAmount": 1000 + index,
                "avgPendingDays": 45 if index < overdue else 10,
                "oldestInvoiceDate": "2025-03-01T00:00:00Z" if index % 2 == 0 else None,
            }
        )
    return rows


def _service(source: StaticReportDataSource, documents: list[str] | None = None) -> ReportsService:
    sink = documents if documents is not None else []
    exporter = PrintExporter(lambda: CapturingSurface(sink), settle_delay=0, cleanup_timeout=0.01)
    return ReportsService(source, page_size=10, print_exporter=exporter, clock=lambda: NOW)


def test_overdue_filter_scenario():
    source = StaticReportDataSource(aging=_aging_payload(23, overdue=4))
    service = _service(source)
    asyncio.run(service.load_aging())

    view = service.view("payment_aging")
    assert view.get_pagination_info().total_pages == 3

    view.set_page(3)
    view.set_filter("status", "overdue")

    info = view.get_pagination_info()
    assert info.current_page == 1
    assert info.total_pages == 1
    assert info.total_items == 4
    assert (info.start_index, info.end_index) == (0, 4)
    assert len(view.get_visible_page()) == 4


def test_derived_days_computed_at_load_time():
    source = StaticReportDataSource(aging=_aging_payload(2, overdue=0))
    service = _service(source)
    asyncio.run(service.load_aging())

    rows = service.view(DatasetId.PAYMENT_AGING).rows
    assert rows[0].oldest_invoice_days == 30
    assert rows[1].oldest_invoice_days == 0
    assert rows[1].oldest_invoice_date == ""


def test_filter_changes_reset_page_but_navigation_does_not_touch_filters():
    source = StaticReportDataSource(aging=_aging_payload(23, overdue=15))
    service = _service(source)
    asyncio.run(service.load_aging())
    view = service.view("payment_aging")

    view.set_filter("vendor", "vendor")
    view.set_page(2)
    assert view.criteria == {"vendor": "vendor", "status": "all"}
    assert view.current_page == 2

    view.set_filter("vendor", "vendor")
    assert view.current_page == 2

    view.set_filter("vendor", "Vendor 1")
    assert view.current_page == 1

    view.set_page(2)
    view.reset_filters()
    assert view.current_page == 1
    assert view.criteria == {"vendor": "", "status": "all"}


def test_invalid_transitions_are_rejected():
    service = _service(StaticReportDataSource())
    view = service.view("sla_breaches")

    with pytest.raises(UnknownFilterSlot):
        view.set_filter("vendor", "x")
    with pytest.raises(InvalidFilterValue):
        view.set_filter("delay_severity", "extreme")
    with pytest.raises(InvalidPage):
        view.set_page(0)
    with pytest.raises(UnknownDataset):
        service.view("tickets")


def test_pages_partition_filtered_rows():
    source = StaticReportDataSource(aging=_aging_payload(23, overdue=15))
    service = _service(source)
    asyncio.run(service.load_aging())
    view = service.view("payment_aging")
    view.set_filter("status", "overdue")

    seen = []
    for page in range(1, view.get_pagination_info().total_pages + 1):
        view.set_page(page)
        seen.extend(row.vendor for row in view.get_visible_page())

    assert seen == [row.vendor for row in view.filtered_rows()]
    assert len(seen) == 15


def test_views_are_independent():
    source = StaticReportDataSource(
        aging=_aging_payload(12, overdue=2),
        compliance={"vendors": [{"vendor": f"V{i}", "compliantPercentage": 90} for i in range(12)]},
    )
    service = _service(source)
    asyncio.run(service.refresh())

    service.view("compliance").set_page(2)
    service.view("payment_aging").set_filter("status", "overdue")

    assert service.view("compliance").current_page == 2
    assert service.view("compliance").criteria == {"vendor": "", "level": "all"}


def test_summary_ignores_filters_and_uses_source_figures():
    source = StaticReportDataSource(
        aging=_aging_payload(3, overdue=1),
        compliance={"vendors": [{"vendor": "A", "compliantPercentage": 40}], "overallComplianceRate": 88.5},
        sla_breaches={"items": [{"slaType": "Invoice Approval", "breachCount": 3}], "totalBreaches": 27, "avgDelayAcrossAll": 4.2},
        summary={"weekly": {"released": "5000", "pending": "1200.50"}, "monthly": {"released": 20000, "pending": 800}},
        trends={"monthly": [{"period": "Jan", "released": 10, "pending": 5}]},
    )
    service = _service(source)
    asyncio.run(service.refresh())
    service.view("payment_aging").set_filter("vendor", "Vendor 00")

    summary = service.get_summary()
    assert summary.total_outstanding == Decimal("3003")
    assert summary.overall_compliance_rate == 88.5
    assert summary.total_breaches == 27
    assert summary.avg_delay_across_all == 4.2
    assert summary.payments_released == Decimal("5000")
    assert summary.pending_payments == Decimal("1200.50")
    assert service.get_trends() == []

    changed = asyncio.run(service.set_time_range("monthly"))
    assert changed is True
    summary = service.get_summary()
    assert summary.time_range == "monthly"
    assert summary.payments_released == Decimal("20000")
    assert [point.period for point in service.get_trends()] == ["Jan"]
    assert source.calls.count("summary:monthly") == 1

    assert asyncio.run(service.set_time_range("monthly")) is False
    with pytest.raises(InvalidTimeRange):
        asyncio.run(service.set_time_range("daily"))


def test_unavailable_source_yields_empty_rows_and_zero_summary():
    source = StaticReportDataSource(
        aging=SourceUnavailable("timeout"),
        compliance=["not", "an", "object"],
        sla_breaches={"items": [{"slaType": "Payment Release", "breachCount": 2}], "totalBreaches": 2},
        summary={"weekly": SourceUnavailable("down")},
    )
    service = _service(source)
    asyncio.run(service.refresh())

    assert service.view("payment_aging").rows == []
    assert service.view("payment_aging").loading is False
    assert service.view("compliance").rows == []
    assert len(service.view("sla_breaches").rows) == 1

    summary = service.get_summary()
    assert summary.total_outstanding == Decimal("0")
    assert summary.overall_compliance_rate == 0
    assert summary.total_breaches == 2
    assert summary.payments_released == Decimal("0")


def test_unexpected_fetch_errors_degrade_to_empty_reports():
    source = StaticReportDataSource(
        aging=asyncio.TimeoutError("slow upstream"),
        compliance=RuntimeError("boom"),
        sla_breaches={"items": [{"slaType": "Payment Release", "breachCount": 2}], "totalBreaches": 2},
        summary={"weekly": RuntimeError("down")},
        trends={"weekly": ValueError("bad trend series")},
    )
    service = _service(source)
    asyncio.run(service.refresh())

    for dataset in ("payment_aging", "compliance"):
        assert service.view(dataset).rows == []
        assert service.view(dataset).loading is False
    assert len(service.view("sla_breaches").rows) == 1
    assert service.get_trends() == []
    assert service.period_loading is False

    summary = service.get_summary()
    assert summary.total_outstanding == Decimal("0")
    assert summary.overall_compliance_rate == 0
    assert summary.payments_released == Decimal("0")


class GatedSource(StaticReportDataSource):
    """Hands out aging responses only when the test releases them."""

    def __init__(self) -> None:
        super().__init__()
        self.gates: list[asyncio.Future] = []

    async def fetch_aging(self):
        gate = asyncio.get_running_loop().create_future()
        self.gates.append(gate)
        return await gate


def test_stale_response_does_not_overwrite_newer_one():
    source = GatedSource()
    service = _service(source)

    async def scenario():
        first = asyncio.create_task(service.load_aging())
        await asyncio.sleep(0)
        second = asyncio.create_task(service.load_aging())
        await asyncio.sleep(0)

        source.gates[1].set_result([{"vendorName": "fresh"}])
        assert await second is True
        source.gates[0].set_result([{"vendorName": "stale"}])
        assert await first is False

    asyncio.run(scenario())

    assert [row.vendor for row in service.view("payment_aging").rows] == ["fresh"]
    assert service.view("payment_aging").loading is False


def test_closed_view_discards_in_flight_result():
    source = GatedSource()
    service = _service(source)

    async def scenario():
        pending = asyncio.create_task(service.load_aging())
        await asyncio.sleep(0)
        assert service.view("payment_aging").loading is True
        service.close_view("payment_aging")
        source.gates[0].set_result([{"vendorName": "late"}])
        assert await pending is False

    asyncio.run(scenario())

    assert service.view("payment_aging").rows == []


def test_exports_use_filtered_unpaginated_rows():
    source = StaticReportDataSource(aging=_aging_payload(23, overdue=12))
    documents: list[str] = []
    service = _service(source, documents)
    asyncio.run(service.load_aging())
    view = service.view("payment_aging")
    view.set_filter("status", "overdue")
    view.set_page(2)

    text = service.export_as_delimited_text("payment_aging")
    lines = text.split("\n")
    assert lines[0] == "vendor,outstandingAmount,avgDaysPending,oldestInvoiceDate,oldestInvoiceDays"
    assert len(lines) == 13

    html = service.render_print_document("payment_aging")
    assert html.count("<tr>") == 13
    assert "Vendor 11" in html
    assert "Vendor 12" not in html


def test_empty_sla_dataset_exports():
    documents: list[str] = []
    service = _service(StaticReportDataSource(), documents)

    async def scenario():
        await service.load_sla_breaches()
        assert service.export_as_delimited_text("sla_breaches") == ""
        assert service.trigger_print_export("sla_breaches") is None
        await service.print_exporter.drain()

    asyncio.run(scenario())

    assert len(documents) == 1
    assert "<th>SLA Type</th>" in documents[0]
    assert "<td>" not in documents[0]


def test_choices_for_sla_type():
    source = StaticReportDataSource(
        sla_breaches={"items": [{"slaType": "Invoice Approval"}, {"slaType": "Payment Release"}, {"slaType": "Invoice Approval"}]}
    )
    service = _service(source)
    asyncio.run(service.load_sla_breaches())

    view = service.view("sla_breaches")
    assert view.choices("sla_type") == ["Invoice Approval", "Payment Release"]
    assert view.choices("breach_severity") == ["high", "medium", "low"]


def test_reset_clears_state():
    source = StaticReportDataSource(aging=_aging_payload(3, overdue=1))
    service = _service(source)
    asyncio.run(service.load_aging())
    service.view("payment_aging").set_filter("status", "good")

    service.reset()

    assert service.view("payment_aging").rows == []
    assert service.view("payment_aging").criteria == {"vendor": "", "status": "all"}
    assert service.time_range == "weekly"
