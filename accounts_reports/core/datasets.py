"""Static description of the three report tables: filter slots and columns."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from accounts_reports.core.errors import UnknownDataset, UnknownFilterSlot
from accounts_reports.core.filters import (
    AGING_STATUS_BUCKETS,
    BREACH_SEVERITY_BUCKETS,
    COMPLIANCE_LEVEL_BUCKETS,
    DELAY_SEVERITY_BUCKETS,
    BucketSlot,
    ChoiceSlot,
    FilterSlot,
    TextSlot,
)
from accounts_reports.core.formatting import format_inr, format_number, format_percent


class DatasetId(str, Enum):
    PAYMENT_AGING = "payment_aging"
    COMPLIANCE = "compliance"
    SLA_BREACHES = "sla_breaches"


@dataclass(frozen=True, slots=True)
class ExportColumn:
    """One exported column; ``key`` is the row's serialised field name."""

    key: str
    label: str
    formatter: Callable[[Any], str] = format_number

    def print_value(self, value: Any) -> str:
        return self.formatter(value)


@dataclass(frozen=True, slots=True)
class DatasetDefinition:
    id: DatasetId
    title: str
    slots: tuple[FilterSlot, ...]
    columns: tuple[ExportColumn, ...]

    @property
    def column_keys(self) -> list[str]:
        return [column.key for column in self.columns]

    def slot(self, name: str) -> FilterSlot:
        for slot in self.slots:
            if slot.name == name:
                return slot
        raise UnknownFilterSlot(self.id.value, name)


PAYMENT_AGING = DatasetDefinition(
    id=DatasetId.PAYMENT_AGING,
    title="Vendor Payment Aging",
    slots=(
        TextSlot("vendor", field="vendor"),
        BucketSlot("status", field="avg_days_pending", buckets=AGING_STATUS_BUCKETS),
    ),
    columns=(
        ExportColumn("vendor", "Vendor"),
        ExportColumn("outstandingAmount", "Outstanding Amount", format_inr),
        ExportColumn("avgDaysPending", "Avg Days Pending"),
        ExportColumn("oldestInvoiceDate", "Oldest Invoice"),
        ExportColumn("oldestInvoiceDays", "Oldest Days"),
    ),
)

COMPLIANCE = DatasetDefinition(
    id=DatasetId.COMPLIANCE,
    title="Invoice vs PO Compliance",
    slots=(
        TextSlot("vendor", field="vendor"),
        BucketSlot("level", field="compliant_percentage", buckets=COMPLIANCE_LEVEL_BUCKETS),
    ),
    columns=(
        ExportColumn("vendor", "Vendor"),
        ExportColumn("totalInvoices", "Total Invoices"),
        ExportColumn("compliantPercentage", "Compliant %", format_percent),
        ExportColumn("issuesFound", "Issues Found"),
    ),
)

SLA_BREACHES = DatasetDefinition(
    id=DatasetId.SLA_BREACHES,
    title="SLA Breaches",
    slots=(
        ChoiceSlot("sla_type", field="sla_type"),
        BucketSlot("breach_severity", field="breach_count", buckets=BREACH_SEVERITY_BUCKETS),
        BucketSlot("delay_severity", field="avg_delay_days", buckets=DELAY_SEVERITY_BUCKETS),
    ),
    columns=(
        ExportColumn("slaType", "SLA Type"),
        ExportColumn("breachCount", "Breaches"),
        ExportColumn("avgDelayDays", "Avg Delay (Days)"),
    ),
)

DATASETS: dict[DatasetId, DatasetDefinition] = {
    definition.id: definition for definition in (PAYMENT_AGING, COMPLIANCE, SLA_BREACHES)
}


def resolve_dataset_id(dataset_id: str | DatasetId) -> DatasetId:
    try:
        return DatasetId(dataset_id)
    except ValueError:
        raise UnknownDataset(str(dataset_id)) from None
