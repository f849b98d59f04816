from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

TimeRange = Literal["weekly", "monthly", "yearly"]
TIME_RANGES: tuple[str, ...] = ("weekly", "monthly", "yearly")

# Exact in python mode (CSV, print); a JSON number on the wire.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ReportRow(BaseModel):
    """Immutable row of a report table; serialises with camelCase keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    def export_record(self, mode: str = "python") -> dict:
        return self.model_dump(mode=mode, by_alias=True)


class AgingRow(ReportRow):
    vendor: str = ""
    outstanding_amount: Money = Decimal("0")
    avg_days_pending: float = 0.0
    oldest_invoice_date: str = ""
    oldest_invoice_days: int = Field(default=0, ge=0)


class ComplianceRow(ReportRow):
    vendor: str = ""
    total_invoices: int = 0
    compliant_percentage: float = 0.0
    issues_found: int = 0


class SLABreachRow(ReportRow):
    sla_type: str = ""
    breach_count: int = 0
    avg_delay_days: float = 0.0


class TrendPoint(ReportRow):
    period: str = ""
    released: Money = Decimal("0")
    pending: Money = Decimal("0")


class ComplianceSummary(BaseModel):
    overall_compliance_rate: float = 0.0


class SLABreachSummary(BaseModel):
    total_breaches: int = 0
    avg_delay_across_all: float = 0.0


class PeriodSummary(BaseModel):
    released: Money = Decimal("0")
    pending: Money = Decimal("0")


class SummaryMetrics(BaseModel):
    time_range: TimeRange = "weekly"
    total_outstanding: Money = Decimal("0")
    overall_compliance_rate: float = 0.0
    total_breaches: int = 0
    avg_delay_across_all: float = 0.0
    payments_released: Money = Decimal("0")
    pending_payments: Money = Decimal("0")


class PaginationInfo(BaseModel):
    current_page: int
    total_pages: int
    total_items: int
    start_index: int
    end_index: int
