"""Headline figures for the reports page.

These never look at filter or pagination state: the outstanding total is
summed over every aging row, and the remaining figures are taken verbatim from
the source-level summaries so they cannot drift from the per-vendor detail.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from accounts_reports.core.schema import (
    AgingRow,
    ComplianceSummary,
    PeriodSummary,
    SLABreachSummary,
    SummaryMetrics,
)


def total_outstanding(rows: Iterable[AgingRow]) -> Decimal:
    return sum((row.outstanding_amount for row in rows), Decimal("0"))


def compute_summary(
    aging_rows: Iterable[AgingRow],
    compliance: ComplianceSummary | None,
    sla_breaches: SLABreachSummary | None,
    period: PeriodSummary | None,
    *,
    time_range: str = "weekly",
) -> SummaryMetrics:
    compliance = compliance or ComplianceSummary()
    sla_breaches = sla_breaches or SLABreachSummary()
    period = period or PeriodSummary()
    return SummaryMetrics(
        time_range=time_range,
        total_outstanding=total_outstanding(aging_rows),
        overall_compliance_rate=compliance.overall_compliance_rate,
        total_breaches=sla_breaches.total_breaches,
        avg_delay_across_all=sla_breaches.avg_delay_across_all,
        payments_released=period.released,
        pending_payments=period.pending,
    )
