"""Normalisation of raw source records into typed report rows.

Every function here is pure and tolerant of partial records: a missing or
unparseable field becomes its default (``""`` for text, ``0`` for numbers)
instead of failing the batch.  Only a payload whose *top level* has the wrong
shape is rejected, with :class:`MalformedPayload`.
"""
from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

import pandas as pd

from accounts_reports.core.errors import MalformedPayload
from accounts_reports.core.schema import (
    AgingRow,
    ComplianceRow,
    ComplianceSummary,
    PeriodSummary,
    SLABreachRow,
    SLABreachSummary,
    TrendPoint,
)

SECONDS_PER_DAY = 86400


def safe_decimal(value: Any, default: str = "0") -> Decimal:
    try:
        result = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        return Decimal(default)
    if not result.is_finite():
        return Decimal(default)
    return result


def safe_float(value: Any, default: float = 0.0) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def safe_int(value: Any, default: int = 0) -> int:
    return int(safe_float(value, float(default)))


def safe_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def days_since(value: Any, now: datetime) -> int:
    """Whole days elapsed between ``value`` and ``now``, never negative.

    Absent or unparseable dates yield ``0``. Naive timestamps are read as UTC.
    """

    if isinstance(value, str):
        if not value.strip():
            return 0
    elif not isinstance(value, (datetime, date)):
        return 0

    try:
        parsed = pd.to_datetime(value, utc=True, errors="coerce")
    except (TypeError, ValueError, OverflowError):
        return 0
    if pd.isna(parsed):
        return 0

    reference = pd.Timestamp(now)
    if reference.tzinfo is None:
        reference = reference.tz_localize("UTC")
    elapsed = (reference - parsed).total_seconds()
    return max(0, math.floor(elapsed / SECONDS_PER_DAY))


def _record(raw: Any) -> Mapping[str, Any]:
    return raw if isinstance(raw, Mapping) else {}


def _records(payload: Any, name: str) -> list[Any]:
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise MalformedPayload(f"{name}: expected a list, got {type(payload).__name__}")
    return payload


def _envelope(payload: Any, name: str) -> Mapping[str, Any]:
    if payload is None:
        return {}
    if not isinstance(payload, Mapping):
        raise MalformedPayload(f"{name}: expected an object, got {type(payload).__name__}")
    return payload


# ----------------------------------------------------------------------
# single records
# ----------------------------------------------------------------------
def normalize_aging_record(raw: Any, now: datetime) -> AgingRow:
    record = _record(raw)
    oldest = record.get("oldestInvoiceDate")
    return AgingRow(
        vendor=safe_text(record.get("vendorName")),
        outstanding_amount=safe_decimal(record.get("outstandingAmount")),
        avg_days_pending=safe_float(record.get("avgPendingDays")),
        oldest_invoice_date=safe_text(oldest),
        oldest_invoice_days=days_since(oldest, now),
    )


def normalize_compliance_record(raw: Any) -> ComplianceRow:
    record = _record(raw)
    return ComplianceRow(
        vendor=safe_text(record.get("vendor")),
        total_invoices=safe_int(record.get("totalInvoices")),
        compliant_percentage=safe_float(record.get("compliantPercentage")),
        issues_found=safe_int(record.get("issuesFound")),
    )


def normalize_sla_breach_record(raw: Any) -> SLABreachRow:
    record = _record(raw)
    return SLABreachRow(
        sla_type=safe_text(record.get("slaType")),
        breach_count=safe_int(record.get("breachCount")),
        avg_delay_days=safe_float(record.get("avgDelayDays")),
    )


def normalize_trend_point(raw: Any) -> TrendPoint:
    record = _record(raw)
    return TrendPoint(
        period=safe_text(record.get("period")),
        released=safe_decimal(record.get("released")),
        pending=safe_decimal(record.get("pending")),
    )


# ----------------------------------------------------------------------
# whole payloads
# ----------------------------------------------------------------------
def normalize_aging_payload(payload: Any, now: datetime) -> list[AgingRow]:
    return [normalize_aging_record(item, now) for item in _records(payload, "aging")]


def normalize_compliance_payload(payload: Any) -> tuple[list[ComplianceRow], ComplianceSummary]:
    envelope = _envelope(payload, "compliance")
    rows = [normalize_compliance_record(item) for item in _records(envelope.get("vendors"), "compliance.vendors")]
    summary = ComplianceSummary(overall_compliance_rate=safe_float(envelope.get("overallComplianceRate")))
    return rows, summary


def normalize_sla_breach_payload(payload: Any) -> tuple[list[SLABreachRow], SLABreachSummary]:
    envelope = _envelope(payload, "sla_breaches")
    rows = [normalize_sla_breach_record(item) for item in _records(envelope.get("items"), "sla_breaches.items")]
    summary = SLABreachSummary(
        total_breaches=safe_int(envelope.get("totalBreaches")),
        avg_delay_across_all=safe_float(envelope.get("avgDelayAcrossAll")),
    )
    return rows, summary


def normalize_period_summary(payload: Any) -> PeriodSummary:
    envelope = _envelope(payload, "summary")
    return PeriodSummary(
        released=safe_decimal(envelope.get("released")),
        pending=safe_decimal(envelope.get("pending")),
    )


def normalize_trends_payload(payload: Any) -> list[TrendPoint]:
    return [normalize_trend_point(item) for item in _records(payload, "trends")]
