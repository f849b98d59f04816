from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from accounts_reports.core.normalize import safe_decimal


def _group_indian(digits: str) -> str:
    """Group an integer digit string the en-IN way: 12,34,567."""

    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups: list[str] = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_inr(value: Any) -> str:
    amount = safe_decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    whole, _, fraction = f"{abs(amount):f}".partition(".")
    text = _group_indian(whole)
    if fraction and fraction != "00":
        text = f"{text}.{fraction}"
    return f"{sign}₹{text}"


def format_number(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_percent(value: Any) -> str:
    return f"{format_number(value)}%"
