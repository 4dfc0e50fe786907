# Overview: Display formatting for already-computed amounts.

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any

CURRENCY_SUFFIX = "د.ع"


def format_currency(amount: Any, suffix: str = CURRENCY_SUFFIX) -> str:
    """
    Whole units with thousands separators, e.g. 5080000 -> "5,080,000 د.ع".

    This is the only place amounts are rounded. None/blank renders as 0.
    """
    value = Decimal(str(amount)) if amount not in (None, "") else Decimal(0)
    rounded = value.quantize(Decimal(1), rounding=ROUND_HALF_UP)
    text = f"{int(rounded):,}"
    return f"{text} {suffix}" if suffix else text


SUMMARY_LINES = (
    ("initialCapital", "Initial capital"),
    ("totalRevenue", "Total revenue"),
    ("totalCOGS", "Cost of goods sold"),
    ("grossProfit", "Gross profit"),
    ("managerProfit", "Manager profit"),
    ("totalEmployeeProfit", "Employee order profit"),
    ("employeeDues", "Employee dues"),
    ("systemProfitFromEmployees", "System profit from employees"),
    ("totalSystemProfit", "Total system profit"),
    ("generalExpenses", "General expenses"),
    ("netProfit", "Net profit"),
    ("totalPurchases", "Purchases"),
    ("mainCashBalance", "Main cash balance"),
    ("inventoryValue", "Inventory value"),
    ("totalAssets", "Total assets"),
)


def summary_lines(metrics: dict, suffix: str = CURRENCY_SUFFIX) -> list[str]:
    width = max(len(label) for _, label in SUMMARY_LINES)
    return [f"{label.ljust(width)}  {format_currency(metrics.get(key), suffix)}" for key, label in SUMMARY_LINES]
