# Overview: Pure financial calculation shared by the live aggregator and the HTTP endpoint.

"""
Unified financial calculation.

Turns a snapshot of raw records (orders with line items, profit entries,
expenses, purchases, products with variants, settings) into one set of
derived metrics. Nothing here touches the database or Flask; both call sites
read records themselves and hand the snapshot in, so they cannot drift apart.

Records are plain mappings (the to_dict() shape of the models). Missing or
malformed fields never raise:
- amount: final_amount -> total_amount -> 0
- unit cost: variant cost_price -> product cost_price -> 0
- a missing or unparseable date keeps the record inside any date window

Values are never rounded here; formatting is the caller's job.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence

from backoffice.time_utils import coerce_datetime, normalize_datetime, to_utc_z


logger = logging.getLogger(__name__)


DELIVERED_STATUSES = frozenset({"delivered", "completed"})
DEFAULT_DELIVERY_FEE = 5000
MANAGER_SENTINEL = "manager"
SYSTEM_EXPENSE_TYPE = "system"
EMPLOYEE_DUES_CATEGORY = "مستحقات الموظفين"
GOODS_PURCHASE_CATEGORY = "شراء بضاعة"


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DateWindow:
    """Inclusive reporting window. A missing bound disables filtering."""
    start: datetime | None = None
    end: datetime | None = None

    def __post_init__(self):
        if self.start is not None:
            object.__setattr__(self, "start", normalize_datetime(self.start))
        if self.end is not None:
            object.__setattr__(self, "end", normalize_datetime(self.end))

    @property
    def is_bounded(self) -> bool:
        return self.start is not None and self.end is not None

    def to_dict(self) -> dict:
        return {"from": to_utc_z(self.start), "to": to_utc_z(self.end)}


@dataclass(frozen=True)
class ExpenseCategories:
    """Expense markers that identify amounts already counted elsewhere."""
    employee_dues: str = EMPLOYEE_DUES_CATEGORY
    goods_purchase: str = GOODS_PURCHASE_CATEGORY
    system_type: str = SYSTEM_EXPENSE_TYPE


@dataclass(frozen=True)
class EngineOptions:
    default_delivery_fee: int = DEFAULT_DELIVERY_FEE
    manager_sentinel: str = MANAGER_SENTINEL
    categories: ExpenseCategories = field(default_factory=ExpenseCategories)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "EngineOptions":
        return cls(
            default_delivery_fee=config.get("DEFAULT_DELIVERY_FEE", DEFAULT_DELIVERY_FEE),
            manager_sentinel=config.get("MANAGER_SENTINEL", MANAGER_SENTINEL),
            categories=ExpenseCategories(
                employee_dues=config.get("EMPLOYEE_DUES_CATEGORY", EMPLOYEE_DUES_CATEGORY),
                goods_purchase=config.get("GOODS_PURCHASE_CATEGORY", GOODS_PURCHASE_CATEGORY),
                system_type=config.get("SYSTEM_EXPENSE_TYPE", SYSTEM_EXPENSE_TYPE),
            ),
        )


@dataclass(frozen=True)
class RecordSnapshot:
    """Everything the engine reads, captured at one point in time."""
    orders: Sequence[Mapping[str, Any]] = ()
    profits: Sequence[Mapping[str, Any]] = ()
    expenses: Sequence[Mapping[str, Any]] = ()
    purchases: Sequence[Mapping[str, Any]] = ()
    products: Sequence[Mapping[str, Any]] = ()
    # Either a list of {"key", "value"} records or a plain key -> value mapping
    settings: Sequence[Mapping[str, Any]] | Mapping[str, Any] = ()


# ---------------------------------------------------------------------------
# Field helpers
# ---------------------------------------------------------------------------

def _number(value: Any) -> int | float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, Decimal):
        # Normalised to int/float like every other numeric source
        if not value.is_finite():
            return None
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            parsed = float(text)
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def _first_amount(*values: Any) -> int | float:
    """First non-zero numeric value, else 0."""
    for value in values:
        number = _number(value)
        if number:
            return number
    return 0


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def settings_to_mapping(settings: Sequence[Mapping[str, Any]] | Mapping[str, Any] | None) -> dict:
    if settings is None:
        return {}
    if isinstance(settings, Mapping):
        return dict(settings)
    result = {}
    for row in settings:
        if isinstance(row, Mapping) and row.get("key") is not None:
            result[row["key"]] = row.get("value")
    return result


def resolve_settings(
    settings: Sequence[Mapping[str, Any]] | Mapping[str, Any] | None,
    default_delivery_fee: int = DEFAULT_DELIVERY_FEE,
) -> tuple[int | float, int | float]:
    """Return (initial_capital, delivery_fee) from raw settings."""
    values = settings_to_mapping(settings)
    initial_capital = _number(values.get("initial_capital")) or 0
    delivery_fee = _number(values.get("delivery_fee"))
    if delivery_fee is None:
        delivery_fee = default_delivery_fee
    return initial_capital, delivery_fee


# ---------------------------------------------------------------------------
# Temporal filter
# ---------------------------------------------------------------------------

def in_range(timestamp: Any, window: DateWindow | None) -> bool:
    """
    True when timestamp lies inside window, bounds included.

    Fails open: no window, a half-open window, or a missing/unparseable
    timestamp all count as inside.
    """
    if window is None or not window.is_bounded:
        return True
    moment = coerce_datetime(timestamp)
    if moment is None:
        return True
    return window.start <= moment <= window.end


def order_effective_date(order: Mapping[str, Any]) -> Any:
    return order.get("updated_at") or order.get("created_at")


# ---------------------------------------------------------------------------
# Order classification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OrderClassification:
    delivered: tuple = ()
    manager: tuple = ()
    employee: tuple = ()


def is_delivered(order: Mapping[str, Any], window: DateWindow | None = None) -> bool:
    return (
        order.get("status") in DELIVERED_STATUSES
        and order.get("receipt_received") is True
        and in_range(order_effective_date(order), window)
    )


def is_manager_order(order: Mapping[str, Any], manager_sentinel: str = MANAGER_SENTINEL) -> bool:
    created_by = order.get("created_by")
    return not created_by or created_by == manager_sentinel


def classify_orders(
    orders: Iterable[Mapping[str, Any]],
    window: DateWindow | None = None,
    manager_sentinel: str = MANAGER_SENTINEL,
) -> OrderClassification:
    delivered = [order for order in orders if is_delivered(order, window)]
    manager = []
    employee = []
    for order in delivered:
        if is_manager_order(order, manager_sentinel):
            manager.append(order)
        else:
            employee.append(order)
    return OrderClassification(delivered=tuple(delivered), manager=tuple(manager), employee=tuple(employee))


# ---------------------------------------------------------------------------
# Revenue / COGS
# ---------------------------------------------------------------------------

def order_net_revenue(order: Mapping[str, Any], delivery_fee: int | float) -> int | float:
    # One flat delivery charge per order, whatever the item count
    return _first_amount(order.get("final_amount"), order.get("total_amount")) - delivery_fee


def resolve_item_cost(item: Mapping[str, Any]) -> int | float:
    return _first_amount(
        _mapping(item.get("product_variants")).get("cost_price"),
        _mapping(item.get("products")).get("cost_price"),
    )


def order_cogs(order: Mapping[str, Any]) -> int | float:
    items = order.get("order_items")
    if not isinstance(items, (list, tuple)):
        return 0
    total = 0
    for item in items:
        if not isinstance(item, Mapping):
            continue
        quantity = _number(item.get("quantity")) or 0
        total += resolve_item_cost(item) * quantity
    return total


# ---------------------------------------------------------------------------
# Profit allocation
# ---------------------------------------------------------------------------

def employee_dues(
    profits: Iterable[Mapping[str, Any]],
    delivered_orders: Iterable[Mapping[str, Any]],
    window: DateWindow | None = None,
) -> int | float:
    """Sum of employee_profit for entries whose order is delivered and in range."""
    orders_by_id: dict = {}
    for order in delivered_orders:
        order_id = order.get("id")
        if order_id is not None:
            orders_by_id.setdefault(order_id, order)

    total = 0
    for entry in profits:
        order = orders_by_id.get(entry.get("order_id"))
        if order is None:
            continue
        if not in_range(order_effective_date(order), window):
            continue
        total += _first_amount(entry.get("employee_profit"))
    return total


# ---------------------------------------------------------------------------
# Expenses, purchases, inventory
# ---------------------------------------------------------------------------

def is_general_expense(
    expense: Mapping[str, Any],
    window: DateWindow | None = None,
    categories: ExpenseCategories = ExpenseCategories(),
) -> bool:
    if not in_range(expense.get("transaction_date"), window):
        return False
    if expense.get("expense_type") == categories.system_type:
        return False
    if expense.get("category") == categories.employee_dues:
        return False
    if _mapping(expense.get("related_data")).get("category") == categories.goods_purchase:
        return False
    return True


def general_expenses(
    expenses: Iterable[Mapping[str, Any]],
    window: DateWindow | None = None,
    categories: ExpenseCategories = ExpenseCategories(),
) -> int | float:
    return sum(
        (_first_amount(e.get("amount")) for e in expenses if is_general_expense(e, window, categories)),
        0,
    )


def total_purchases(
    purchases: Iterable[Mapping[str, Any]],
    window: DateWindow | None = None,
) -> int | float:
    return sum(
        (_first_amount(p.get("total_amount")) for p in purchases if in_range(p.get("created_at"), window)),
        0,
    )


def inventory_value(products: Iterable[Mapping[str, Any]]) -> int | float:
    """Current stock valued at cost; independent of any reporting window."""
    total = 0
    for product in products:
        variants = product.get("variants")
        if not isinstance(variants, (list, tuple)):
            continue
        for variant in variants:
            if not isinstance(variant, Mapping):
                continue
            quantity = _number(variant.get("quantity")) or 0
            cost = _first_amount(variant.get("cost_price"), product.get("cost_price"))
            total += quantity * cost
    return total


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------

_METRIC_KEYS = (
    ("total_revenue", "totalRevenue"),
    ("manager_revenue", "managerRevenue"),
    ("employee_revenue", "employeeRevenue"),
    ("total_cogs", "totalCOGS"),
    ("manager_cogs", "managerCOGS"),
    ("employee_cogs", "employeeCOGS"),
    ("gross_profit", "grossProfit"),
    ("manager_profit", "managerProfit"),
    ("total_employee_profit", "totalEmployeeProfit"),
    ("employee_dues", "employeeDues"),
    ("system_profit_from_employees", "systemProfitFromEmployees"),
    ("total_system_profit", "totalSystemProfit"),
    ("net_profit", "netProfit"),
    ("general_expenses", "generalExpenses"),
    ("total_purchases", "totalPurchases"),
    ("inventory_value", "inventoryValue"),
    ("main_cash_balance", "mainCashBalance"),
    ("total_assets", "totalAssets"),
    ("delivery_fee", "deliveryFee"),
    ("initial_capital", "initialCapital"),
)


@dataclass(frozen=True)
class FinancialSummary:
    total_revenue: Any
    manager_revenue: Any
    employee_revenue: Any
    total_cogs: Any
    manager_cogs: Any
    employee_cogs: Any
    gross_profit: Any
    manager_profit: Any
    total_employee_profit: Any
    employee_dues: Any
    system_profit_from_employees: Any
    total_system_profit: Any
    net_profit: Any
    general_expenses: Any
    total_purchases: Any
    inventory_value: Any
    main_cash_balance: Any
    total_assets: Any
    delivery_fee: Any
    initial_capital: Any
    delivered_orders: tuple = ()
    manager_orders: tuple = ()
    employee_orders: tuple = ()

    def to_dict(self, include_orders: bool = False) -> dict:
        data = {key: getattr(self, attr) for attr, key in _METRIC_KEYS}
        data["deliveredOrdersCount"] = len(self.delivered_orders)
        data["managerOrdersCount"] = len(self.manager_orders)
        data["employeeOrdersCount"] = len(self.employee_orders)
        if include_orders:
            data["deliveredOrders"] = [dict(o) for o in self.delivered_orders]
            data["managerOrders"] = [dict(o) for o in self.manager_orders]
            data["employeeOrders"] = [dict(o) for o in self.employee_orders]
        return data


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def compute_financials(
    snapshot: RecordSnapshot,
    window: DateWindow | None = None,
    options: EngineOptions | None = None,
) -> FinancialSummary:
    options = options or EngineOptions()
    initial_capital, delivery_fee = resolve_settings(snapshot.settings, options.default_delivery_fee)

    orders = classify_orders(snapshot.orders or (), window, options.manager_sentinel)

    manager_revenue = sum((order_net_revenue(o, delivery_fee) for o in orders.manager), 0)
    manager_cogs = sum((order_cogs(o) for o in orders.manager), 0)
    manager_profit = manager_revenue - manager_cogs

    employee_revenue = sum((order_net_revenue(o, delivery_fee) for o in orders.employee), 0)
    employee_cogs = sum((order_cogs(o) for o in orders.employee), 0)
    total_employee_profit = employee_revenue - employee_cogs

    dues = employee_dues(snapshot.profits or (), orders.delivered, window)
    system_profit_from_employees = total_employee_profit - dues
    if system_profit_from_employees < 0:
        logger.warning(
            "Employee dues (%s) exceed employee order profit (%s); system profit from employees is %s",
            dues,
            total_employee_profit,
            system_profit_from_employees,
        )
    total_system_profit = manager_profit + system_profit_from_employees

    expenses_total = general_expenses(snapshot.expenses or (), window, options.categories)
    purchases_total = total_purchases(snapshot.purchases or (), window)
    stock_value = inventory_value(snapshot.products or ())

    total_revenue = manager_revenue + employee_revenue
    total_cogs = manager_cogs + employee_cogs

    net_profit = total_system_profit - expenses_total
    main_cash_balance = initial_capital + net_profit - purchases_total
    total_assets = main_cash_balance + stock_value

    logger.info(
        "Computed unified financials: %d delivered orders (%d manager, %d employee)",
        len(orders.delivered),
        len(orders.manager),
        len(orders.employee),
    )

    return FinancialSummary(
        total_revenue=total_revenue,
        manager_revenue=manager_revenue,
        employee_revenue=employee_revenue,
        total_cogs=total_cogs,
        manager_cogs=manager_cogs,
        employee_cogs=employee_cogs,
        gross_profit=total_revenue - total_cogs,
        manager_profit=manager_profit,
        total_employee_profit=total_employee_profit,
        employee_dues=dues,
        system_profit_from_employees=system_profit_from_employees,
        total_system_profit=total_system_profit,
        net_profit=net_profit,
        general_expenses=expenses_total,
        total_purchases=purchases_total,
        inventory_value=stock_value,
        main_cash_balance=main_cash_balance,
        total_assets=total_assets,
        delivery_fee=delivery_fee,
        initial_capital=initial_capital,
        delivered_orders=orders.delivered,
        manager_orders=orders.manager,
        employee_orders=orders.employee,
    )
