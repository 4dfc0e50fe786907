# Overview: Pytest coverage for the unified financial calculation.

"""
Financial engine tests.

Covers the date filter, order classification, revenue/COGS fallbacks,
profit allocation, expense exclusions, inventory valuation and the
reconciliation identities that must hold for every data set.
"""

import json
import random
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from backoffice.services.financial_engine import (
    DateWindow,
    EngineOptions,
    ExpenseCategories,
    RecordSnapshot,
    classify_orders,
    compute_financials,
    employee_dues,
    general_expenses,
    in_range,
    inventory_value,
    is_general_expense,
    order_cogs,
    order_net_revenue,
    resolve_item_cost,
    resolve_settings,
    total_purchases,
    EMPLOYEE_DUES_CATEGORY,
    GOODS_PURCHASE_CATEGORY,
)
from conftest import make_item, make_order


JANUARY = DateWindow(start=datetime(2024, 1, 1), end=datetime(2024, 1, 31, 23, 59, 59))
ONE_MICROSECOND = timedelta(microseconds=1)


class TestTemporalFilter:

    def test_no_window_includes_everything(self):
        assert in_range("1999-01-01T00:00:00Z", None)
        assert in_range("2099-01-01T00:00:00Z", DateWindow())

    def test_half_open_window_includes_everything(self):
        assert in_range("1999-01-01T00:00:00Z", DateWindow(start=datetime(2024, 1, 1)))
        assert in_range("2099-01-01T00:00:00Z", DateWindow(end=datetime(2024, 1, 31)))

    def test_missing_or_unparseable_timestamp_is_included(self):
        assert in_range(None, JANUARY)
        assert in_range("", JANUARY)
        assert in_range("not-a-date", JANUARY)
        assert in_range(12345, JANUARY)

    def test_bounds_are_inclusive(self):
        assert in_range("2024-01-01T00:00:00Z", JANUARY)
        assert in_range("2024-01-31T23:59:59Z", JANUARY)
        assert in_range(JANUARY.start, JANUARY)
        assert in_range(JANUARY.end, JANUARY)

    def test_one_microsecond_outside_is_excluded(self):
        assert not in_range(JANUARY.start - ONE_MICROSECOND, JANUARY)
        assert not in_range(JANUARY.end + ONE_MICROSECOND, JANUARY)
        assert not in_range("2023-12-31T23:59:59.999999Z", JANUARY)
        assert not in_range("2024-01-31T23:59:59.000001Z", JANUARY)

    def test_offsets_are_normalized_to_utc(self):
        # 02:30 at +03:00 is 23:30 UTC on the previous day
        assert not in_range("2024-01-01T02:30:00+03:00", JANUARY)
        assert in_range("2024-02-01T01:00:00+03:00", JANUARY)


class TestOrderClassifier:

    def test_delivered_requires_status_receipt_and_range(self):
        orders = [
            make_order(1, status="delivered"),
            make_order(2, status="completed"),
            make_order(3, status="shipped"),
            make_order(4, status="delivered", receipt_received=False),
            make_order(5, status="delivered", receipt_received="true"),
            make_order(6, status="delivered", updated_at="2024-03-01T00:00:00Z"),
        ]
        result = classify_orders(orders, JANUARY)
        assert [o["id"] for o in result.delivered] == [1, 2]

    def test_effective_date_falls_back_to_created_at(self):
        order = make_order(1, updated_at=None, created_at="2024-02-10T00:00:00Z")
        assert classify_orders([order], JANUARY).delivered == ()
        assert len(classify_orders([order], None).delivered) == 1

    def test_manager_and_employee_partition(self):
        orders = [
            make_order(1, created_by=None),
            make_order(2, created_by="manager"),
            make_order(3, created_by=""),
            make_order(4, created_by="emp-7"),
            make_order(5, created_by="emp-9"),
        ]
        result = classify_orders(orders)
        assert [o["id"] for o in result.manager] == [1, 2, 3]
        assert [o["id"] for o in result.employee] == [4, 5]

    def test_custom_manager_sentinel(self):
        orders = [make_order(1, created_by="owner"), make_order(2, created_by="manager")]
        result = classify_orders(orders, manager_sentinel="owner")
        assert [o["id"] for o in result.manager] == [1]
        assert [o["id"] for o in result.employee] == [2]

    @pytest.mark.parametrize("seed", range(10))
    def test_classification_is_a_strict_partition(self, seed):
        rng = random.Random(seed)
        orders = [
            make_order(
                i,
                status=rng.choice(["pending", "shipped", "delivered", "completed", "cancelled"]),
                receipt_received=rng.choice([True, False]),
                created_by=rng.choice([None, "manager", "emp-1", "emp-2"]),
                updated_at=rng.choice(["2023-12-15T00:00:00Z", "2024-01-15T00:00:00Z", None]),
            )
            for i in range(40)
        ]
        result = classify_orders(orders, JANUARY)

        delivered_ids = {o["id"] for o in result.delivered}
        manager_ids = {o["id"] for o in result.manager}
        employee_ids = {o["id"] for o in result.employee}
        not_delivered_ids = {o["id"] for o in orders} - delivered_ids

        assert manager_ids.isdisjoint(employee_ids)
        assert manager_ids | employee_ids == delivered_ids
        assert not_delivered_ids.isdisjoint(delivered_ids)

        expected = {
            o["id"] for o in orders
            if o["status"] in ("delivered", "completed")
            and o["receipt_received"] is True
            and in_range(o["updated_at"] or o["created_at"], JANUARY)
        }
        assert delivered_ids == expected

    def test_relative_order_is_preserved(self):
        orders = [make_order(i, created_by="emp" if i % 2 else None) for i in (5, 3, 9, 1, 4)]
        result = classify_orders(orders)
        assert [o["id"] for o in result.delivered] == [5, 3, 9, 1, 4]
        assert [o["id"] for o in result.employee] == [5, 3, 9, 1]
        assert [o["id"] for o in result.manager] == [4]


class TestRevenueAndCogs:

    def test_net_revenue_prefers_final_amount(self):
        assert order_net_revenue(make_order(1, final_amount=105000, total_amount=90000), 5000) == 100000

    def test_net_revenue_falls_back_to_total_then_zero(self):
        assert order_net_revenue(make_order(1, final_amount=None, total_amount=90000), 5000) == 85000
        assert order_net_revenue(make_order(1, final_amount=0, total_amount=90000), 5000) == 85000
        assert order_net_revenue(make_order(1), 5000) == -5000

    def test_delivery_fee_is_flat_per_order(self):
        items = [make_item(3, variant_cost=100), make_item(7, variant_cost=100)]
        assert order_net_revenue(make_order(1, final_amount=20000, items=items), 5000) == 15000

    def test_item_cost_precedence(self):
        assert resolve_item_cost(make_item(1, variant_cost=700, product_cost=500)) == 700
        assert resolve_item_cost(make_item(1, variant_cost=0, product_cost=500)) == 500
        assert resolve_item_cost(make_item(1, product_cost=500)) == 500
        assert resolve_item_cost(make_item(1)) == 0

    def test_order_cogs_sums_quantity_times_cost(self):
        items = [make_item(2, variant_cost=10000), make_item(3, product_cost=4000), make_item(1)]
        assert order_cogs(make_order(1, items=items)) == 32000

    def test_missing_items_contribute_zero_cogs(self):
        order = make_order(1, final_amount=50000)
        order["order_items"] = None
        assert order_cogs(order) == 0
        order["order_items"] = "garbage"
        assert order_cogs(order) == 0

    def test_missing_quantity_counts_as_zero(self):
        item = make_item(None, variant_cost=9000)
        assert order_cogs(make_order(1, items=[item])) == 0

    def test_mixed_numeric_types_combine(self):
        order = make_order(1, final_amount=Decimal("105000"), items=[make_item(2, variant_cost="10000.5")])
        assert order_net_revenue(order, 5000) == 100000
        assert order_cogs(order) == 20001.0

        summary = compute_financials(RecordSnapshot(
            orders=[order],
            settings={"initial_capital": Decimal("1000.25"), "delivery_fee": "5000"},
        ))
        assert summary.manager_profit == 79999.0
        assert summary.main_cash_balance == 1000.25 + 79999.0

    def test_non_finite_decimal_is_ignored(self):
        order = make_order(1, final_amount=Decimal("NaN"), total_amount=Decimal("90000"))
        assert order_net_revenue(order, 5000) == 85000


class TestProfitAllocation:

    def test_dues_only_for_delivered_orders(self):
        delivered = [make_order(1), make_order(2)]
        profits = [
            {"order_id": 1, "employee_profit": 3000},
            {"order_id": 2, "employee_profit": 2000},
            {"order_id": 3, "employee_profit": 9999},
            {"order_id": 1, "employee_profit": None},
        ]
        assert employee_dues(profits, delivered) == 5000

    def test_dues_recheck_linked_order_date(self):
        delivered = [make_order(1, updated_at="2024-02-15T00:00:00Z")]
        profits = [{"order_id": 1, "employee_profit": 3000}]
        assert employee_dues(profits, delivered, JANUARY) == 0
        assert employee_dues(profits, delivered, None) == 3000

    def test_negative_system_profit_is_not_clamped(self):
        order = make_order(
            1, created_by="emp-1", final_amount=30000, items=[make_item(1, variant_cost=5000)]
        )
        snapshot = RecordSnapshot(
            orders=[order],
            profits=[{"order_id": 1, "employee_profit": 30000}],
            settings={"delivery_fee": 5000},
        )
        summary = compute_financials(snapshot)
        assert summary.total_employee_profit == 20000
        assert summary.employee_dues == 30000
        assert summary.system_profit_from_employees == -10000
        assert summary.total_system_profit == -10000

    def test_negative_system_profit_is_logged(self, caplog):
        order = make_order(1, created_by="emp-1", final_amount=6000)
        snapshot = RecordSnapshot(orders=[order], profits=[{"order_id": 1, "employee_profit": 5000}])
        with caplog.at_level("WARNING", logger="backoffice.services.financial_engine"):
            compute_financials(snapshot)
        assert "exceed" in caplog.text


class TestExpensesPurchasesInventory:

    def test_excluded_expense_kinds(self):
        expenses = [
            {"amount": 1000, "expense_type": "operational", "category": "Rent"},
            {"amount": 2000, "expense_type": "system", "category": "Rent"},
            {"amount": 4000, "category": EMPLOYEE_DUES_CATEGORY},
            {"amount": 8000, "category": "Stock", "related_data": {"category": GOODS_PURCHASE_CATEGORY}},
            {"amount": None, "category": "Misc"},
            {"amount": 16000, "category": "Misc", "related_data": "not-a-dict"},
        ]
        assert general_expenses(expenses) == 17000

    def test_system_expense_excluded_regardless_of_amount_or_date(self):
        expense = {"amount": 10 ** 9, "expense_type": "system", "transaction_date": "2024-01-15T00:00:00Z"}
        assert not is_general_expense(expense, JANUARY)
        assert not is_general_expense(expense, None)

    def test_expenses_filtered_by_transaction_date(self):
        expenses = [
            {"amount": 1000, "transaction_date": "2024-01-10T00:00:00Z"},
            {"amount": 2000, "transaction_date": "2024-02-10T00:00:00Z"},
            {"amount": 4000, "transaction_date": None},
        ]
        assert general_expenses(expenses, JANUARY) == 5000

    def test_custom_categories(self):
        categories = ExpenseCategories(employee_dues="Salaries", goods_purchase="Stock")
        expenses = [
            {"amount": 1000, "category": "Salaries"},
            {"amount": 2000, "category": EMPLOYEE_DUES_CATEGORY},
        ]
        assert general_expenses(expenses, None, categories) == 2000

    def test_purchases_have_no_exclusions(self):
        purchases = [
            {"total_amount": 50000, "created_at": "2024-01-02T00:00:00Z"},
            {"total_amount": 25000, "created_at": "2024-02-02T00:00:00Z"},
            {"total_amount": None, "created_at": "2024-01-03T00:00:00Z"},
        ]
        assert total_purchases(purchases, JANUARY) == 50000
        assert total_purchases(purchases) == 75000

    def test_inventory_value(self):
        products = [
            {"cost_price": 1000, "variants": [
                {"quantity": 3, "cost_price": 2000},
                {"quantity": 2, "cost_price": None},
                {"quantity": None, "cost_price": 5000},
            ]},
            {"cost_price": None, "variants": [{"quantity": 4, "cost_price": None}]},
            {"cost_price": 999, "variants": None},
            {"cost_price": 999},
        ]
        assert inventory_value(products) == 8000

    def test_inventory_is_not_date_filtered(self):
        snapshot = RecordSnapshot(products=[{"cost_price": 100, "variants": [{"quantity": 5}]}])
        assert compute_financials(snapshot, JANUARY).inventory_value == 500
        assert compute_financials(snapshot, None).inventory_value == 500


class TestSettings:

    def test_settings_from_records(self):
        rows = [{"key": "initial_capital", "value": 5000000}, {"key": "delivery_fee", "value": 3000}]
        assert resolve_settings(rows) == (5000000, 3000)

    def test_settings_from_mapping_and_strings(self):
        assert resolve_settings({"initial_capital": "250000", "delivery_fee": "2500"}) == (250000, 2500)

    def test_defaults(self):
        assert resolve_settings([]) == (0, 5000)
        assert resolve_settings(None, default_delivery_fee=7000) == (0, 7000)
        assert resolve_settings({"initial_capital": "abc", "delivery_fee": "abc"}) == (0, 5000)

    def test_explicit_zero_delivery_fee_is_honoured(self):
        assert resolve_settings({"delivery_fee": 0}) == (0, 0)


class TestScenarios:

    def test_single_manager_order(self):
        snapshot = RecordSnapshot(
            orders=[make_order(1, final_amount=105000, items=[make_item(2, variant_cost=10000)])],
            settings=[
                {"key": "initial_capital", "value": 5000000},
                {"key": "delivery_fee", "value": 5000},
            ],
        )
        summary = compute_financials(snapshot)

        assert summary.manager_revenue == 100000
        assert summary.manager_cogs == 20000
        assert summary.manager_profit == 80000
        assert summary.employee_revenue == 0
        assert summary.total_system_profit == 80000
        assert summary.general_expenses == 0
        assert summary.total_purchases == 0
        assert summary.net_profit == 80000
        assert summary.main_cash_balance == 5080000
        assert summary.total_assets == 5080000

    def test_mixed_book(self):
        orders = [
            make_order(1, final_amount=105000, items=[make_item(2, variant_cost=10000)]),
            make_order(2, created_by="emp-1", total_amount=65000, items=[make_item(1, product_cost=20000)]),
            make_order(3, status="pending", final_amount=999999),
        ]
        snapshot = RecordSnapshot(
            orders=orders,
            profits=[{"order_id": 2, "employee_profit": 15000}, {"order_id": 3, "employee_profit": 1}],
            expenses=[
                {"amount": 10000, "category": "Rent"},
                {"amount": 15000, "category": EMPLOYEE_DUES_CATEGORY},
            ],
            purchases=[{"total_amount": 30000}],
            products=[{"cost_price": 10000, "variants": [{"quantity": 4}]}],
            settings={"initial_capital": 1000000},
        )
        s = compute_financials(snapshot)

        assert (s.employee_revenue, s.employee_cogs, s.total_employee_profit) == (60000, 20000, 40000)
        assert s.employee_dues == 15000
        assert s.system_profit_from_employees == 25000
        assert s.total_system_profit == 105000
        assert s.total_revenue == 160000
        assert s.total_cogs == 40000
        assert s.gross_profit == 120000
        assert s.net_profit == 95000
        assert s.main_cash_balance == 1065000
        assert s.inventory_value == 40000
        assert s.total_assets == 1105000


def _random_snapshot(rng: random.Random) -> RecordSnapshot:
    def stamp():
        return rng.choice([
            None,
            "2023-12-31T23:59:59Z",
            "2024-01-01T00:00:00Z",
            "2024-01-20T10:00:00Z",
            "2024-01-31T23:59:59Z",
            "2024-02-01T00:00:00Z",
            "garbage",
        ])

    orders = []
    for i in range(rng.randint(0, 30)):
        items = [
            make_item(
                rng.randint(0, 5),
                variant_cost=rng.choice([None, 0, rng.randint(1, 50000)]),
                product_cost=rng.choice([None, rng.randint(1, 50000)]),
            )
            for _ in range(rng.randint(0, 4))
        ]
        orders.append(make_order(
            i,
            status=rng.choice(["pending", "delivered", "completed", "returned"]),
            receipt_received=rng.random() < 0.7,
            created_by=rng.choice([None, "manager", "emp-1", "emp-2"]),
            total_amount=rng.choice([None, rng.randint(0, 200000)]),
            final_amount=rng.choice([None, 0, rng.randint(0, 200000)]),
            updated_at=stamp(),
            created_at=stamp(),
            items=rng.choice([items, None]) if items else items,
        ))
    profits = [
        {"order_id": rng.randint(0, 35), "employee_profit": rng.choice([None, rng.randint(0, 60000)])}
        for _ in range(rng.randint(0, 20))
    ]
    expenses = [
        {
            "amount": rng.choice([None, rng.randint(0, 40000)]),
            "expense_type": rng.choice(["operational", "system", None]),
            "category": rng.choice(["Rent", EMPLOYEE_DUES_CATEGORY, None]),
            "related_data": rng.choice([None, {"category": GOODS_PURCHASE_CATEGORY}, {"category": "x"}]),
            "transaction_date": stamp(),
        }
        for _ in range(rng.randint(0, 15))
    ]
    purchases = [
        {"total_amount": rng.choice([None, rng.randint(0, 90000)]), "created_at": stamp()}
        for _ in range(rng.randint(0, 10))
    ]
    products = [
        {
            "cost_price": rng.choice([None, rng.randint(1, 30000)]),
            "variants": [
                {"quantity": rng.randint(0, 20), "cost_price": rng.choice([None, rng.randint(1, 30000)])}
                for _ in range(rng.randint(0, 3))
            ],
        }
        for _ in range(rng.randint(0, 8))
    ]
    settings = {"initial_capital": rng.randint(0, 10 ** 7), "delivery_fee": rng.choice([None, 2500, 5000])}
    return RecordSnapshot(orders, profits, expenses, purchases, products, settings)


class TestReconciliationIdentities:

    @pytest.mark.parametrize("seed", range(40))
    @pytest.mark.parametrize("window", [None, JANUARY], ids=["no-window", "january"])
    def test_identities_hold(self, seed, window):
        s = compute_financials(_random_snapshot(random.Random(seed)), window)

        assert s.total_system_profit == s.manager_profit + s.system_profit_from_employees
        assert s.net_profit == s.total_system_profit - s.general_expenses
        assert s.main_cash_balance == s.initial_capital + s.net_profit - s.total_purchases
        assert s.total_assets == s.main_cash_balance + s.inventory_value
        assert s.total_revenue == s.manager_revenue + s.employee_revenue
        assert s.total_cogs == s.manager_cogs + s.employee_cogs
        assert s.gross_profit == s.total_revenue - s.total_cogs
        assert s.manager_profit == s.manager_revenue - s.manager_cogs
        assert s.system_profit_from_employees == s.total_employee_profit - s.employee_dues

    @pytest.mark.parametrize("seed", range(10))
    def test_idempotent(self, seed):
        snapshot = _random_snapshot(random.Random(seed))
        first = compute_financials(snapshot, JANUARY).to_dict(include_orders=True)
        second = compute_financials(snapshot, JANUARY).to_dict(include_orders=True)
        assert json.dumps(first, sort_keys=True) == json.dumps(second, sort_keys=True)


class TestPublishedShape:

    def test_to_dict_keys(self):
        data = compute_financials(RecordSnapshot()).to_dict()
        assert set(data) == {
            "totalRevenue", "managerRevenue", "employeeRevenue",
            "totalCOGS", "managerCOGS", "employeeCOGS", "grossProfit",
            "managerProfit", "totalEmployeeProfit", "employeeDues",
            "systemProfitFromEmployees", "totalSystemProfit", "netProfit",
            "generalExpenses", "totalPurchases", "inventoryValue",
            "mainCashBalance", "totalAssets", "deliveryFee", "initialCapital",
            "deliveredOrdersCount", "managerOrdersCount", "employeeOrdersCount",
        }

    def test_to_dict_with_orders(self):
        snapshot = RecordSnapshot(orders=[make_order(1), make_order(2, created_by="emp")])
        data = compute_financials(snapshot).to_dict(include_orders=True)
        assert [o["id"] for o in data["deliveredOrders"]] == [1, 2]
        assert [o["id"] for o in data["managerOrders"]] == [1]
        assert [o["id"] for o in data["employeeOrders"]] == [2]

    def test_options_from_config(self):
        options = EngineOptions.from_config({
            "DEFAULT_DELIVERY_FEE": 7000,
            "MANAGER_SENTINEL": "owner",
            "EMPLOYEE_DUES_CATEGORY": "Dues",
            "GOODS_PURCHASE_CATEGORY": "Goods",
            "SYSTEM_EXPENSE_TYPE": "internal",
        })
        assert options.default_delivery_fee == 7000
        assert options.manager_sentinel == "owner"
        assert options.categories.employee_dues == "Dues"
        assert options.categories.goods_purchase == "Goods"
        assert options.categories.system_type == "internal"
