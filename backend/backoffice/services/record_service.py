# Overview: Service-layer writes for the record collections; validates payloads and commits.

"""
Record writes.

These are the record-store operations the rest of the back office uses to
create and update orders, profit entries, expenses, purchases and products.
The financial engine never calls them; it only reads.
"""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import (
    Order,
    OrderItem,
    ProfitEntry,
    Expense,
    Purchase,
    Product,
    ProductVariant,
    ORDER_STATUSES,
    EXPENSE_TYPES,
)
from ..validation import (
    ModelValidationPolicy,
    ValidationError,
    validate_payload,
    enforce_choice,
)


class RecordConflictError(ValueError):
    """409-level conflict (duplicate order/purchase number, barcode...)."""


ORDER_POLICY = ModelValidationPolicy(
    writable_fields={
        "order_number", "customer_name", "status", "created_by",
        "total_amount", "final_amount", "receipt_received", "created_at", "updated_at",
    },
    required_on_create={"total_amount"},
    amount_fields={"total_amount", "final_amount"},
)

ORDER_ITEM_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "variant_id", "quantity", "unit_price"},
    required_on_create={"quantity"},
    amount_fields={"unit_price"},
)

PROFIT_POLICY = ModelValidationPolicy(
    writable_fields={"order_id", "employee_id", "profit_amount", "employee_profit", "status", "created_at"},
    required_on_create={"order_id", "employee_profit"},
)

EXPENSE_POLICY = ModelValidationPolicy(
    writable_fields={
        "amount", "category", "expense_type", "description", "related_data", "transaction_date",
    },
    required_on_create={"amount"},
    amount_fields={"amount"},
)

PURCHASE_POLICY = ModelValidationPolicy(
    writable_fields={"purchase_number", "supplier_name", "total_amount", "created_at"},
    required_on_create={"total_amount"},
    amount_fields={"total_amount"},
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "barcode", "cost_price", "base_price", "is_active"},
    required_on_create={"name"},
    amount_fields={"cost_price", "base_price"},
)

VARIANT_POLICY = ModelValidationPolicy(
    writable_fields={"sku", "color", "size", "quantity", "cost_price", "price"},
    required_on_create=set(),
    amount_fields={"cost_price", "price"},
)


def _commit(conflict_message: str) -> None:
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise RecordConflictError(conflict_message)


def _split_nested(payload: dict, key: str) -> tuple[dict, list]:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    nested = payload.pop(key, None) or []
    if not isinstance(nested, list):
        raise ValidationError(f"{key} must be a list")
    return payload, nested


def create_order(payload: dict) -> Order:
    payload, raw_items = _split_nested(payload, "order_items")
    patch = validate_payload(model=Order, payload=payload, policy=ORDER_POLICY, partial=False)
    enforce_choice("status", patch.get("status"), ORDER_STATUSES)

    order = Order(**patch)
    for raw in raw_items:
        item_patch = validate_payload(model=OrderItem, payload=raw, policy=ORDER_ITEM_POLICY, partial=False)
        if item_patch.get("quantity") is not None and item_patch["quantity"] <= 0:
            raise ValidationError("quantity must be > 0")
        if item_patch.get("variant_id") is None and item_patch.get("product_id") is None:
            raise ValidationError("order item needs product_id or variant_id")
        _check_item_refs(item_patch)
        order.items.append(OrderItem(**item_patch))

    db.session.add(order)
    _commit("Order number already exists")
    return order


def _check_item_refs(item_patch: dict) -> None:
    variant_id = item_patch.get("variant_id")
    if variant_id is not None:
        variant = db.session.get(ProductVariant, variant_id)
        if variant is None:
            raise ValidationError(f"Variant {variant_id} not found")
        # Keep the product link so cost falls back to the product price
        item_patch.setdefault("product_id", variant.product_id)
    product_id = item_patch.get("product_id")
    if product_id is not None and db.session.get(Product, product_id) is None:
        raise ValidationError(f"Product {product_id} not found")


def update_order(order_id: int, payload: dict) -> Order:
    order = db.session.get(Order, order_id)
    if order is None:
        raise ValidationError("Order not found")
    patch = validate_payload(model=Order, payload=payload, policy=ORDER_POLICY, partial=True)
    enforce_choice("status", patch.get("status"), ORDER_STATUSES)
    for k, v in patch.items():
        setattr(order, k, v)
    _commit("Order number already exists")
    return order


def create_profit_entry(payload: dict) -> ProfitEntry:
    patch = validate_payload(model=ProfitEntry, payload=payload, policy=PROFIT_POLICY, partial=False)
    if db.session.get(Order, patch["order_id"]) is None:
        raise ValidationError("Order not found")
    entry = ProfitEntry(**patch)
    db.session.add(entry)
    _commit("Profit entry conflicts with an existing row")
    return entry


def create_expense(payload: dict) -> Expense:
    patch = validate_payload(model=Expense, payload=payload, policy=EXPENSE_POLICY, partial=False)
    enforce_choice("expense_type", patch.get("expense_type"), EXPENSE_TYPES)
    related = patch.get("related_data")
    if related is not None and not isinstance(related, dict):
        raise ValidationError("related_data must be an object")
    expense = Expense(**patch)
    db.session.add(expense)
    _commit("Expense conflicts with an existing row")
    return expense


def create_purchase(payload: dict) -> Purchase:
    patch = validate_payload(model=Purchase, payload=payload, policy=PURCHASE_POLICY, partial=False)
    purchase = Purchase(**patch)
    db.session.add(purchase)
    _commit("Purchase number already exists")
    return purchase


def create_product(payload: dict) -> Product:
    payload, raw_variants = _split_nested(payload, "variants")
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    product = Product(**patch)
    for raw in raw_variants:
        variant_patch = validate_payload(model=ProductVariant, payload=raw, policy=VARIANT_POLICY, partial=False)
        if variant_patch.get("quantity") is not None and variant_patch["quantity"] < 0:
            raise ValidationError("quantity must be >= 0")
        product.variants.append(ProductVariant(**variant_patch))
    db.session.add(product)
    _commit("Barcode already exists")
    return product


def set_variant_stock(variant_id: int, quantity: int) -> ProductVariant:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise ValidationError("quantity must be a non-negative integer")
    variant = db.session.get(ProductVariant, variant_id)
    if variant is None:
        raise ValidationError("Variant not found")
    variant.quantity = quantity
    _commit("Variant update conflict")
    return variant
