# Overview: Flask API routes for the record collections; cached reads and validated creates.

from flask import Blueprint, current_app, jsonify, request

from ..services import record_service
from ..services.record_service import RecordConflictError
from ..services.record_store import SqlRecordStore
from ..validation import ValidationError


records_bp = Blueprint("records", __name__, url_prefix="/api")


def _cache():
    return current_app.extensions["request_cache"]


def _cached_list(key: str, loader):
    items = _cache().get_or_load(key, loader)
    return jsonify({"items": items, "count": len(items)}), 200


def _save(fn, label: str, status: int = 201):
    payload = request.get_json(silent=True)
    try:
        record = fn(payload)
        return jsonify(record.to_dict()), status
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except RecordConflictError as exc:
        return jsonify({"error": str(exc)}), 409
    except Exception:
        current_app.logger.exception("Failed to save %s", label)
        return jsonify({"error": "Internal server error"}), 500


@records_bp.get("/products")
def list_products():
    """Active products with their variants, newest first."""
    store = SqlRecordStore()
    return _cached_list("products-active", lambda: store.list_products(active_only=True))


@records_bp.get("/orders")
def list_orders():
    """All orders with line items, newest first."""
    store = SqlRecordStore()
    return _cached_list("orders-all", store.list_orders)


@records_bp.post("/products")
def create_product():
    return _save(record_service.create_product, "product")


@records_bp.post("/orders")
def create_order():
    return _save(record_service.create_order, "order")


@records_bp.patch("/orders/<int:order_id>")
def update_order(order_id: int):
    return _save(lambda payload: record_service.update_order(order_id, payload), "order update", 200)


@records_bp.post("/profits")
def create_profit_entry():
    return _save(record_service.create_profit_entry, "profit entry")


@records_bp.post("/expenses")
def create_expense():
    return _save(record_service.create_expense, "expense")


@records_bp.post("/purchases")
def create_purchase():
    return _save(record_service.create_purchase, "purchase")
