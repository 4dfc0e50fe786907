# backend/backoffice/routes/system.py
"""
System health endpoint.

Reports whether the financial path can run: record counts and engine
settings come from the database, and the change feed that drives live
refreshes must be wired up.
"""

import time

from flask import Blueprint, current_app

from ..extensions import db
from ..models import Order, ProfitEntry, Expense, Purchase, Product, Setting
from ..services.live_financials import WATCHED_TABLES
from backoffice.time_utils import utcnow

system_bp = Blueprint("system", __name__)

COUNTED_MODELS = (
    ("orders", Order),
    ("profits", ProfitEntry),
    ("expenses", Expense),
    ("purchases", Purchase),
    ("products", Product),
)


def _elapsed_ms(started: float) -> float:
    return round((time.time() - started) * 1000, 2)


def check_record_store() -> dict:
    """Every collection the engine reads must answer a count."""
    started = time.time()
    try:
        counts = {name: db.session.query(model).count() for name, model in COUNTED_MODELS}
    except Exception:
        current_app.logger.exception("Record store health check failed")
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(started), "error": "Database error"}
    return {"status": "healthy", "latency_ms": _elapsed_ms(started), "details": counts}


def check_financial_settings() -> dict:
    """Missing initial_capital still computes (as 0) but is reported as degraded."""
    try:
        keys = {row.key for row in db.session.query(Setting.key).all()}
    except Exception:
        current_app.logger.exception("Settings health check failed")
        return {"status": "unhealthy", "error": "Database error"}
    has_capital = "initial_capital" in keys
    return {
        "status": "healthy" if has_capital else "degraded",
        "details": {
            "initial_capital_configured": has_capital,
            "delivery_fee_configured": "delivery_fee" in keys,
        },
    }


def check_change_feed() -> dict:
    feed = current_app.extensions.get("change_feed")
    if feed is None:
        return {"status": "unhealthy", "error": "Change feed not configured"}
    return {
        "status": "healthy",
        "details": {
            "subscribers": feed.subscriber_count(),
            "live_watchers": {table: feed.subscriber_count(table) for table in WATCHED_TABLES},
        },
    }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy, or degraded (e.g. initial capital not set yet)
    - 503: any check unhealthy
    """
    started = time.time()
    checks = {
        "database": check_record_store(),
        "settings": check_financial_settings(),
        "change_feed": check_change_feed(),
    }

    statuses = {check["status"] for check in checks.values()}
    if "unhealthy" in statuses:
        overall, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall, http_status = "degraded", 200
    else:
        overall, http_status = "healthy", 200

    return {
        "status": overall,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": _elapsed_ms(started),
        "checks": checks,
    }, http_status
