# Overview: Service-layer entry points for the unified financial calculation (one-shot path).

from __future__ import annotations

import logging
from typing import Any

from flask import current_app

from .financial_engine import DateWindow, EngineOptions, FinancialSummary, compute_financials, resolve_settings
from .record_store import FinancialDataError, RecordStore, SqlRecordStore, read_snapshot
from ..time_utils import utcnow, to_utc_z


logger = logging.getLogger(__name__)

FAILURE_DETAILS = "Failed to calculate unified financial data"
CAPITAL_KEY = "initial_capital"


def engine_options() -> EngineOptions:
    return EngineOptions.from_config(current_app.config)


def calculate(
    *,
    window: DateWindow | None = None,
    store: RecordStore | None = None,
    options: EngineOptions | None = None,
) -> FinancialSummary:
    """Read every collection, then compute. No state is kept between calls."""
    store = store or SqlRecordStore()
    snapshot = read_snapshot(store)
    return compute_financials(snapshot, window, options or engine_options())


def unified_report(
    *,
    window: DateWindow | None = None,
    user_id: Any = None,
    store: RecordStore | None = None,
    include_orders: bool = False,
) -> dict:
    logger.info("Computing unified financial calculations (user=%s, window=%s)", user_id, window)
    summary = calculate(window=window, store=store)
    report = summary.to_dict(include_orders=include_orders)
    report["dateRange"] = window.to_dict() if window else None
    report["calculatedAt"] = to_utc_z(utcnow())
    return report


def get_initial_capital(store: RecordStore | None = None) -> int | float:
    store = store or SqlRecordStore()
    try:
        settings = store.list_settings()
    except Exception as exc:
        raise FinancialDataError(str(exc) or exc.__class__.__name__) from exc
    capital, _ = resolve_settings(settings)
    return capital


def update_capital(
    value: int | float,
    *,
    window: DateWindow | None = None,
    store: RecordStore | None = None,
) -> dict:
    """
    Write initial_capital, then recompute from a fresh read.

    The write and the re-read are not one transaction; a concurrent reader
    may see the new capital before this call returns.
    """
    store = store or SqlRecordStore()
    try:
        store.update_setting(CAPITAL_KEY, value)
    except Exception as exc:
        raise FinancialDataError(str(exc) or exc.__class__.__name__) from exc
    logger.info("Initial capital updated to %s", value)
    return unified_report(window=window, store=store)
