# Overview: Live, change-refreshed financial aggregator (the interactive path).

"""
LiveFinancialSystem keeps an up-to-date FinancialSummary for long-lived
consumers (dashboards, the CLI watcher, background jobs).

State machine:
    loading -> ready   all six collections read successfully
    loading -> error   a read or the calculation failed (previous summary is kept)
    ready/error -> loading   refresh() or a change on a watched collection

Only orders, profits, expenses, purchases and settings are watched. Product
and variant changes do not trigger a refresh; inventory value catches up on
the next refresh from any other source.

Refreshes are neither coalesced nor cancelled. Overlapping refreshes each
write their result when they finish, so the last one to finish wins.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from .change_feed import ChangeEvent, ChangeFeed, Subscription
from .financial_engine import DateWindow, EngineOptions, FinancialSummary, RecordSnapshot, compute_financials
from .record_store import COLLECTIONS, FinancialDataError, RecordStore


logger = logging.getLogger(__name__)

WATCHED_TABLES = ("orders", "profits", "expenses", "purchases", "settings")
FAILURE_MESSAGE = "Failed to load financial data"
CAPITAL_KEY = "initial_capital"


class FinancialState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class UpdateResult:
    success: bool
    error: str | None = None


class LiveFinancialSystem:
    def __init__(
        self,
        store: RecordStore,
        feed: ChangeFeed | None = None,
        *,
        window: DateWindow | None = None,
        options: EngineOptions | None = None,
        max_workers: int = len(COLLECTIONS),
    ):
        self.store = store
        self.feed = feed
        self.window = window
        self.options = options or EngineOptions()

        self.state = FinancialState.LOADING
        self.error: str | None = None
        self.summary: FinancialSummary | None = None
        self.snapshot: RecordSnapshot | None = None

        self._subscriptions: list[Subscription] = []
        self._listeners: list[Callable[["LiveFinancialSystem"], Any]] = []
        self._max_workers = max_workers

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> "LiveFinancialSystem":
        if self.feed is not None and not self._subscriptions:
            self._subscriptions = [self.feed.subscribe(table, self._on_change) for table in WATCHED_TABLES]
        self.refresh()
        return self

    def stop(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []

    def __enter__(self) -> "LiveFinancialSystem":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    @property
    def subscribed_tables(self) -> tuple[str, ...]:
        return tuple(s.table for s in self._subscriptions)

    # -- listeners ---------------------------------------------------------

    def add_listener(self, callback: Callable[["LiveFinancialSystem"], Any]) -> Callable[[], None]:
        self._listeners.append(callback)

        def _remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _remove

    def _set_state(self, state: FinancialState) -> None:
        self.state = state
        for callback in list(self._listeners):
            try:
                callback(self)
            except Exception:
                logger.exception("Financial listener failed")

    # -- data --------------------------------------------------------------

    def _fetch(self) -> RecordSnapshot:
        # All six reads are in flight together; one failure fails the batch.
        results = {}
        failures = []
        with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="financial-fetch") as pool:
            futures = {name: pool.submit(getattr(self.store, f"list_{name}")) for name in COLLECTIONS}
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                except Exception as exc:
                    failures.append((name, exc))
        if failures:
            name, exc = failures[0]
            raise FinancialDataError(f"{name}: {exc}") from exc
        return RecordSnapshot(**{name: results[name] or [] for name in COLLECTIONS})

    def refresh(self) -> bool:
        self.error = None
        self._set_state(FinancialState.LOADING)
        try:
            snapshot = self._fetch()
            summary = compute_financials(snapshot, self.window, self.options)
        except FinancialDataError as exc:
            logger.warning("%s: %s", FAILURE_MESSAGE, exc)
            return self._fail(str(exc))
        except Exception as exc:
            logger.exception("Financial calculation failed")
            return self._fail(str(exc))

        self.snapshot = snapshot
        self.summary = summary
        self._set_state(FinancialState.READY)
        return True

    def _fail(self, error: str) -> bool:
        self.error = error
        self._set_state(FinancialState.ERROR)
        return False

    def _on_change(self, change: ChangeEvent) -> None:
        logger.debug("Refreshing financials after %s on %s", change.event, change.table)
        self.refresh()

    def set_date_window(self, window: DateWindow | None) -> None:
        """Change the reporting window; recomputes from the last snapshot without a refetch."""
        self.window = window
        if self.snapshot is not None:
            self.summary = compute_financials(self.snapshot, window, self.options)
            self._set_state(self.state)

    def update_capital(self, value: int | float) -> UpdateResult:
        try:
            self.store.update_setting(CAPITAL_KEY, value)
        except Exception as exc:
            logger.warning("Failed to update initial capital: %s", exc)
            return UpdateResult(success=False, error=str(exc))
        self.refresh()
        return UpdateResult(success=True)

    # -- publishing --------------------------------------------------------

    @property
    def loading(self) -> bool:
        return self.state is FinancialState.LOADING

    def to_dict(self) -> dict:
        data = {
            "state": self.state.value,
            "loading": self.loading,
            "error": self.error,
            "message": FAILURE_MESSAGE if self.state is FinancialState.ERROR else None,
        }
        if self.summary is not None:
            data.update(self.summary.to_dict(include_orders=True))
        return data
