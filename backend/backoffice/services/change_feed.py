# Overview: Per-collection change notifications raised from committed database writes.

"""
Change feed.

Collects inserted/updated/deleted rows while a session flushes and publishes
one ChangeEvent per row after the transaction commits. A rolled back
transaction publishes nothing. Subscribers are plain callables keyed by
table name; they run synchronously on the committing thread.
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable

from flask import current_app, has_app_context
from sqlalchemy import event

from ..extensions import db


logger = logging.getLogger(__name__)

EVENT_INSERT = "INSERT"
EVENT_UPDATE = "UPDATE"
EVENT_DELETE = "DELETE"

_PENDING_KEY = "backoffice.pending_changes"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event: str
    record_id: Any = None


class Subscription:
    """Handle returned by ChangeFeed.subscribe; call unsubscribe() to release."""

    def __init__(self, feed: "ChangeFeed", table: str, callback: Callable[[ChangeEvent], Any]):
        self.feed = feed
        self.table = table
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.feed._remove(self)
            self.active = False


class ChangeFeed:
    def __init__(self):
        self._subscriptions: dict[str, list[Subscription]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, table: str, callback: Callable[[ChangeEvent], Any]) -> Subscription:
        subscription = Subscription(self, table, callback)
        with self._lock:
            self._subscriptions[table].append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            subs = self._subscriptions.get(subscription.table, [])
            if subscription in subs:
                subs.remove(subscription)

    def subscriber_count(self, table: str | None = None) -> int:
        with self._lock:
            if table is not None:
                return len(self._subscriptions.get(table, []))
            return sum(len(subs) for subs in self._subscriptions.values())

    def publish(self, change: ChangeEvent) -> None:
        with self._lock:
            subscribers = list(self._subscriptions.get(change.table, []))
        for subscription in subscribers:
            try:
                subscription.callback(change)
            except Exception:
                logger.exception("Change subscriber failed for %s %s", change.table, change.event)


def _collect_changes(session, flush_context) -> None:
    pending = session.info.setdefault(_PENDING_KEY, [])
    for obj in session.new:
        pending.append(_describe(obj, EVENT_INSERT))
    for obj in session.dirty:
        if session.is_modified(obj, include_collections=False):
            pending.append(_describe(obj, EVENT_UPDATE))
    for obj in session.deleted:
        pending.append(_describe(obj, EVENT_DELETE))


def _describe(obj, kind: str) -> ChangeEvent:
    table = getattr(obj, "__tablename__", obj.__class__.__name__.lower())
    return ChangeEvent(table=table, event=kind, record_id=getattr(obj, "id", None))


def _publish_changes(session) -> None:
    pending = session.info.pop(_PENDING_KEY, [])
    if not pending or not has_app_context():
        return
    feed = current_app.extensions.get("change_feed")
    if feed is None:
        return
    for change in pending:
        feed.publish(change)


def _discard_changes(session) -> None:
    session.info.pop(_PENDING_KEY, None)


def install_session_hooks() -> None:
    """Attach the flush/commit/rollback listeners once per process."""
    if event.contains(db.session, "after_flush", _collect_changes):
        return
    event.listen(db.session, "after_flush", _collect_changes)
    event.listen(db.session, "after_commit", _publish_changes)
    event.listen(db.session, "after_rollback", _discard_changes)


def get_change_feed() -> ChangeFeed:
    return current_app.extensions["change_feed"]
