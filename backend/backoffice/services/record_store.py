# Overview: Read access to the six record collections the financial engine consumes.

from __future__ import annotations

import json
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Order, ProfitEntry, Expense, Purchase, Product, Setting
from .financial_engine import RecordSnapshot


COLLECTIONS = ("orders", "profits", "expenses", "purchases", "products", "settings")


class FinancialDataError(Exception):
    """Raised when a required record collection cannot be read."""
    pass


class RecordStore(Protocol):
    def list_orders(self) -> list[dict]: ...
    def list_profits(self) -> list[dict]: ...
    def list_expenses(self) -> list[dict]: ...
    def list_purchases(self) -> list[dict]: ...
    def list_products(self) -> list[dict]: ...
    def list_settings(self) -> list[dict]: ...
    def update_setting(self, key: str, value: Any) -> dict: ...


class SqlRecordStore:
    """
    RecordStore backed by the application database.

    When constructed with an app, every call runs inside its own app context
    so the store can be read from worker threads.
    """

    def __init__(self, app=None):
        self._app = app

    def _run(self, fn):
        if self._app is None:
            return fn()
        with self._app.app_context():
            return fn()

    def list_orders(self) -> list[dict]:
        def _op():
            rows = db.session.query(Order).order_by(Order.created_at.desc(), Order.id.desc()).all()
            return [row.to_dict() for row in rows]
        return self._run(_op)

    def list_profits(self) -> list[dict]:
        def _op():
            rows = db.session.query(ProfitEntry).order_by(ProfitEntry.id.asc()).all()
            return [row.to_dict() for row in rows]
        return self._run(_op)

    def list_expenses(self) -> list[dict]:
        def _op():
            rows = db.session.query(Expense).order_by(Expense.id.asc()).all()
            return [row.to_dict() for row in rows]
        return self._run(_op)

    def list_purchases(self) -> list[dict]:
        def _op():
            rows = db.session.query(Purchase).order_by(Purchase.id.asc()).all()
            return [row.to_dict() for row in rows]
        return self._run(_op)

    def list_products(self, *, active_only: bool = False) -> list[dict]:
        def _op():
            query = db.session.query(Product)
            if active_only:
                query = query.filter(Product.is_active.is_(True))
            rows = query.order_by(Product.created_at.desc(), Product.id.desc()).all()
            return [row.to_dict() for row in rows]
        return self._run(_op)

    def list_settings(self) -> list[dict]:
        def _op():
            rows = db.session.query(Setting).order_by(Setting.key.asc()).all()
            return [row.to_dict() for row in rows]
        return self._run(_op)

    def update_setting(self, key: str, value: Any) -> dict:
        """Upsert a setting and commit. The only write on the financial path."""
        def _op():
            setting = db.session.query(Setting).filter_by(key=key).first()
            if setting is None:
                setting = Setting(key=key)
                db.session.add(setting)
            setting.value = json.dumps(value)
            try:
                db.session.commit()
            except SQLAlchemyError:
                db.session.rollback()
                raise
            return setting.to_dict()
        return self._run(_op)


def read_snapshot(store: RecordStore) -> RecordSnapshot:
    """
    Read all six collections one after another.

    Any failing read aborts the whole snapshot with FinancialDataError.
    """
    try:
        return RecordSnapshot(
            orders=store.list_orders(),
            profits=store.list_profits(),
            expenses=store.list_expenses(),
            purchases=store.list_purchases(),
            products=store.list_products(),
            settings=store.list_settings(),
        )
    except FinancialDataError:
        raise
    except Exception as exc:
        raise FinancialDataError(str(exc) or exc.__class__.__name__) from exc
