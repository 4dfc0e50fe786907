"""
Pytest fixtures for back office tests.

Provides test database setup, record builders and test client.
"""

import json
from datetime import datetime

import pytest
from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import Setting


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        app.extensions["request_cache"].clear()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def set_setting(db_session):
    """Upsert a settings row: set_setting("initial_capital", 5_000_000)."""
    def _set(key, value):
        row = db_session.query(Setting).filter_by(key=key).first()
        if row is None:
            row = Setting(key=key)
            db_session.add(row)
        row.value = json.dumps(value)
        db_session.commit()
        return row
    return _set


# ---------------------------------------------------------------------------
# Plain record builders (the to_dict() shape the engine consumes)
# ---------------------------------------------------------------------------

def make_item(quantity=1, variant_cost=None, product_cost=None):
    return {
        "quantity": quantity,
        "product_variants": {"cost_price": variant_cost, "price": None} if variant_cost is not None else None,
        "products": {"cost_price": product_cost, "base_price": None} if product_cost is not None else None,
    }


def make_order(
    order_id,
    *,
    status="delivered",
    receipt_received=True,
    created_by=None,
    total_amount=None,
    final_amount=None,
    updated_at="2024-01-15T12:00:00Z",
    created_at="2024-01-10T09:00:00Z",
    items=None,
):
    return {
        "id": order_id,
        "status": status,
        "receipt_received": receipt_received,
        "created_by": created_by,
        "total_amount": total_amount,
        "final_amount": final_amount,
        "updated_at": updated_at,
        "created_at": created_at,
        "order_items": items if items is not None else [],
    }


def dt(value: str) -> datetime:
    return datetime.fromisoformat(value)
