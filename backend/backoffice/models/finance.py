from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


EXPENSE_TYPES = {"operational", "system"}


class ProfitEntry(db.Model):
    """
    Employee profit-share ledger.

    employee_profit is what the business owes the employee who fulfilled the
    order. The financial engine subtracts it from employee-order profit.
    """
    __tablename__ = "profits"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    employee_id = db.Column(db.String(64), nullable=True, index=True)

    profit_amount = db.Column(db.Integer, nullable=True)
    employee_profit = db.Column(db.Integer, nullable=True)
    status = db.Column(db.String(16), nullable=False, default="pending")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "employee_id": self.employee_id,
            "profit_amount": self.profit_amount,
            "employee_profit": self.employee_profit,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }


class Expense(db.Model):
    """
    Cash leaving the business.

    Rows with expense_type "system", the employee-dues category, or a
    goods-purchase related_data category are bookkeeping mirrors of amounts
    already counted elsewhere and are kept out of general expenses.
    """
    __tablename__ = "expenses"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    amount = db.Column(db.Integer, nullable=True)
    category = db.Column(db.String(128), nullable=True, index=True)
    expense_type = db.Column(db.String(32), nullable=False, default="operational")
    description = db.Column(db.Text, nullable=True)
    related_data = db.Column(db.JSON, nullable=True)

    transaction_date = db.Column(db.DateTime(timezone=True), nullable=True, index=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "amount": self.amount,
            "category": self.category,
            "expense_type": self.expense_type,
            "description": self.description,
            "related_data": self.related_data,
            "transaction_date": to_utc_z(self.transaction_date) if self.transaction_date else None,
            "created_at": to_utc_z(self.created_at),
        }


class Purchase(db.Model):
    """Stock purchase from a supplier; paid from the main cash balance."""
    __tablename__ = "purchases"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_number = db.Column(db.String(64), nullable=True, unique=True)
    supplier_name = db.Column(db.String(255), nullable=True)
    total_amount = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_number": self.purchase_number,
            "supplier_name": self.supplier_name,
            "total_amount": self.total_amount,
            "created_at": to_utc_z(self.created_at),
        }
