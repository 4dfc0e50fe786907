from __future__ import annotations

from ..extensions import db
from backoffice.time_utils import to_utc_z


ORDER_STATUSES = {
    "pending",
    "processing",
    "shipped",
    "delivered",
    "completed",
    "cancelled",
    "returned",
}


class Order(db.Model):
    """
    Customer order.

    created_by holds the employee who took the order. NULL (or the manager
    sentinel) means the order was placed by the manager and all of its profit
    stays with the business.

    receipt_received flips to True once the courier's invoice has been
    reconciled; only then does a delivered order count as revenue.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_status_updated", "status", "updated_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(64), nullable=True, unique=True)
    customer_name = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    created_by = db.Column(db.String(64), nullable=True, index=True)

    # Amounts in the smallest currency unit
    total_amount = db.Column(db.Integer, nullable=True)
    final_amount = db.Column(db.Integer, nullable=True)

    receipt_received = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=True,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    items = db.relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "customer_name": self.customer_name,
            "status": self.status,
            "created_by": self.created_by,
            "total_amount": self.total_amount,
            "final_amount": self.final_amount,
            "receipt_received": bool(self.receipt_received),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at) if self.updated_at else None,
            "order_items": [item.to_dict() for item in self.items],
        }


class OrderItem(db.Model):
    """
    Line item on an order.

    to_dict() embeds the variant and product cost/price so the financial
    engine can resolve cost of goods without further lookups.
    """
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=True, index=True)
    variant_id = db.Column(db.Integer, db.ForeignKey("product_variants.id"), nullable=True, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(db.Integer, nullable=True)

    order = db.relationship("Order", back_populates="items")
    product = db.relationship("Product", lazy="joined")
    variant = db.relationship("ProductVariant", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "product_variants": (
                {"cost_price": self.variant.cost_price, "price": self.variant.price}
                if self.variant is not None else None
            ),
            "products": (
                {"cost_price": self.product.cost_price, "base_price": self.product.base_price}
                if self.product is not None else None
            ),
        }
