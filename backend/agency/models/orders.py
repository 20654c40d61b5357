from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z
from ..validation import money_to_str
from .catalog import new_id


class OrderLine(db.Model):
    """
    One product within one order.

    An order has no row of its own: it is the set of lines sharing an
    order_id, all written in the same transaction for the same customer.
    unit_price and total_amount are snapshots taken at checkout and never
    change afterwards, so cancelling restores exactly `quantity`.
    """
    __tablename__ = "order_lines"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_order_lines_quantity_positive"),
        db.Index("ix_order_lines_customer_created", "customer_id", "created_at"),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    order_id = db.Column(db.String(36), nullable=False, index=True)
    customer_id = db.Column(
        db.String(36),
        db.ForeignKey("customers.id", ondelete="CASCADE"),
        nullable=False,
    )
    # RESTRICT: a product with order history cannot disappear from under its lines
    product_id = db.Column(
        db.String(36),
        db.ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    # 1-based position of the line within its order, preserves cart order
    line_number = db.Column(db.Integer, nullable=False, default=1)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price = db.Column(db.Numeric(12, 2), nullable=False)
    total_amount = db.Column(db.Numeric(12, 2), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    customer = db.relationship("Customer", back_populates="order_lines")
    product = db.relationship("Product")

    def __repr__(self) -> str:
        return f"<OrderLine order_id={self.order_id} product_id={self.product_id} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "customer_id": self.customer_id,
            "product_id": self.product_id,
            "line_number": self.line_number,
            "quantity": self.quantity,
            "unit_price": money_to_str(self.unit_price),
            "total_amount": money_to_str(self.total_amount),
            "created_at": to_utc_z(self.created_at),
        }
