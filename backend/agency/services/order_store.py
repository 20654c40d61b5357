# Overview: Durable storage of order lines grouped by order_id.

from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..models import Customer, OrderLine, Product
from ..time_utils import to_utc_z
from ..validation import money_to_str


def create_order_lines(session: Session, customer_id: str, items: list[dict]) -> list[OrderLine]:
    """
    Insert one row per item under a freshly generated order_id.

    Each item carries product_id, quantity, unit_price and total_amount;
    prices are resolved by the caller, nothing is computed here. Rows are
    flushed (so ids and constraints are checked) but not committed: the
    caller's unit of work owns the transaction.
    """
    customer_id = (customer_id or "").strip()
    rows = [item for item in items if (item.get("product_id") or "").strip() and item.get("quantity", 0) > 0]
    if not customer_id or not rows:
        raise ValueError("customer_id and at least one priced item are required")

    order_id = str(uuid.uuid4())
    lines = []
    for position, item in enumerate(rows, start=1):
        line = OrderLine(
            order_id=order_id,
            customer_id=customer_id,
            product_id=item["product_id"].strip(),
            line_number=position,
            quantity=item["quantity"],
            unit_price=item["unit_price"],
            total_amount=item["total_amount"],
        )
        session.add(line)
        lines.append(line)

    session.flush()
    return lines


def get_lines_by_order_id(session: Session, order_id: str) -> list[OrderLine]:
    """All lines for an order, in cart order. Empty list means no such order."""
    return list(
        session.scalars(
            select(OrderLine)
            .where(OrderLine.order_id == order_id)
            .order_by(OrderLine.line_number.asc(), OrderLine.id.asc())
        )
    )


def delete_by_order_id(session: Session, order_id: str) -> int:
    """Delete every line of an order. Returns the number of rows removed (0 = not found)."""
    result = session.execute(
        delete(OrderLine)
        .where(OrderLine.order_id == order_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount or 0


def list_grouped_by_customer(session: Session) -> list[dict]:
    """
    Reporting view: every order line joined with customer and product names,
    grouped by customer and then by order.

    Each customer group carries the running total over all of its orders;
    each order carries its own total. Customers are ordered by name, orders
    by creation time.
    """
    rows = session.execute(
        select(OrderLine, Customer.name, Product.name)
        .join(Customer, OrderLine.customer_id == Customer.id)
        .join(Product, OrderLine.product_id == Product.id)
        .order_by(
            Customer.name.asc(),
            Customer.id.asc(),
            OrderLine.created_at.asc(),
            OrderLine.order_id.asc(),
            OrderLine.line_number.asc(),
        )
    ).all()

    groups: list[dict] = []
    by_customer: dict[str, dict] = {}
    by_order: dict[str, dict] = {}

    for line, customer_name, product_name in rows:
        group = by_customer.get(line.customer_id)
        if group is None:
            group = {
                "customer_id": line.customer_id,
                "customer_name": customer_name,
                "total_amount": Decimal("0"),
                "orders": [],
            }
            by_customer[line.customer_id] = group
            groups.append(group)

        order = by_order.get(line.order_id)
        if order is None:
            order = {
                "order_id": line.order_id,
                "created_at": to_utc_z(line.created_at),
                "total_amount": Decimal("0"),
                "lines": [],
            }
            by_order[line.order_id] = order
            group["orders"].append(order)

        entry = line.to_dict()
        entry["product_name"] = product_name
        order["lines"].append(entry)

        amount = Decimal(line.total_amount)
        order["total_amount"] += amount
        group["total_amount"] += amount

    for group in groups:
        group["total_amount"] = money_to_str(group["total_amount"])
        for order in group["orders"]:
            order["total_amount"] = money_to_str(order["total_amount"])
    return groups
