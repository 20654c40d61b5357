# Overview: Per-product available quantity with guarded, race-safe mutation.

"""
Stock ledger invariants:

- products.stock_count never goes below zero.
- stock_count only changes through decrement() and increment(). Both are a
  single UPDATE evaluated by the database; there is no read-then-write.
- decrement() is conditional: WHERE stock_count >= :quantity. When the guard
  fails nothing is written and None is returned. That is a normal outcome,
  not an exception, and the caller must look at the result.
- check_availability() is advisory. It reads current counts outside any
  transaction so callers can fail fast with a combined message; the guarded
  decrement is what actually prevents overselling.
- The list cache is never consulted here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..models import Product


@dataclass(frozen=True)
class StockShortage:
    product_id: str
    requested: int
    available: int

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "requested": self.requested,
            "available": self.available,
        }


def decrement(session: Session, product_id: str, quantity: int) -> Product | None:
    """
    Take `quantity` units out of stock if, and only if, that many are available.

    Returns the refreshed Product, or None when quantity <= 0, the product
    does not exist, or stock is insufficient at the moment the database
    evaluates the UPDATE.
    """
    if quantity <= 0:
        return None
    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.stock_count >= quantity)
        .values(stock_count=Product.stock_count - quantity)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    if result.rowcount != 1:
        return None
    return session.get(Product, product_id, populate_existing=True)


def increment(session: Session, product_id: str, quantity: int) -> Product | None:
    """
    Put `quantity` units back. No upper bound.

    Used by order cancellation only. Returns None when quantity <= 0 or the
    product does not exist.
    """
    if quantity <= 0:
        return None
    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(stock_count=Product.stock_count + quantity)
        .execution_options(synchronize_session=False)
    )
    result = session.execute(stmt)
    if result.rowcount != 1:
        return None
    return session.get(Product, product_id, populate_existing=True)


def get_stock_counts(session: Session, product_ids: Iterable[str]) -> dict[str, int]:
    """Current stock_count per product id; unknown ids are absent from the result."""
    ids = list({pid for pid in product_ids if pid})
    if not ids:
        return {}
    rows = session.execute(
        select(Product.id, Product.stock_count).where(Product.id.in_(ids))
    ).all()
    return {row.id: int(row.stock_count) for row in rows}


def check_availability(session: Session, items: Iterable[dict]) -> list[StockShortage]:
    """
    Report every item whose requested quantity exceeds current stock.

    Items are {"product_id", "quantity"} dicts. Items with an empty product id
    or non-positive quantity are skipped. Unknown products count as zero
    available. Read-only; one query for the whole batch.
    """
    wanted = [
        (item["product_id"], int(item["quantity"]))
        for item in items
        if item.get("product_id") and int(item.get("quantity") or 0) > 0
    ]
    if not wanted:
        return []

    counts = get_stock_counts(session, [pid for pid, _ in wanted])
    shortages = []
    for product_id, requested in wanted:
        available = counts.get(product_id, 0)
        if available < requested:
            shortages.append(StockShortage(product_id, requested, available))
    return shortages
