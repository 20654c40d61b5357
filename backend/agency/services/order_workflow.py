"""
Order workflow - turns a cart into a durable order without overselling.

Create:
  normalise cart -> validate -> advisory stock pre-check (no transaction)
  -> resolve prices from the product rows -> one transaction that inserts
  the order lines and runs a guarded decrement per product -> commit
  -> invalidate cached product lists.

Cancel:
  one transaction that loads the order's lines, deletes them, and only when
  this transaction removed every line restores each line's quantity -> commit
  -> invalidate cached product lists. A concurrent cancel of the same order
  deletes nothing and reports not-found, so stock is restored exactly once.

WHY the pre-check is not enough: two checkouts can both pass it and then
race. The guarded decrement is re-evaluated by the database inside the
transaction, so the loser sees a failed guard, the whole transaction rolls
back, and the caller is told to retry. Never drop the guard on the grounds
that the pre-check already passed.

Prices are read once, before the transaction begins. A price edited while a
checkout is in flight is not re-validated; the order keeps the price read
at pre-check time.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Customer, Product
from ..validation import clean_text, coerce_quantity, round_money
from . import order_store, stock_ledger
from .concurrency import UnitOfWork, run_with_retry
from .list_cache import CacheKeys, ListCache
from .stock_ledger import StockShortage

logger = logging.getLogger(__name__)


class OrderError(Exception):
    """Raised for order operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class OrderValidationError(OrderError):
    """Malformed or missing input; rejected before touching the store."""


class OrderNotFoundError(OrderError):
    """No lines exist for the requested order_id."""


class ProductNotFoundError(OrderError):
    """One or more product ids in the cart do not exist."""


class CustomerNotFoundError(OrderError):
    """The customer id does not exist."""


class InsufficientStockError(OrderError):
    """
    Expected business outcome, not a fault.

    `retry` is False when the advisory pre-check caught the shortage and True
    when the guarded decrement lost a race inside the transaction.
    """
    def __init__(self, message: str, shortages: list[StockShortage], retry: bool = False):
        super().__init__(message, details={
            "insufficient": [s.to_dict() for s in shortages],
            "retry": retry,
        })
        self.shortages = shortages
        self.retry = retry


def normalize_items(raw_items) -> list[dict]:
    """
    Clean a cart into [{"product_id", "quantity"}] with one entry per product.

    Items without a product id or with a non-positive quantity are dropped.
    Duplicate product ids are merged by summing their quantities; the first
    occurrence decides the position.
    """
    merged: dict[str, int] = {}
    for raw in raw_items or []:
        if not isinstance(raw, dict):
            continue
        product_id = clean_text(raw.get("product_id"))
        quantity = coerce_quantity(raw.get("quantity"))
        if not product_id or quantity <= 0:
            continue
        merged[product_id] = merged.get(product_id, 0) + quantity
    return [{"product_id": pid, "quantity": qty} for pid, qty in merged.items()]


class OrderWorkflow:
    """
    Order create/cancel orchestration over an injected session and list cache.

    The unit of work factory is injectable so tests can observe or replace
    the transaction boundary.
    """

    def __init__(
        self,
        session: Session,
        cache: ListCache | None = None,
        keys: CacheKeys | None = None,
        *,
        unit_of_work=UnitOfWork,
        commit_attempts: int = 3,
        backoff_base: float = 0.1,
    ):
        self.session = session
        self.cache = cache or ListCache(None)
        self.keys = keys or CacheKeys()
        self.unit_of_work = unit_of_work
        self.commit_attempts = commit_attempts
        self.backoff_base = backoff_base

    # -- read paths -----------------------------------------------------

    def check_stock(self, raw_items) -> dict:
        """Advisory availability check. Never fails; empty input is ok."""
        items = normalize_items(raw_items if isinstance(raw_items, list) else [])
        shortages = stock_ledger.check_availability(self.session, items)
        return {
            "ok": not shortages,
            "insufficient": [s.to_dict() for s in shortages],
        }

    def get_order(self, order_id: str) -> dict:
        order_id = clean_text(order_id)
        if not order_id:
            raise OrderValidationError("order_id is required")
        lines = order_store.get_lines_by_order_id(self.session, order_id)
        if not lines:
            raise OrderNotFoundError("Order not found", details={"order_id": order_id})
        return {
            "order_id": order_id,
            "customer_id": lines[0].customer_id,
            "lines": [line.to_dict() for line in lines],
        }

    def list_orders_by_customer(self) -> list[dict]:
        return order_store.list_grouped_by_customer(self.session)

    # -- create ---------------------------------------------------------

    def create_order(self, customer_id, raw_items) -> dict:
        customer_id = clean_text(customer_id)
        if not customer_id:
            raise OrderValidationError("customer_id is required")
        if not isinstance(raw_items, list) or not raw_items:
            raise OrderValidationError(
                "items array with at least one { product_id, quantity } is required"
            )

        items = normalize_items(raw_items)
        if not items:
            raise OrderValidationError("At least one item must have product_id and quantity > 0")

        if self.session.get(Customer, customer_id) is None:
            raise CustomerNotFoundError("Customer not found", details={"customer_id": customer_id})

        prices = self._resolve_prices([item["product_id"] for item in items])

        shortages = stock_ledger.check_availability(self.session, items)
        if shortages:
            raise InsufficientStockError("Insufficient stock", shortages)

        priced = []
        for item in items:
            unit_price = round_money(Decimal(prices[item["product_id"]]))
            priced.append({
                "product_id": item["product_id"],
                "quantity": item["quantity"],
                "unit_price": unit_price,
                "total_amount": round_money(unit_price * item["quantity"]),
            })

        def _op():
            with self.unit_of_work(self.session) as uow:
                lines = order_store.create_order_lines(uow.session, customer_id, priced)
                for item in priced:
                    updated = stock_ledger.decrement(uow.session, item["product_id"], item["quantity"])
                    if updated is None:
                        available = stock_ledger.get_stock_counts(
                            uow.session, [item["product_id"]]
                        ).get(item["product_id"], 0)
                        logger.warning(
                            "Stock recheck failed for product %s (requested %d, available %d); rolling back",
                            item["product_id"], item["quantity"], available,
                        )
                        raise InsufficientStockError(
                            "Insufficient stock (recheck failed). Please try again.",
                            [StockShortage(item["product_id"], item["quantity"], available)],
                            retry=True,
                        )
                return lines[0].order_id, [line.to_dict() for line in lines]

        order_id, lines = run_with_retry(
            self.session, _op,
            attempts=self.commit_attempts, backoff_base=self.backoff_base,
        )

        logger.info("Order %s created for customer %s with %d line(s)", order_id, customer_id, len(lines))
        self._invalidate_product_lists()
        return {"order_id": order_id, "lines": lines}

    def _resolve_prices(self, product_ids: list[str]) -> dict[str, Decimal]:
        rows = self.session.execute(
            select(Product.id, Product.price).where(Product.id.in_(product_ids))
        ).all()
        prices = {row.id: row.price for row in rows}
        missing = [pid for pid in product_ids if pid not in prices]
        if missing:
            raise ProductNotFoundError(
                f"Product not found: {', '.join(missing)}",
                details={"product_ids": missing},
            )
        return prices

    # -- cancel ---------------------------------------------------------

    def cancel_order(self, order_id) -> dict:
        order_id = clean_text(order_id)
        if not order_id:
            raise OrderValidationError("order_id is required")

        def _op():
            with self.unit_of_work(self.session) as uow:
                lines = order_store.get_lines_by_order_id(uow.session, order_id)
                if not lines:
                    raise OrderNotFoundError("Order not found", details={"order_id": order_id})

                # The delete decides which cancel wins; restore only for the winner
                deleted = order_store.delete_by_order_id(uow.session, order_id)
                if deleted != len(lines):
                    logger.warning(
                        "Order %s changed during cancel (read %d line(s), deleted %d); rolling back",
                        order_id, len(lines), deleted,
                    )
                    raise OrderNotFoundError("Order not found", details={"order_id": order_id})

                for line in lines:
                    restored = stock_ledger.increment(uow.session, line.product_id, line.quantity)
                    if restored is None:
                        raise ProductNotFoundError(
                            f"Product not found: {line.product_id}",
                            details={"product_ids": [line.product_id]},
                        )
                return len(lines)

        line_count = run_with_retry(
            self.session, _op,
            attempts=self.commit_attempts, backoff_base=self.backoff_base,
        )

        logger.info("Order %s cancelled, stock restored for %d line(s)", order_id, line_count)
        self._invalidate_product_lists()
        return {"cancelled": True, "order_id": order_id}

    def _invalidate_product_lists(self) -> None:
        # After commit and outside the transaction; ListCache never raises
        self.cache.invalidate_by_prefix(self.keys.product_prefix)
