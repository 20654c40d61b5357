# Overview: Transaction boundary and retry helpers shared by the order workflow.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    One explicit database transaction around a group of store operations.

    Commits when the block exits cleanly, rolls back on any exception and
    re-raises it. A read-only snapshot left open by earlier queries on the
    same session is closed first so the block always starts fresh.

        with UnitOfWork(db.session) as uow:
            order_store.create_order_lines(uow.session, ...)
            stock_ledger.decrement(uow.session, ...)
    """

    def __init__(self, session: Session):
        self.session = session
        self.committed = False

    def __enter__(self) -> "UnitOfWork":
        # Closes a snapshot autobegun by earlier reads; no-op otherwise
        self.session.commit()
        self.session.begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.session.commit()
            self.committed = True
        else:
            self.session.rollback()
        return False


def run_with_retry(session: Session, func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a transactional operation, retrying on concurrency-related failures.

    Retries on OperationalError (lock timeouts, deadlocks) and StaleDataError.
    Business outcomes raised by `func` (insufficient stock, not found) are
    never retried.
    """
    attempts = max(attempts, 1)
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            if attempt >= attempts - 1:
                raise
            delay = backoff_base * (2 ** attempt)
            logger.warning(
                "Transaction conflict (%s), retrying in %.2fs (attempt %d/%d)",
                type(exc).__name__, delay, attempt + 1, attempts,
            )
            time.sleep(delay)
