"""
Stock-movement locking and retry.

Every write to a ProductStock row (checkout, sale edits, stock-in and
branch transfers) runs as one unit of work through run_with_retry, and
reads the (product, branch) rows it changes through lock_for_update.
"""

from __future__ import annotations

import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


def lock_for_update(query):
    """
    Lock the ProductStock rows a stock movement is about to change.

    Two registers selling the same tire at one branch then apply their
    decrements one after the other. SQLite has no row locks and relies on
    its database-wide write lock instead.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run a stock movement, starting over when the database reports contention.

    func must redo all of its reads, since the session is rolled back before
    each new attempt. SaleError, TransferError, ReceiveError and other
    rejections propagate on the first attempt; only OperationalError (lock
    timeouts, "database is locked") and StaleDataError are retried, with
    backoff_base * 2**attempt seconds between tries.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    return None
