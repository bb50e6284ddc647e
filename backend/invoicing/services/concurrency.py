# Overview: Retry and row-locking helpers for branch list writes.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Branch


def lock_branch(branch_id: str) -> Branch | None:
    """
    Load a branch row for a read-modify-write of its invoice id lists.

    SELECT ... FOR UPDATE on databases that support it; SQLite ignores the
    lock and the Branch version_id check catches the lost update instead.
    """
    return (
        db.session.query(Branch)
        .filter(Branch.id == branch_id)
        .with_for_update()
        .populate_existing()
        .first()
    )


def run_with_retry(func, *, label: str, attempts: int = 3, backoff_base: float = 0.05):
    """
    Run a write that may collide with a concurrent one.

    Retries on OperationalError (locks, deadlocks) and StaleDataError (a
    version_id mismatch). The session is rolled back before each retry so
    func reloads fresh rows.
    """
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt == attempts:
                raise
            current_app.logger.warning(
                "%s collided with a concurrent write (attempt %s/%s): %s",
                label, attempt, attempts, exc.__class__.__name__,
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))
