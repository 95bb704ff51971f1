# Overview: Transaction and retry helpers for read-modify-write operations on documents.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import StorageFailure
from ..extensions import db


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Execute a read-modify-write unit of work and commit it.

    func must do its own reads: on OperationalError (deadlocks, locks) or
    StaleDataError (a concurrent writer bumped version_id first) the session
    is rolled back and func runs again from scratch, so no update is lost.

    Domain errors (InvariantViolation, NotFoundError, ...) roll back and
    propagate immediately. Database errors that survive every attempt are
    raised as StorageFailure.
    """
    if attempts is None:
        attempts = current_app.config.get("CONCURRENCY_RETRY_ATTEMPTS", 3)

    for attempt in range(attempts):
        try:
            result = func()
            db.session.commit()
            return result
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise StorageFailure(str(exc)) from exc
            current_app.logger.warning(
                "Concurrent write conflict, retrying (attempt %d/%d): %s",
                attempt + 1, attempts, exc,
            )
            time.sleep(backoff_base * (2 ** attempt))
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageFailure(str(exc)) from exc
        except Exception:
            db.session.rollback()
            raise
