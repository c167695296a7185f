# Overview: Service-layer operations for concurrency; encapsulates transaction boundaries and retries.

from __future__ import annotations

import time

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..errors import DuplicateKeyError, IntegrationError


def lock_for_update(query):
    """
    Apply row-level locking for stock mutations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_in_transaction(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run a unit of work and commit it as one DB transaction.

    - any exception rolls the session back; nothing partial is committed
    - OperationalError / StaleDataError (locks, deadlocks) are retried with
      exponential backoff
    - IntegrityError surfaces as DuplicateKeyError
    - any other SQLAlchemyError surfaces as IntegrationError
    - domain errors raised by func propagate unchanged
    """
    for attempt in range(attempts):
        try:
            result = func()
            db.session.commit()
            return result
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise IntegrationError("Database is busy, please retry") from exc
            time.sleep(backoff_base * (2 ** attempt))
        except IntegrityError as exc:
            db.session.rollback()
            raise DuplicateKeyError(_integrity_message(exc)) from exc
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise IntegrationError("Database error") from exc
        except Exception:
            db.session.rollback()
            raise


def _integrity_message(exc: IntegrityError) -> str:
    detail = str(getattr(exc, "orig", exc))
    if "UNIQUE" in detail.upper():
        return f"Duplicate value violates a unique constraint ({detail})"
    return f"Constraint violation ({detail})"
