"""Transaction scope for ledger operations.

A unit of work runs against ``db.session`` and is committed before the
result is returned. Compare-and-set conflicts (stale ``version`` or a lost
primary-key race) are retried; anything else rolls back, which expires
every object loaded in the session so no cached state outlives a failed
write.
"""

import time
from typing import Any, Callable

from flask import current_app
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm.exc import StaleDataError

from tondrop import db
from .errors import LedgerError, StorageError, StorageTimeout

_TIMEOUT_MARKERS = ('timeout', 'timed out', 'database is locked', 'lock wait')


def _is_timeout(exc: Exception) -> bool:
    if isinstance(exc, PoolTimeoutError):
        return True
    if isinstance(exc, OperationalError):
        text = str(getattr(exc, 'orig', exc)).lower()
        return any(marker in text for marker in _TIMEOUT_MARKERS)
    return False


def run_in_transaction(operation: str, work: Callable[[], Any], retries: int = None) -> Any:
    """Run ``work`` and commit, retrying compare-and-set conflicts up to ``retries`` times."""
    if retries is None:
        retries = int(current_app.config.get('LEDGER_CONFLICT_RETRIES', 3))
    attempts = max(0, retries) + 1
    for attempt in range(attempts):
        try:
            result = work()
            db.session.commit()
            return result
        except LedgerError:
            db.session.rollback()
            raise
        except (StaleDataError, IntegrityError) as exc:
            db.session.rollback()
            if attempt == attempts - 1:
                raise StorageError(operation, f"conflict not resolved after {attempts} attempts") from exc
            current_app.logger.warning(f"[retry] op={operation} attempt={attempt + 1} conflict={type(exc).__name__}")
            time.sleep(0.01 * (2 ** attempt))
        except SQLAlchemyError as exc:
            db.session.rollback()
            if _is_timeout(exc):
                raise StorageTimeout(operation, str(exc)) from exc
            raise StorageError(operation, str(exc)) from exc
        except Exception:
            db.session.rollback()
            raise
