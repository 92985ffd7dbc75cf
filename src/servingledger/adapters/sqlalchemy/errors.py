"""Translate SQLAlchemy store failures into ledger errors."""

from __future__ import annotations

from contextlib import contextmanager
from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm.exc import StaleDataError

from servingledger.domain.errors import ConflictError, StoreTimeoutError

if TYPE_CHECKING:
    from collections.abc import Iterator

log = getLogger(__name__)

_UNIQUE_MARKERS = ("unique", "duplicate", "primary key")
_TIMEOUT_MARKERS = ("database is locked", "timeout", "timed out", "lock wait")


@contextmanager
def translate_store_errors() -> Iterator[None]:
    """Re-raise concurrency and timeout failures as retryable ledger errors.

    Anything else propagates unchanged.
    """

    try:
        yield
    except StaleDataError as exc:
        log.warning(f"Concurrent update detected: {exc}")
        raise ConflictError("Record was changed by another writer") from exc
    except IntegrityError as exc:
        if not _mentions(exc, _UNIQUE_MARKERS):
            raise
        log.warning(f"Concurrent insert detected: {exc.orig}")
        raise ConflictError("Record was created by another writer") from exc
    except PoolTimeoutError as exc:
        raise StoreTimeoutError("Timed out waiting for a database connection") from exc
    except OperationalError as exc:
        if not _mentions(exc, _TIMEOUT_MARKERS):
            raise
        raise StoreTimeoutError(f"Database did not answer in time: {exc.orig}") from exc


def _mentions(exc: IntegrityError | OperationalError, markers: tuple[str, ...]) -> bool:
    message = str(exc.orig).lower()
    return any(marker in message for marker in markers)
