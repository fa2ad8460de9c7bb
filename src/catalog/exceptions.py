"""Domain errors shared by the catalog layers."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, TypeVar

from sqlalchemy import exc as sa_exc

__all__ = [
    "AppError",
    "InvalidScheduleError",
    "RepositoryError",
    "NotFoundError",
    "IntegrityConstraintViolation",
    "InvalidTransitionError",
    "DatabaseOperationError",
    "ensure_found",
    "handle_sqlalchemy_errors",
]

T = TypeVar("T")


class AppError(Exception):
    """Base class for application specific errors."""


class InvalidScheduleError(AppError):
    """Raised when a requested publication time is unusable."""


class RepositoryError(AppError):
    """Base class for persistence layer failures."""


class NotFoundError(RepositoryError):
    """Raised when a record could not be located."""


class IntegrityConstraintViolation(RepositoryError):
    """Raised when a unique or foreign key constraint rejects a write."""


class InvalidTransitionError(RepositoryError):
    """Raised when a record's status does not allow the requested change."""


class DatabaseOperationError(RepositoryError):
    """Raised for unexpected database errors."""


def ensure_found(record: T | None, *, entity: str, identifier: str) -> T:
    """Return ``record`` or raise :class:`NotFoundError`."""

    if record is None:
        raise NotFoundError(f"{entity} '{identifier}' not found")
    return record


def _prefixed(entity: str | None, message: str) -> str:
    return f"{entity}: {message}" if entity else message


@contextmanager
def handle_sqlalchemy_errors(*, entity: str | None = None) -> Iterator[None]:
    """Re-raise driver errors as repository errors tagged with ``entity``."""

    try:
        yield
    except sa_exc.IntegrityError as exc:
        raise IntegrityConstraintViolation(
            _prefixed(entity, f"integrity constraint violated ({exc.orig})")
        ) from exc
    except sa_exc.DBAPIError as exc:
        raise DatabaseOperationError(
            _prefixed(entity, "database operation failed")
        ) from exc
