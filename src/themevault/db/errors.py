"""Translate SQLAlchemy errors into themevault errors."""

from typing import Optional

from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError

from themevault.exceptions import ConflictError, StorageError, ThemeVaultError

# deadlock detected, serialization failure, lock not available, query canceled (lock_timeout)
_CONFLICT_PGCODES = {"40P01", "40001", "55P03", "57014"}
_CONFLICT_CLASS_NAMES = {
    "DeadlockDetected",
    "SerializationFailure",
    "LockNotAvailable",
    "QueryCanceled",
}


def is_deadlock_error(exc: BaseException) -> bool:
    """Check whether a database error is lock contention that is worth retrying."""
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    pgcode = getattr(orig, "pgcode", None)
    if pgcode in _CONFLICT_PGCODES:
        return True
    if orig.__class__.__name__ in _CONFLICT_CLASS_NAMES:
        return True
    # SQLite reports a busy writer lock as OperationalError
    return isinstance(exc, OperationalError) and "database is locked" in str(orig)


def translate_db_error(
    exc: SQLAlchemyError,
    theme_name: Optional[str] = None,
    integrity_is_conflict: bool = False,
) -> ThemeVaultError:
    """
    Map a SQLAlchemy error to ConflictError or StorageError.

    Args:
        exc: The database error
        theme_name: Theme the operation was for
        integrity_is_conflict: Treat unique violations as contention (activation)

    Returns:
        The error to raise
    """
    if is_deadlock_error(exc) or (integrity_is_conflict and isinstance(exc, IntegrityError)):
        return ConflictError(
            f"Concurrent update conflict: {exc.__class__.__name__}: {exc}",
            theme_name=theme_name,
        )
    return StorageError(
        f"Database error: {exc.__class__.__name__}: {exc}", theme_name=theme_name
    )
