"""Custom exceptions for themevault."""

from typing import Optional


class ThemeVaultError(Exception):
    """Base class for every error raised by the sync/versioning core."""

    code = "error"

    def __init__(self, message: str, *, theme_name: Optional[str] = None):
        self.message = message
        self.theme_name = theme_name
        super().__init__(message)


class NotFoundError(ThemeVaultError):
    """Raised when a theme, file path or version does not exist."""

    code = "not_found"


class ThemeIOError(ThemeVaultError):
    """Raised when a theme directory or file cannot be read."""

    code = "io_error"

    def __init__(
        self,
        message: str,
        *,
        theme_name: Optional[str] = None,
        file_path: Optional[str] = None,
    ):
        self.file_path = file_path
        super().__init__(message, theme_name=theme_name)


class StorageError(ThemeVaultError):
    """Raised when the underlying data store fails."""

    code = "storage_error"


class ConflictError(ThemeVaultError):
    """Raised when concurrent activation or sync contention could not be resolved."""

    code = "conflict"


class ValidationError(ThemeVaultError):
    """Raised for malformed theme names, file paths or manifests."""

    code = "validation_error"


class SyncCancelledError(ThemeVaultError):
    """Raised when a sync pass is aborted before it commits."""

    code = "cancelled"
