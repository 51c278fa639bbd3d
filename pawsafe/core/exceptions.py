"""
PawSafe - Exceptions
Failure taxonomy shared by the store, sync and consensus layers.
"""

from typing import Optional


class PawSafeError(Exception):
    """Base class for all PawSafe errors."""


class StoreIOError(PawSafeError):
    """Local persistence failed; the current operation was aborted."""


class RemoteUnavailable(PawSafeError):
    """The remote store could not be reached or refused the request."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class MigrationFailure(PawSafeError):
    """A schema migration failed and was rolled back."""

    def __init__(self, version: int, cause: Exception):
        super().__init__(f"Schema migration to v{version} failed: {cause}")
        self.version = version
        self.cause = cause
