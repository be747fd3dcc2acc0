"""Error taxonomy for backend and service failures.

Every failure talking to the hosted platform is translated into one of these
classes. None of them is fatal: callers surface them as dismissable notices and
roll back any local state they advanced optimistically.
"""

from __future__ import annotations


class BackendError(RuntimeError):
    """Base exception raised for backend-related failures."""

    kind = "backend"


class BackendConnectionError(BackendError):
    """Raised when the platform cannot be reached or fails server-side.

    Transient; no retry is attempted.
    """

    kind = "connection"


class AuthError(BackendError):
    """Raised when credentials are missing, invalid or expired."""

    kind = "auth"


class ForbiddenError(AuthError):
    """Raised when an authenticated user acts on something they do not own."""

    kind = "forbidden"


class ConstraintError(BackendError):
    """Raised when a write is rejected, e.g. a duplicate match edge."""

    kind = "constraint"


class DuplicateMutationError(ConstraintError):
    """Raised when the same increment is attempted twice in one session."""

    kind = "duplicate"


class RecordNotFoundError(BackendError):
    """Raised when a referenced record does not exist."""

    kind = "not_found"


class StorageError(BackendError):
    """Raised when an image or avatar upload fails."""

    kind = "storage"


__all__ = [
    "AuthError",
    "BackendConnectionError",
    "BackendError",
    "ConstraintError",
    "DuplicateMutationError",
    "ForbiddenError",
    "RecordNotFoundError",
    "StorageError",
]
