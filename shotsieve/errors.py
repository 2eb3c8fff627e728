"""
Exception types for shotsieve.

Per-asset failures (SignatureError, BitmapUnavailableError) are caught by the
batch scanner and the asset is skipped. Session failures (QuotaExceededError,
DeletionError and its subclasses) are raised to the caller and leave the
engine state untouched.
"""

from __future__ import annotations

from typing import Optional


class ShotSieveError(Exception):
    """Base class for all shotsieve errors."""


class SignatureError(ShotSieveError):
    """Raised when a signature cannot be computed from a bitmap."""


class BitmapUnavailableError(ShotSieveError):
    """Raised by bitmap providers when an asset cannot be decoded."""


class QuotaExceededError(ShotSieveError):
    """Raised by advance() when today's finalization quota is used up."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(
            f"Daily limit of {limit} finalized groups reached. Try again after midnight."
        )


class DeletionError(ShotSieveError):
    """Base class for bucket deletion failures."""

    code = 'deletion_failed'


class EmptyBucketError(DeletionError):
    """Nothing has been finalized into the bucket yet."""

    code = 'empty_bucket'

    def __init__(self, message: str = "There are no photos in the bucket."):
        super().__init__(message)


class UnauthorizedError(DeletionError):
    """The deleter lacks the rights to remove the assets."""

    code = 'unauthorized'

    def __init__(self, message: str = "Not allowed to delete photos from this library."):
        super().__init__(message)


class ChangesFailedError(DeletionError):
    """The deleter itself failed."""

    code = 'changes_failed'

    def __init__(self, cause: Optional[BaseException] = None):
        self.cause = cause
        if cause is not None and str(cause):
            message = f"Deletion failed: {cause}"
        else:
            message = "Deletion failed. Please try again later."
        super().__init__(message)


__all__ = [
    'ShotSieveError',
    'SignatureError',
    'BitmapUnavailableError',
    'QuotaExceededError',
    'DeletionError',
    'EmptyBucketError',
    'UnauthorizedError',
    'ChangesFailedError',
]
