"""Errors raised by the notification engine."""


class NotificationError(Exception):
    """Base class for notification engine failures."""


class NotFoundError(NotificationError, LookupError):
    """The targeted record does not exist or belongs to somebody else."""


class ValidationError(NotificationError, ValueError):
    """A value supplied to the engine is malformed or missing."""


class ConflictError(NotificationError):
    """A uniqueness constraint rejected the write."""


class StorageError(NotificationError):
    """The underlying persistence layer failed."""


__all__ = [
    "NotificationError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "StorageError",
]
