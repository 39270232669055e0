"""Errors raised by the storage services and the template cloner."""


class StorageError(Exception):
    """Base class for failures reported by a storage service.

    ``progress`` is filled in by :func:`clone_tree` when the failure aborts a
    clone, so callers can see how much of the destination tree was written.
    """

    progress = None


class NotFound(StorageError):
    """A folder or file id does not resolve to an accessible entry."""


class PermissionDenied(StorageError):
    """The storage service refused read or write access."""


class TransientServiceError(StorageError):
    """Network, quota or other service failure. Never retried."""


class NameConflict(StorageError):
    """The backend cannot hold two siblings with the same name."""


class InvalidName(StorageError):
    """The backend cannot store an entry under the requested name."""
