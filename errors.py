class NoorError(Exception):
    """Base class for errors raised by the sync core."""


class StorageError(NoorError):
    """Local persistence failed (locked, corrupt, quota exceeded)."""


class NetworkError(NoorError):
    """A cloud adapter call could not be completed."""


class RemoteError(NetworkError):
    """The cloud backend answered with an error."""


class ValidationError(NoorError, ValueError):
    """Caller input was rejected before any storage write."""


class ConflictError(StorageError):
    """A write violated a uniqueness or foreign-key constraint."""
