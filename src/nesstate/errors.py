class NesStateError(Exception):
    """Base exception for the nesstate package."""


class PersistenceFailure(NesStateError):
    """Raised when a backing transaction cannot commit (save, prune or delete)."""


class SchemaVersionError(PersistenceFailure):
    """Raised when a snapshot database was written by a newer schema."""


class SnapshotDecodeError(NesStateError):
    """Raised when stored snapshot rows cannot be rebuilt into state objects."""


class InvalidCartridgeImage(NesStateError):
    """Raised when a cartridge image is required to be valid but is not."""
