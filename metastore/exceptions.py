"""Custom exception classes for the metadata service."""


class MetastoreError(Exception):
    """
    Base exception class for all metadata service errors.
    """
    code = "METASTORE_ERROR"

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class ValidationError(MetastoreError):
    """
    Raised when input is malformed or a precondition is violated.
    Always the caller's fault; never retried.
    """
    code = "VALIDATION_ERROR"


class DuplicateVersionError(ValidationError):
    """
    Raised when a version number already exists for a file.
    """
    code = "DUPLICATE_VERSION"


class NotFoundError(MetastoreError):
    """
    Raised when a referenced metadata record, version or resolution is absent.
    """
    code = "RESOURCE_NOT_FOUND"


class ConflictError(MetastoreError):
    """
    Raised when a version conflict cannot be settled automatically,
    or when a write loses against a concurrent writer.
    """
    code = "CONFLICT_ERROR"


class StrategyPreconditionError(ValidationError, ConflictError):
    """
    Raised when a resolution strategy's precondition is not met.
    """
    code = "STRATEGY_PRECONDITION_FAILED"


class StorageError(MetastoreError):
    """
    Raised when the underlying store fails. The sqlite cause is chained.
    """
    code = "STORAGE_ERROR"
