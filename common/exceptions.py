"""Custom exception classes for the ingestion engine and its adapters."""


class FiledockException(Exception):
    """
    Base exception class for all filedock errors.
    """
    pass


class ConfigurationMissingError(FiledockException):
    """
    Raised when the upload destination (URL or preset) is not configured.
    """
    pass


class TransferFailedError(FiledockException):
    """
    Raised when an upload to the object store does not succeed.
    """
    pass


class StoreError(FiledockException):
    """
    Base class for metadata store failures.
    """
    pass


class StoreUnavailable(StoreError):
    """
    Raised when the metadata store cannot be reached or refuses service.
    """
    pass


class ValidationRejected(StoreError):
    """
    Raised when the metadata store rejects a record payload.
    """
    pass


class RecordNotFound(StoreError):
    """
    Raised when a metadata record to delete does not exist.
    """
    pass
