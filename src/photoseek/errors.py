"""Error taxonomy shared by the pipelines, the store and the HTTP layer."""


class PhotoseekError(RuntimeError):
    """Base class for errors raised by photoseek components."""


class ValidationError(PhotoseekError):
    """Raised when caller input is unusable. Surfaced as a client error."""


class ServiceError(PhotoseekError):
    """Raised when the model service is unreachable or answers badly."""


class StorageError(PhotoseekError):
    """Raised when the database or the file store fails to persist data."""


class TimeoutExceeded(PhotoseekError):
    """Raised when a bounded wait on a downstream call expires."""

    def __init__(self, operation: str, seconds: float):
        super().__init__(f"{operation} timed out after {seconds:g}s")
        self.operation = operation
        self.seconds = seconds
