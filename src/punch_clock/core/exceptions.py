class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class DeviceNotFoundError(ValidationError):
    """Raised when a device id does not match any registered terminal."""


class ConnectivityError(DomainError):
    """Raised when a terminal cannot be reached or stops answering."""


class DeadlineExceeded(ConnectivityError):
    """Raised when a device attempt runs past its per-device deadline."""


class SyncCancelled(ConnectivityError):
    """Raised inside a device attempt after the batch was asked to stop."""


class DataConsistencyError(DomainError):
    """Raised when stored rows contradict a uniqueness rule and cannot be merged."""
