"""Exceptions raised by the census ingestion pipeline and read services."""


class CensusError(Exception):
    """Base class for census errors."""

    pass


class MalformedPayloadError(CensusError):
    """Raised when a stored payload cannot be inflated or parsed."""

    pass


class InvariantViolation(CensusError):
    """Raised when a decomposition post-condition does not hold.

    Aborts the transaction of the result being processed; other results in
    the same cycle are unaffected.
    """

    pass


class ResultNotFoundError(CensusError, LookupError):
    """Raised when a raw result id does not exist."""

    def __init__(self, result_id: int):
        super().__init__(f"Result not found: {result_id}")
        self.result_id = result_id


class DeviceNotFoundError(CensusError, LookupError):
    """Raised when a device id does not exist."""

    def __init__(self, device_id: int):
        super().__init__(f"Device not found: {device_id}")
        self.device_id = device_id


class AccessDeniedError(CensusError):
    """Raised when the shared-secret check fails in production mode."""

    pass
