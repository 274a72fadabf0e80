from typing import Optional


class CASError(Exception):
    """Base class for everything raised by casauth."""


class ConfigurationError(CASError, ValueError):
    """Bad strategy options. Raised at construction, never per request."""


class ValidationFailure(CASError):
    pass


class TransportError(ValidationFailure):
    """The validation endpoint could not be reached or answered with an HTTP error."""


class MalformedResponseError(ValidationFailure):
    def __init__(self, message: str = "The response from the server was bad"):
        super().__init__(message)


class ProtocolRejection(ValidationFailure):
    """The CAS server explicitly refused the ticket."""

    def __init__(self, message: str = "Authentication failed", code: Optional[str] = None):
        super().__init__(message)
        self.code = code
