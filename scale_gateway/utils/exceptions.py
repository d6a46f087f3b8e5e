"""
Custom exception classes for the scale gateway.
"""


class ScaleGatewayException(Exception):
    """Base exception for all scale gateway errors."""
    pass


class TransportError(ScaleGatewayException):
    """TCP connect, write or read failure (never retried)."""
    pass


class ResponseTimeoutError(ScaleGatewayException):
    """No classifiable response arrived before the session deadline."""

    def __init__(self, message: str, partial: bytes = b""):
        super().__init__(message)
        self.partial = partial


class OutOfRangeValueError(ScaleGatewayException, ValueError):
    """Preset tare value outside the 0.0 - 30.0 kg hardware range."""
    pass


class DeviceNotFoundError(ScaleGatewayException):
    """No device in the directory matches the requested identifier."""
    pass


class MissingParameterError(ScaleGatewayException):
    """A required request parameter was not supplied."""
    pass
