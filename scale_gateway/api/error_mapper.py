"""
Map gateway exceptions and outcomes to HTTP status codes.
"""

from typing import Tuple

from scale_gateway.protocol.outcomes import ErrorOutcome, ErrorReason, SessionOutcome
from scale_gateway.utils.exceptions import (
    DeviceNotFoundError,
    MissingParameterError,
    OutOfRangeValueError,
    ScaleGatewayException,
)


HTTP_OK = 200
HTTP_BAD_REQUEST = 400
HTTP_NOT_FOUND = 404
HTTP_INTERNAL_ERROR = 500


def map_exception_to_http(exception: Exception) -> Tuple[int, str]:
    """
    Map exception to HTTP status code and error message.

    Args:
        exception: Python exception.

    Returns:
        Tuple of (status_code, message).
    """
    if isinstance(exception, DeviceNotFoundError):
        return (HTTP_NOT_FOUND, str(exception))

    if isinstance(exception, (MissingParameterError, OutOfRangeValueError)):
        return (HTTP_BAD_REQUEST, str(exception))

    if isinstance(exception, ScaleGatewayException):
        return (HTTP_INTERNAL_ERROR, str(exception))

    return (HTTP_INTERNAL_ERROR, f"Internal error: {type(exception).__name__}: {exception}")


def outcome_status_code(outcome: SessionOutcome) -> int:
    """
    HTTP status for a device operation outcome.

    Device-side failures (timeouts, transport errors, unrecognized replies)
    are reported with 200 and an error payload; only requests rejected
    before reaching the device are client errors.
    """
    if isinstance(outcome, ErrorOutcome) and outcome.reason is ErrorReason.OUT_OF_RANGE:
        return HTTP_BAD_REQUEST
    return HTTP_OK
