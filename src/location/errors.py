"""
Error taxonomy for location resolution.

Every failure a caller can observe is a LocationError carrying an ErrorKind.
Provider and positioning failures are internal and get translated by the
resolver before they reach a caller.
"""

from enum import Enum, IntEnum
from typing import Optional


class ErrorKind(str, Enum):
    EMPTY_INPUT = "EmptyInput"
    UNSUPPORTED_CAPABILITY = "UnsupportedCapability"
    PERMISSION_DENIED = "PermissionDenied"
    POSITION_UNAVAILABLE = "PositionUnavailable"
    TIMEOUT = "Timeout"
    LOCATION_NOT_FOUND = "LocationNotFound"


USER_MESSAGES = {
    ErrorKind.EMPTY_INPUT: "Please enter a location to search for.",
    ErrorKind.UNSUPPORTED_CAPABILITY: "Your browser does not support geolocation services.",
    ErrorKind.PERMISSION_DENIED: (
        "Location access was denied. Please enable location permissions in your browser."
    ),
    ErrorKind.POSITION_UNAVAILABLE: "Location information is unavailable.",
    ErrorKind.TIMEOUT: "The request to get your location timed out.",
    ErrorKind.LOCATION_NOT_FOUND: "We couldn't find that location. Try a different search.",
}


class LocationError(ValueError):
    """A resolution failure the presentation layer should render."""

    def __init__(self, kind: ErrorKind, message: Optional[str] = None):
        self.kind = kind
        self.user_message = USER_MESSAGES[kind]
        super().__init__(message or self.user_message)


class PositionErrorCode(IntEnum):
    """Platform positioning error codes (W3C Geolocation numbering)."""
    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


_POSITION_ERROR_KINDS = {
    PositionErrorCode.PERMISSION_DENIED: ErrorKind.PERMISSION_DENIED,
    PositionErrorCode.POSITION_UNAVAILABLE: ErrorKind.POSITION_UNAVAILABLE,
    PositionErrorCode.TIMEOUT: ErrorKind.TIMEOUT,
}


class PositioningError(RuntimeError):
    """Raised by a coordinate source with the platform's error code."""

    def __init__(self, code: PositionErrorCode, message: str = ""):
        self.code = PositionErrorCode(code)
        super().__init__(message or self.code.name.lower().replace("_", " "))

    def to_location_error(self) -> LocationError:
        return LocationError(_POSITION_ERROR_KINDS[self.code], str(self))


class ProviderError(RuntimeError):
    """Transport or parse failure inside a geocoding provider."""
