"""
Error taxonomy.

- `ValidationError` (and its field-specific subclasses): bad client input, always 400-class.
- `NotFoundError`: an id with no matching place.
- `TransientStorageError`: backing store unreachable or timed out; safe for the caller to retry
  because searches are read-only.
- `LocationError` subclasses: client-side device location failures; never fatal.
"""

from __future__ import annotations

from typing import Any


class HalalMapError(Exception):
    """Base class for all application errors."""


class ValidationError(HalalMapError, ValueError):
    """Input rejected before it reaches the spatial engine."""

    def __init__(self, field: str, message: str, value: Any = None):
        super().__init__(message)
        self.field = field
        self.message = message
        self.value = value

    def as_dict(self) -> dict[str, Any]:
        return {"field": self.field, "message": self.message, "value": self.value}


class InvalidCoordinate(ValidationError):
    pass


class InvalidRadius(ValidationError):
    pass


class InvalidCategory(ValidationError):
    pass


class NotFoundError(HalalMapError):
    def __init__(self, place_id: int):
        super().__init__(f"Place with ID {place_id} not found")
        self.place_id = place_id


class TransientStorageError(HalalMapError):
    """The storage layer failed; the request was not retried."""


class LocationError(HalalMapError):
    """Device location could not be acquired."""

    kind: str = "unknown"
    user_message: str = "Failed to get your location"


class LocationDenied(LocationError):
    kind = "denied"
    user_message = "Location permission denied"


class LocationUnavailable(LocationError):
    kind = "unavailable"
    user_message = "Location information unavailable"


class LocationTimedOut(LocationError):
    kind = "timed_out"
    user_message = "Location request timed out"
