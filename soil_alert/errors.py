"""
Domain exceptions for the soil moisture alert service.

The alert workflow converts these into CheckResult outcomes; HTTP handlers
convert them into error responses.
"""


class SoilAlertError(Exception):
    """Base exception for all application errors."""


class FetchError(SoilAlertError):
    """Sensor endpoint unreachable or returned a malformed payload."""


class ValidationError(SoilAlertError):
    """Phone number does not match the required pattern."""


class PersistenceError(SoilAlertError):
    """Contact store read or write failed."""


class DeliveryError(SoilAlertError):
    """Messaging provider rejected the message or could not be reached."""
