"""Workflow errors surfaced to the operator."""


class ServiceError(Exception):
    """Base exception for service-mode workflow errors."""

    def __init__(self, kind: str, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message


class ValidationError(ServiceError):
    """Raised when a save or commit is rejected because of operator input."""

    EMPTY_ID = "empty-id"
    MISSING_DEPTH = "missing-depth"
    DUPLICATE_ID = "duplicate-id"
    EMPTY_SELECTION = "empty-selection"


class CapabilityError(ServiceError):
    """Raised when an environment capability (geolocation) cannot be used."""

    GEOLOCATION_UNAVAILABLE = "geolocation-unavailable"
    GEOLOCATION_DENIED_OR_TIMEOUT = "geolocation-denied-or-timeout"

    def __init__(self, kind: str, message: str, reason: str = None):
        super().__init__(kind, message)
        self.reason = reason
