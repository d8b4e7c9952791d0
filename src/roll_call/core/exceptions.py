from __future__ import annotations

from .constants import INVALID_CREDENTIALS_MESSAGE


class DomainError(Exception):
    """Base exception for business rule violations.

    Every subclass carries a stable ``code`` and the HTTP status the boundary
    layer answers with.
    """

    code = "domain_error"
    http_status = 400
    retryable = False
    default_message = "Request rejected"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class AuthenticationError(DomainError):
    """Raised when credentials or bearer tokens are not acceptable."""

    code = "authentication_failed"
    http_status = 401
    default_message = "Authentication required"


class InvalidCredentials(AuthenticationError):
    code = "invalid_credentials"
    default_message = INVALID_CREDENTIALS_MESSAGE

    def __init__(self, message: str | None = None):
        # The message never says which half of the credential pair was wrong.
        super().__init__(INVALID_CREDENTIALS_MESSAGE)


class TokenInvalid(AuthenticationError):
    code = "token_invalid"
    default_message = "Token is invalid"


class TokenExpired(AuthenticationError):
    code = "token_expired"
    default_message = "Token has expired"


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    code = "forbidden"
    http_status = 403
    default_message = "Forbidden"


class InsufficientPermissions(AuthorizationError):
    code = "insufficient_permissions"
    default_message = "Insufficient permissions"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "validation_failed"
    http_status = 400
    default_message = "Invalid request"


class InvalidInput(ValidationError):
    code = "invalid_input"


class EventNotFound(ValidationError):
    code = "event_not_found"
    http_status = 404
    default_message = "Roll-call event not found"


class EventExpired(ValidationError):
    code = "event_expired"
    http_status = 410
    default_message = "Roll-call event is no longer accepting attendance"


class NotEnrolled(ValidationError):
    code = "not_enrolled"
    http_status = 403
    default_message = "Participant is not enrolled in this group"


class AlreadyMarked(ValidationError):
    code = "already_marked"
    http_status = 409
    default_message = "Attendance already recorded for this event"


class MalformedPayload(ValidationError):
    code = "malformed_payload"
    default_message = "Session payload is malformed"


class SignatureMismatch(ValidationError):
    code = "signature_mismatch"
    default_message = "Session payload signature mismatch"


class OutsideGeofence(ValidationError):
    code = "outside_geofence"
    http_status = 403
    default_message = "Submission location is outside the event geofence"


class ResourceError(DomainError):
    """Raised when an external resource (the store) cannot serve the call."""

    code = "resource_error"
    http_status = 503
    retryable = True
    default_message = "Service temporarily unavailable"


class Unavailable(ResourceError):
    code = "unavailable"


class DuplicateKeyError(Exception):
    """Store-level uniqueness conflict; repositories raise it, services remap it."""
