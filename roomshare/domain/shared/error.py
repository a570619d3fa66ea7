"""Error hierarchy for Roomshare.

Error layers:
- RoomshareError: Base class for all Roomshare errors
- DomainError: Business rule violations, validation failures (4xx responses)
- InfrastructureError: System-level failures like storage/network issues (503 responses)

These errors are mapped to HTTP responses by the global exception handler in app.py.
"""


class RoomshareError(Exception):
    """Base class for all Roomshare errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(message)


# =============================================================================
# Domain Errors (business logic violations - typically 4xx)
# =============================================================================


class DomainError(RoomshareError):
    """Base class for domain/business errors."""


class NotFoundError(DomainError):
    """Resource not found."""


class ValidationError(DomainError):
    """Input validation failed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field


class InvalidStateError(DomainError):
    """Operation not allowed in current state."""


class InvalidTransition(InvalidStateError):
    """Action is not a legal edge from the application's current state."""


class AlreadyTerminal(InvalidTransition):
    """Action submitted after the application reached a terminal state.

    User-visible no-op: the record is left untouched.
    """


class NotApplicable(DomainError):
    """Landlord action on an application for an external (non-platform) room."""


class ConflictError(DomainError):
    """Resource already exists or version conflict."""


class ConcurrentModification(ConflictError):
    """Compare-and-swap on version failed; caller must re-read and retry."""


class PostNotAcceptingApplications(DomainError):
    """Seeking post is closed, inactive or expired."""


class AuthorizationError(DomainError):
    """User not authorized for this operation."""


class Forbidden(AuthorizationError):
    """Actor is not the party required for the requested role."""


# =============================================================================
# Infrastructure Errors (system-level failures - typically 503)
# =============================================================================


class InfrastructureError(RoomshareError):
    """Base class for infrastructure/system errors."""


class StorageUnavailableError(InfrastructureError):
    """Storage backend (database) is unavailable."""


class ExternalServiceError(InfrastructureError):
    """External collaborator (listings, rentals, messaging) is unavailable or failed."""


class ProvisioningFailed(ExternalServiceError):
    """Rental creation failed; the next idempotent confirm retries it."""


class ConfigurationError(InfrastructureError):
    """System misconfiguration detected."""
