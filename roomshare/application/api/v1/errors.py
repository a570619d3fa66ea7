"""Centralized error transformation for API routes.

Maps Roomshare errors (domain and infrastructure) to HTTPException responses.
"""

from typing import Any

from fastapi import HTTPException

from roomshare.domain.shared.error import (
    AuthorizationError,
    ConflictError,
    DomainError,
    InfrastructureError,
    InvalidStateError,
    NotApplicable,
    NotFoundError,
    PostNotAcceptingApplications,
    RoomshareError,
    ValidationError,
)

DOMAIN_ERROR_STATUS_MAP: dict[type[DomainError], int] = {
    NotFoundError: 404,
    ValidationError: 422,
    NotApplicable: 422,
    InvalidStateError: 409,
    ConflictError: 409,
    PostNotAcceptingApplications: 409,
    AuthorizationError: 403,
}


def _status_for(error: DomainError) -> int:
    # Most specific registered base wins (AlreadyTerminal -> InvalidStateError)
    for cls in type(error).__mro__:
        if cls in DOMAIN_ERROR_STATUS_MAP:
            return DOMAIN_ERROR_STATUS_MAP[cls]
    return 400


def map_roomshare_error(error: RoomshareError) -> HTTPException:
    """Map a Roomshare error to an HTTPException.

    Args:
        error: The Roomshare error to map.

    Returns:
        HTTPException with appropriate status code and detail.
    """
    detail: dict[str, Any] = {
        "code": error.code,
        "message": error.message,
    }

    if isinstance(error, InfrastructureError):
        # Infrastructure errors → 503 Service Unavailable
        return HTTPException(status_code=503, detail=detail)

    if isinstance(error, DomainError):
        status_code = _status_for(error)
        if isinstance(error, ValidationError) and error.field is not None:
            detail["field"] = error.field
        # Distinguish 401 (unauthenticated) from 403 (unauthorized)
        if isinstance(error, AuthorizationError) and error.code == "missing_token":
            return HTTPException(
                status_code=401,
                detail=detail,
                headers={"WWW-Authenticate": "Bearer"},
            )
        return HTTPException(status_code=status_code, detail=detail)

    # Fallback for unknown RoomshareError subclasses
    return HTTPException(status_code=500, detail=detail)
