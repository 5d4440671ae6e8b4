"""Domain errors raised by the service layer.

Services never raise HTTPException; the API maps each kind to a status code
through ``status_code``. These classes do not depend on FastAPI.
"""

from typing import Any, Optional


class DomainError(Exception):
    """Base for business-rule errors."""

    status_code = 500

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class UnauthenticatedError(DomainError):
    """No actor identity, or credentials that do not check out."""

    status_code = 401


class ForbiddenError(DomainError):
    """Actor is known but not allowed to perform the action."""

    status_code = 403


class ValidationError(DomainError):
    """Malformed or semantically invalid input."""

    status_code = 400


class NotFoundError(DomainError):
    """Resource does not exist or does not belong to the actor."""

    status_code = 404


class ConflictError(DomainError):
    """A uniqueness rule would be violated."""

    status_code = 409
