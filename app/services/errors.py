"""Error kinds raised by the service layer.

Services raise these; app/api/errors.py maps each kind to an HTTP status
and a machine-readable error code.  None of them is retried inside the
service layer.
"""

from __future__ import annotations


class ServiceError(Exception):
    error_code = "SERVICE_ERROR"

    def __init__(self, message: str, *, error_code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if error_code is not None:
            self.error_code = error_code


class UnauthenticatedError(ServiceError):
    error_code = "UNAUTHENTICATED"


class ForbiddenError(ServiceError):
    error_code = "FORBIDDEN"


class NotFoundError(ServiceError):
    error_code = "NOT_FOUND"


class ConflictError(ServiceError):
    error_code = "CONFLICT"


class InvalidInputError(ServiceError, ValueError):
    error_code = "INVALID_INPUT"


class ListContractError(AssertionError):
    """A list query reached the orchestrator with parameters validation should
    have rejected.  Deliberately not a ServiceError: it is a programming bug and
    surfaces as a 500.
    """
