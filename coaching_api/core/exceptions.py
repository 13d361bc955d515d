"""
Custom exceptions for the Coaching API.
Provides consistent error handling across the application.

Services raise these typed errors; the handler registered in ``main``
maps each one to its HTTP status code.
"""
from fastapi import status


class CoachingAPIException(Exception):
    """Base exception for the Coaching API"""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(self.message)


class NotFoundError(CoachingAPIException):
    """Resource not found"""
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, resource: str = "Resource", resource_id: str = None):
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        super().__init__(message)


class ConflictError(CoachingAPIException):
    """Write would violate a uniqueness or scheduling rule"""
    status_code = status.HTTP_409_CONFLICT


class AlreadyExistsError(ConflictError):
    """Resource already exists"""
    def __init__(self, resource: str = "Resource", field: str = None, value: str = None):
        if field and value:
            message = f"{resource} with {field} '{value}' already exists"
        else:
            message = f"{resource} already exists"
        super().__init__(message)


class UnauthorizedError(CoachingAPIException):
    """Authentication failed"""
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message)


class ForbiddenError(CoachingAPIException):
    """Access denied"""
    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "You don't have permission to access this resource"):
        super().__init__(message)


class BadRequestError(CoachingAPIException):
    """Request is well-formed but cannot be processed"""
    status_code = status.HTTP_400_BAD_REQUEST


class ValidationError(BadRequestError):
    """Validation failed"""
    def __init__(self, message: str = "Validation failed", field: str = None):
        if field:
            message = f"Validation failed for field '{field}': {message}"
        super().__init__(message)


# Statement-style helpers used by the services
def raise_not_found(resource: str = "Resource", resource_id: str = None):
    """Raise 404"""
    raise NotFoundError(resource, resource_id)


def raise_already_exists(resource: str = "Resource", field: str = None, value: str = None):
    """Raise 409 for duplicate"""
    raise AlreadyExistsError(resource, field, value)


def raise_conflict(message: str):
    """Raise 409"""
    raise ConflictError(message)


def raise_unauthorized(message: str = "Could not validate credentials"):
    """Raise 401"""
    raise UnauthorizedError(message)


def raise_forbidden(message: str = "You don't have permission to access this resource"):
    """Raise 403"""
    raise ForbiddenError(message)


def raise_bad_request(message: str):
    """Raise 400"""
    raise BadRequestError(message)


def raise_validation_error(message: str = "Validation failed", field: str = None):
    """Raise 400 for a failed business validation"""
    raise ValidationError(message, field)
