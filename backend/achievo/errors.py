"""Typed service failures.

Every error raised by a service carries a human-readable message naming
the offending value and an HTTP status the boundary layer uses when it
turns the failure into a response.
"""


class ServiceError(Exception):
    """Base class for failures raised by the service layer."""
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ObjectAlreadyExists(ServiceError):
    """A record with the same username or id is already stored."""
    status_code = 409


class ObjectNotFound(ServiceError):
    """Lookup by id or username found nothing."""
    status_code = 404


class IncorrectData(ServiceError):
    """Input is syntactically valid but semantically rejected."""
    status_code = 400


class AccessDenied(ServiceError):
    """The acting principal is not allowed to perform the operation."""
    status_code = 403
