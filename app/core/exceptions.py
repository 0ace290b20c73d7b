"""
Domain error taxonomy.

Services raise these errors; the API layer maps them to HTTP responses.
"""


class AppError(Exception):
    """Base class for every error raised by the invoicing core."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Malformed or semantically invalid input."""


class NotFoundError(AppError):
    """
    Entity does not exist or is not owned by the resolved tenant.

    Cross-tenant access is reported as not-found so that the existence
    of another tenant's records is never revealed.
    """


class ConflictError(AppError):
    """A concurrent write changed the record since it was read."""


class StorageError(AppError):
    """The underlying persistence layer failed."""


class AuthenticationError(AppError):
    """The caller credential could not be resolved to a tenant."""
