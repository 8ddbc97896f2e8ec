from abc import ABC


class UserError(ABC, Exception):
    """Base class for errors reported back to the API caller.

    Messages of UserError subclasses are shown to the end user, so they
    must not contain sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class AuthenticationError(UserError):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)


class AccessDeniedError(UserError):
    """Raised when a user lacks permission for an operation."""


class ValidationError(UserError):
    """Raised when user input fails validation."""
