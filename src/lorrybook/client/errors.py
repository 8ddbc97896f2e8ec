"""Errors raised by the numbering allocator."""


class NumberingClientError(Exception):
    """Base class for allocator failures.

    status_code is set when the backend answered with an error status.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LoadError(NumberingClientError):
    """Configurations could not be fetched from the backend."""


class UpdateError(NumberingClientError):
    """The backend rejected advancing the counter."""


class SaveError(NumberingClientError):
    """The backend rejected a configuration."""


class ConfigNotFoundError(NumberingClientError):
    """No configuration is cached for the requested document type."""
