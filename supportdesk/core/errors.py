# supportdesk/core/errors.py
"""Domain errors raised by the services layer.

Each error carries the HTTP status it is surfaced as; ``main.py`` turns them
into ``{"detail": ...}`` responses, the same shape ``HTTPException`` gives.
"""


class DomainError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(DomainError):
    """No usable studio/category, or a rule pointing at missing records."""

    status_code = 400


class IngestionDisabledError(ConfigurationError):
    status_code = 403


class PermissionDeniedError(DomainError):
    status_code = 403


class NotFoundError(DomainError):
    status_code = 404


class ValidationFailedError(DomainError):
    status_code = 400


class ConflictError(DomainError):
    status_code = 409


__all__ = [
    "DomainError",
    "ConfigurationError",
    "IngestionDisabledError",
    "PermissionDeniedError",
    "NotFoundError",
    "ValidationFailedError",
    "ConflictError",
]
