from __future__ import annotations


class ServiceError(Exception):
    """Base class for failures a service reports back to its caller."""

    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ServiceError):
    """Missing or malformed input. Nothing was written."""

    default_message = "Invalid input"


class ConflictError(ServiceError):
    """A uniqueness rule was violated, e.g. the username is taken."""

    default_message = "Conflict"


class AuthError(ServiceError):
    """Credential mismatch. The message never says which field was wrong."""

    default_message = "Invalid credentials"

    def __init__(self) -> None:
        super().__init__(self.default_message)


class StorageError(ServiceError):
    """The database is unreachable or a query failed for reasons unrelated to the input."""

    default_message = "Storage unavailable"
