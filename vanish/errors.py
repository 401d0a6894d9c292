class VanishError(Exception):
    """Base exception for all errors raised by the notes core."""

    pass


class ValidationError(VanishError):
    """Exception raised when input has the wrong shape or is out of range.

    The message is user-correctable and is surfaced to the caller verbatim.
    """

    pass


class UnauthorizedError(VanishError):
    """Exception raised when an action requires an authenticated user."""

    pass


class NotFoundError(VanishError):
    """Exception raised when an operation targets a missing entity."""

    pass


class StorageUnavailableError(VanishError):
    """Exception raised when the backing store cannot complete an operation."""

    pass
