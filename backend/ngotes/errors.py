"""
Exception classes for the notes API.

Every NotesError is converted to the JSON envelope by the handlers
registered in ngotes.main, using its status_code.
"""


class NotesError(Exception):
    """Base exception for all request-level errors."""
    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class Unauthorized(NotesError):
    """Raised when the caller has no valid identity."""
    status_code = 401

    def __init__(self, message: str = "No authorization token provided"):
        super().__init__(message)


class ValidationError(NotesError):
    """Raised when required fields are missing or malformed."""


class UnsupportedOperation(NotesError):
    """Raised for HTTP verbs the notes endpoint does not handle."""

    def __init__(self, method: str):
        super().__init__(f"Invalid HTTP method: {method}")
        self.method = method
