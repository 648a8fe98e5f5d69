"""
Error taxonomy.

Services raise these; the handlers in main.py turn them into
HTTP responses. Each carries a status code and a stable
machine-readable code alongside the human-readable message.
"""


class AppError(Exception):
    """Base class for errors the API reports to callers."""

    status_code = 500
    code = "ERROR"
    default_message = "Something went wrong."

    def __init__(self, message: str | None = None, code: str | None = None):
        self.message = message or self.default_message
        if code:
            self.code = code
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Invalid input data."


class AuthError(AppError):
    status_code = 401
    code = "AUTH_ERROR"
    default_message = "Authentication failed."


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Forbidden: insufficient permissions."


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found."


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Resource already exists."


class StoreError(AppError):
    status_code = 500
    code = "STORE_ERROR"
    default_message = "A database operation failed. Please try again or contact support."

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, code)
        if status_code:
            self.status_code = status_code
