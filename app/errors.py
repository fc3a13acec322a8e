"""Error taxonomy shared by services and HTTP handlers."""


class ApiError(Exception):
    """Base error carrying an HTTP status, a client-safe message and optional details."""

    status_code: int = 500
    default_message: str = "Something went wrong"

    def __init__(self, message: str | None = None, errors: list[str] | None = None) -> None:
        self.message = message or self.default_message
        self.errors = errors or []
        super().__init__(self.message)


class BadRequestError(ApiError):
    status_code = 400
    default_message = "Bad request"


class InvalidCredentialError(ApiError):
    status_code = 400
    default_message = "Invalid user credentials"


class UnauthorizedError(ApiError):
    status_code = 401
    default_message = "Unauthorized request"


class ExpiredTokenError(ApiError):
    status_code = 401
    default_message = "Refresh token is expired or used"


class NotFoundError(ApiError):
    status_code = 404
    default_message = "Not found"


class ConflictError(ApiError):
    status_code = 409
    default_message = "Conflict"


class InternalError(ApiError):
    status_code = 500
    default_message = "Internal server error"
