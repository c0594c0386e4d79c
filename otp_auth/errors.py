class OtpAuthError(Exception):
    """Base class for failures the API reports to callers."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.public_message)

    @property
    def detail(self) -> str:
        return str(self)


class ValidationError(OtpAuthError):
    status_code = 400
    public_message = "Invalid request"


class AuthenticationError(OtpAuthError):
    status_code = 401
    public_message = "Unauthorized"


class NotFoundError(OtpAuthError):
    status_code = 404
    public_message = "Not found"


class ConflictError(OtpAuthError):
    """Unique constraint hit; recovered by the caller, never rendered."""

    status_code = 409
    public_message = "Conflict"


class RateLimitedError(OtpAuthError):
    status_code = 429
    public_message = "Rate limit exceeded"


class InternalError(OtpAuthError):
    """Store, entropy or signing failure.

    The message is for logs only; clients always get ``public_message``.
    """

    @property
    def detail(self) -> str:
        return self.public_message


class GenerationError(InternalError):
    pass
