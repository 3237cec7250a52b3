from typing import Any, Optional


class PlatformError(Exception):
    """Base class for failures talking to, or interpreting, the compliance platform."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ApiError(PlatformError):
    def __init__(self, status_code: Optional[int], message: str, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class AuthenticationError(ApiError):
    def __init__(self, message: str = "Session expired, please log in again"):
        super().__init__(401, message)


class ResponseShapeError(PlatformError):
    """Payload did not match the expected schema."""


class ConsultantReviewError(PlatformError):
    def __init__(self, response_id: str, cause: Exception):
        super().__init__(f"Failed to update consultant review status: {get_error_message(cause)}")
        self.response_id = response_id
        self.cause = cause


def get_error_message(error: Exception) -> str:
    if isinstance(error, PlatformError) and error.message:
        return error.message
    return str(error) or "An unexpected error occurred"
