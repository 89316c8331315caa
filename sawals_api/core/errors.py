"""
Typed errors raised by services and mapped to fixed HTTP responses.

Every class carries its own status, machine-readable code and user-facing
message. The handler registered in `create_app` turns them into
`{"detail": {"code": ..., "message": ...}}`; anything that is not an
`AppError` is left to the framework's 500 handling.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse


class AppError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "BAD_REQUEST"
    message: str = "Bad request"

    def __init__(self, message: str | None = None, *, extra: dict | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message
        self.extra = extra or {}

    def to_detail(self) -> dict:
        detail = {"code": self.code, "message": self.message}
        if self.extra:
            detail.update(self.extra)
        return detail


class ValidationError(AppError):
    code = "VALIDATION_ERROR"
    message = "Invalid input"


class InvalidPhoneFormat(ValidationError):
    code = "INVALID_PHONE_FORMAT"
    message = "Invalid phone number format"


class InvalidOtpFormat(ValidationError):
    code = "INVALID_OTP_FORMAT"
    message = "Invalid OTP format"


class InvalidOrExpiredOtp(AppError):
    code = "INVALID_OR_EXPIRED_OTP"
    message = "Invalid or expired OTP"


class AttemptsExceeded(AppError):
    code = "OTP_ATTEMPTS_EXCEEDED"
    message = "Maximum OTP attempts exceeded"


class InvalidOtp(AppError):
    code = "INVALID_OTP"
    message = "Invalid OTP"


class DispatchFailed(AppError):
    code = "OTP_SEND_FAILED"
    message = "Failed to send OTP"


class CaptchaFailed(AppError):
    code = "CAPTCHA_FAILED"
    message = "CAPTCHA verification failed"


class Unauthorized(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "UNAUTHORIZED"
    message = "Invalid or expired token"


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"
    message = "Not found"


class Conflict(AppError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"
    message = "Resource already exists"


class ServiceUnavailable(AppError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "SERVICE_UNAVAILABLE"
    message = "Service not configured"


class RateLimited(AppError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    code = "RATE_LIMITED"
    message = "Too many requests. Please try again later."

    def __init__(self, message: str | None = None, *, retry_after: int | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


def error_response(exc: AppError) -> JSONResponse:
    headers = None
    retry_after = getattr(exc, "retry_after", None)
    if retry_after:
        headers = {"Retry-After": str(retry_after)}
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_detail()}, headers=headers)


async def app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    return error_response(exc)
