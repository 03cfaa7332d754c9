"""
API error types.

Every error carries a JSON body with at least ``error`` and ``message``; the
exception handler in ``main`` renders ``detail`` as-is.
"""
from typing import Any, Dict, List, Optional

from fastapi import HTTPException


class ApiError(HTTPException):
    status_code = 500
    error = "Internal server error"

    def __init__(self, message: str, **extra: Any):
        body: Dict[str, Any] = {"error": self.error, "message": message}
        body.update(extra)
        super().__init__(status_code=self.status_code, detail=body)


class InvalidArgument(ApiError):
    status_code = 400
    error = "Invalid argument"

    def __init__(self, message: str, error: Optional[str] = None, **extra: Any):
        if error:
            self.error = error
        super().__init__(message, **extra)


class ValidationFailed(ApiError):
    status_code = 400
    error = "Validation failed"

    def __init__(self, errors: List[str], **extra: Any):
        self.errors = list(errors)
        super().__init__("Please fix the following errors", validation_errors=self.errors, **extra)


class NotFound(ApiError):
    status_code = 404

    def __init__(self, message: str, error: str = "Not found", **extra: Any):
        self.error = error
        super().__init__(message, **extra)


class Conflict(ApiError):
    # Double completion is reported as a client error, not 409.
    status_code = 400
    error = "Conflict"

    def __init__(self, message: str, error: Optional[str] = None, **extra: Any):
        if error:
            self.error = error
        super().__init__(message, **extra)


class AlreadyCompleted(Conflict):
    error = "Quest already completed"


class Unauthorized(ApiError):
    status_code = 401

    def __init__(self, message: str, error: str = "Authentication required", **extra: Any):
        self.error = error
        super().__init__(message, **extra)


class RateLimited(HTTPException):
    def __init__(self, retry_after: str):
        super().__init__(
            status_code=429,
            detail={
                "error": "Too many requests from this IP",
                "retryAfter": retry_after,
                "type": "rate_limit_exceeded",
            },
        )


def validation_messages(errors: List[Dict[str, Any]]) -> List[str]:
    """Flatten pydantic error dicts into ``"field: message"`` strings."""
    messages = []
    for err in errors:
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return messages
