"""
Inkwell Backend — Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions, one per failure category a client can see.
Why:   Services raise what went wrong; a single set of handlers in main.py decides
       how it looks on the wire. No service ever builds an HTTP response.
How:   Each exception carries a message, a context dict, an HTTP status and a
       machine-readable error code.

Exception Hierarchy:
    InkwellError (base)                     → 500
    ├── NoCredentialError                   → 401 (no token header)
    ├── InvalidCredentialError              → 401 (bad/expired token, bad login)
    ├── RateLimitExceededError              → 429 (retry_after in minutes)
    ├── ValidationError                     → 400 (field-level message)
    ├── PayloadTooLargeError                → 413
    ├── ForbiddenError                      → 403 (authenticated, not the owner)
    ├── NotFoundError                       → 404
    ├── ConflictError                       → 409 (duplicate username)
    └── UpstreamUnavailableError            → 503 (safe to retry later)
        ├── LLMServiceError
        ├── CircuitBreakerOpenError
        └── DatabaseError

Message policy:
    Client-fault categories (validation, forbidden, conflict) return their
    specific message. Server-fault categories (upstream, database) return a
    generic message; `context` is logged server-side and never serialized.
"""

from typing import Any, Dict, Optional


class InkwellError(Exception):
    """
    Base exception for all Inkwell application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    status_code: int = 500
    error_code: str = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class NoCredentialError(InkwellError):
    """
    Raised by the authentication gate when the token header is absent.

    Kept distinct from InvalidCredentialError so clients can tell
    "you forgot to log in" from "your session is no longer valid".
    """

    status_code = 401
    error_code = "no_credential"

    def __init__(
        self,
        message: str = "No token, authorization denied",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidCredentialError(InkwellError):
    """
    Raised when a token fails verification (signature, format, expiry)
    or when a login presents a wrong username/password pair.

    Recovery: the client must authenticate again.
    """

    status_code = 401
    error_code = "invalid_credential"

    def __init__(
        self,
        message: str = "Token is not valid",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(InkwellError):
    """
    Raised when an identity exhausts its attempt budget for an action.

    What:    The sliding window for (identity, action) is full.
    HTTP:    429 Too Many Requests

    Response includes:
        - retry_after: minutes until the caller may try again (body)
        - Retry-After: the same hint in seconds (header)
    """

    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 15,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = "Too many attempts. Please try again later."
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class ValidationError(InkwellError):
    """
    Raised when client input fails validation.

    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "Username must be at least 3 characters long",
            "details": {"field": "username"}
        }
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class PayloadTooLargeError(InkwellError):
    """Raised when a request announces a body larger than MAX_REQUEST_BODY_SIZE."""

    status_code = 413
    error_code = "payload_too_large"

    def __init__(
        self,
        message: str = "Request entity too large",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(InkwellError):
    """
    Raised when an authenticated identity acts on a resource it does not own.

    Not recoverable by retrying. Resource absence is reported separately
    (NotFoundError) and checked before ownership.
    """

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "Access denied",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(InkwellError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; stores convert that into this
    exception so routes stay free of `if x is None` checks.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(InkwellError):
    """Raised when a write violates a uniqueness rule (duplicate username)."""

    status_code = 409
    error_code = "conflict"

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UpstreamUnavailableError(InkwellError):
    """
    Raised when a collaborator we depend on (AI service, database) fails.

    HTTP:    503 Service Unavailable; the client may retry later.
    """

    status_code = 503
    error_code = "service_unavailable"

    def __init__(
        self,
        message: str = "Service is temporarily unavailable. Please try again later.",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class LLMServiceError(UpstreamUnavailableError):
    """
    Raised when the content generation service fails, times out, or
    rejects our credentials. Retry logic has already run when this is raised.
    """

    def __init__(
        self,
        message: str = "AI service is currently unavailable. Please try again later.",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, retry_after=retry_after, context=context)


class CircuitBreakerOpenError(UpstreamUnavailableError):
    """
    Raised when the circuit breaker is in OPEN state.

    How circuit breaker works:
        CLOSED (normal) → failures increment counter
        → After N failures → OPEN (reject all calls for recovery_time seconds)
        → After recovery_time → HALF-OPEN (allow one test call)
        → Test succeeds → CLOSED; test fails → OPEN again
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "AI service is temporarily unavailable due to repeated failures. "
            f"Please try again in approximately {recovery_time} seconds."
        )
        super().__init__(message=message, retry_after=recovery_time, context=context)
        self.recovery_time = recovery_time


class DatabaseError(UpstreamUnavailableError):
    """
    Raised when a database operation fails unexpectedly.

    Security Note:
        The client always sees a generic message. Constraint names, SQL and
        driver messages go to the server log only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
