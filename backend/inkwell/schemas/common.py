"""
Inkwell Backend — Shared Response Schemas
===========================================

What:  Error and health payloads shared by every router.
Why:   Clients parse one error shape regardless of which endpoint failed.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "validation_error", "forbidden")
        message: Short human-readable description
        details: Optional extra context (e.g., which field failed validation)
        retry_after: Minutes to wait; present on rate-limit rejections only
        request_id: Correlation ID for tracing this error in server logs

    Example:
        {
            "error": "rate_limit_exceeded",
            "message": "Too many login attempts. Please try again later.",
            "retry_after": 15,
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    retry_after: Optional[int] = Field(default=None, description="Minutes before retrying")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health for monitoring and load balancer checks."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    ai_service: str = Field(description="Content generation: available, not_configured, circuit_open")
    uptime_seconds: float = Field(description="Seconds since service started")
